"""Protocol Buffers structurer."""

from tree_sitter import Node

from ..models import CodeDataStruct, CodeField, CodeFunction, CodeParameter
from ..syntax import SyntaxTree, children_of_type, first_child_of_type, strip_quotes
from .base import Capture, FileContext, LanguageStructurerBase, leading_comment


def _tokens(node: Node) -> set[str]:
    return {child.type for child in node.children if not child.is_named}


class ProtoStructurer(LanguageStructurerBase):
    """Structurer for ``.proto`` files.

    Messages become ``Message``, enums ``Enum`` and services ``Interface``
    with one function per rpc. Nested messages and enums are inner
    structures of their message; enum values are fields whose default is
    the value number.
    """

    language_id = "proto"
    languages = ("proto",)
    QUERY_CONCERNS = ("declarations", "functions", "fields", "imports")

    def _extract_package(self, tree: SyntaxTree) -> str:
        for child in tree.root.named_children:
            if child.type == "package":
                return tree.text(first_child_of_type(child, "full_ident"))
        return ""

    def _import_names(self, capture: Capture, tree: SyntaxTree) -> list[str]:
        path = strip_quotes(tree.text(capture.node))
        return [path] if path else []

    def _populate_struct(self, struct: CodeDataStruct, node: Node, ctx: FileContext) -> None:
        if node.type != "message":
            return
        oneofs = [
            ctx.tree.text(first_child_of_type(group, "identifier"))
            for group in children_of_type(first_child_of_type(node, "message_body"), "oneof")
        ]
        if oneofs:
            struct.extension["oneofs"] = [name for name in oneofs if name]

    def _build_fields(self, capture: Capture, ctx: FileContext) -> list[CodeField]:
        tree = ctx.tree
        node = capture.node
        name = tree.text(first_child_of_type(node, "identifier"))
        if not name:
            return []
        if node.type == "enum_field":
            return [CodeField(name=name, default=self._enum_value(node, tree), comment=leading_comment(node, tree))]

        value_type = tree.text(first_child_of_type(node, "type"))
        if node.type == "map_field":
            key_type = tree.text(first_child_of_type(node, "key_type"))
            value_type = f"map<{key_type}, {value_type}>"
        tokens = _tokens(node)
        return [
            CodeField(
                name=name,
                type=value_type,
                is_array="repeated" in tokens,
                # oneof members are unset unless chosen
                is_nullable="optional" in tokens or node.type == "oneof_field",
                comment=leading_comment(node, tree),
            )
        ]

    def _enum_value(self, node: Node, tree: SyntaxTree) -> str | None:
        value = tree.text(first_child_of_type(node, "int_lit"))
        if value and "-" in _tokens(node):
            value = f"-{value}"
        return value or None

    def _build_function(self, capture: Capture, ctx: FileContext) -> CodeFunction | None:
        """``rpc Name(stream? Request) returns (stream? Response)``."""
        tree = ctx.tree
        func = self._function_skeleton(capture, ctx)
        request = response = ""
        request_stream = response_stream = False
        seen_returns = False
        for child in capture.node.children:
            if child.type == "returns":
                seen_returns = True
            elif child.type == "stream":
                if seen_returns:
                    response_stream = True
                else:
                    request_stream = True
            elif child.type == "message_or_enum_type":
                if seen_returns:
                    response = tree.text(child)
                else:
                    request = tree.text(child)

        if request:
            func.parameters = [CodeParameter(name="request", type=request)]
        func.return_type = response
        if request_stream:
            func.decorators.append("client_streaming")
        if response_stream:
            func.decorators.append("server_streaming")
        return func
