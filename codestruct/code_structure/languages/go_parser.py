"""Go structurer."""

from tree_sitter import Node

from ..models import CodeDataStruct, CodeField, CodeFunction, CodeParameter, DataStructType
from ..syntax import SyntaxTree, children_of_type, first_child_of_type, strip_quotes
from .base import Capture, FileContext, LanguageStructurerBase


def _base_type_name(text: str) -> str:
    """``*List[T]`` -> ``List``."""
    text = text.lstrip("*").strip()
    return text.split("[", 1)[0]


class GoStructurer(LanguageStructurerBase):
    """Structurer for Go source files.

    Struct types become ``Class`` and interfaces ``Interface``. Methods are
    attached to their receiver type; a receiver type declared in another
    file gets a synthesized struct in this file's output. Package-level
    functions go into the function holder.
    """

    language_id = "go"
    languages = ("go",)
    SCOPE_BARRIER_TYPES = frozenset({"func_literal"})

    def _extract_package(self, tree: SyntaxTree) -> str:
        for child in tree.root.children:
            if child.type == "package_clause":
                return tree.text(first_child_of_type(child, "package_identifier"))
        return ""

    def _import_names(self, capture: Capture, tree: SyntaxTree) -> list[str]:
        path = tree.field_text(capture.node, "path")
        return [strip_quotes(path)] if path else []

    def _struct_type(self, capture: Capture, ctx: FileContext) -> DataStructType:
        type_node = capture.node.child_by_field_name("type")
        if type_node is not None and type_node.type == "interface_type":
            return DataStructType.INTERFACE
        return DataStructType.CLASS

    def _populate_struct(self, struct: CodeDataStruct, node: Node, ctx: FileContext) -> None:
        tree = ctx.tree
        type_node = node.child_by_field_name("type")
        if type_node is None:
            return

        if type_node.type == "struct_type":
            tags: dict[str, str] = {}
            for decl in children_of_type(first_child_of_type(type_node, "field_declaration_list"), "field_declaration"):
                names = decl.children_by_field_name("name")
                if not names:
                    # embedded type
                    struct.multiple_extend.append(_base_type_name(tree.field_text(decl, "type")))
                    continue
                tag = decl.child_by_field_name("tag")
                if tag is not None:
                    for name in names:
                        tags[tree.text(name)] = strip_quotes(tree.text(tag))
            if tags:
                struct.extension["tags"] = tags
        elif type_node.type == "interface_type":
            for elem in children_of_type(type_node, "type_elem"):
                struct.multiple_extend.append(tree.text(elem))
        else:
            struct.extension["underlying"] = tree.text(type_node)

    def _parameters(self, node: Node | None, tree: SyntaxTree) -> list[CodeParameter]:
        params: list[CodeParameter] = []
        for decl in children_of_type(node, "parameter_declaration", "variadic_parameter_declaration"):
            type_text = tree.field_text(decl, "type")
            if decl.type == "variadic_parameter_declaration":
                type_text = f"...{type_text}"
            names = decl.children_by_field_name("name")
            if not names:
                params.append(CodeParameter(name="", type=type_text))
            for name in names:
                params.append(CodeParameter(name=tree.text(name), type=type_text))
        return params

    def _build_function(self, capture: Capture, ctx: FileContext) -> CodeFunction | None:
        tree = ctx.tree
        func = self._function_skeleton(capture, ctx)
        func.parameters = self._parameters(capture.node.child_by_field_name("parameters"), tree)
        func.return_type = tree.field_text(capture.node, "result")
        return func

    def _detached_owner(self, capture: Capture, ctx: FileContext) -> str | None:
        if capture.node.type != "method_declaration":
            return None
        receiver = capture.node.child_by_field_name("receiver")
        decl = first_child_of_type(receiver, "parameter_declaration")
        if decl is None:
            return None
        return _base_type_name(ctx.tree.field_text(decl, "type")) or None

    def _build_fields(self, capture: Capture, ctx: FileContext) -> list[CodeField]:
        tree = ctx.tree
        node = capture.node
        type_node = node.child_by_field_name("type")
        type_text = tree.text(type_node)
        type_kind = type_node.type if type_node is not None else ""
        return [
            CodeField(
                name=tree.text(name),
                type=type_text,
                is_array=type_kind in ("slice_type", "array_type"),
                is_nullable=type_kind in ("pointer_type", "map_type", "slice_type", "interface_type"),
            )
            for name in node.children_by_field_name("name")
        ]
