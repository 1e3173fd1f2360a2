"""TypeScript and JavaScript structurer."""

from tree_sitter import Node

from ..models import (
    CodeAnnotation,
    CodeDataStruct,
    CodeField,
    CodeFunction,
    CodeParameter,
)
from ..syntax import SyntaxTree, children_of_type, first_child_of_type, strip_quotes
from .base import Capture, FileContext, LanguageStructurerBase

FUNCTION_VALUE_TYPES = ("arrow_function", "function_expression")


def _has_token(node: Node | None, token: str) -> bool:
    return node is not None and any(child.type == token for child in node.children)


def _annotation_type(tree: SyntaxTree, node: Node | None) -> str:
    """Type text of a ``type_annotation`` without the leading colon."""
    if node is None:
        return ""
    if node.type == "type_annotation" and node.named_children:
        return tree.text(node.named_children[0])
    return tree.text(node).lstrip(":").strip()


class TypeScriptStructurer(LanguageStructurerBase):
    """Structurer for TypeScript, TSX and JavaScript files.

    JavaScript is parsed with the TSX grammar, so the same queries serve
    every tag this structurer accepts.
    """

    language_id = "typescript"
    languages = ("typescript", "tsx", "javascript")
    SCOPE_BARRIER_TYPES = frozenset({"arrow_function", "function_expression", "class"})

    def _import_names(self, capture: Capture, tree: SyntaxTree) -> list[str]:
        return [strip_quotes(tree.text(capture.node))]

    def _export_names(self, capture: Capture, tree: SyntaxTree) -> list[str]:
        node = capture.node
        if _has_token(node, "default"):
            return ["default"]
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            name = declaration.child_by_field_name("name")
            if name is not None:
                return [tree.text(name)]
            # export const a = 1, b = 2
            return [
                tree.field_text(declarator, "name")
                for declarator in children_of_type(declaration, "variable_declarator")
            ]
        clause = first_child_of_type(node, "export_clause")
        names: list[str] = []
        for specifier in children_of_type(clause, "export_specifier"):
            alias = specifier.child_by_field_name("alias")
            names.append(tree.text(alias) if alias is not None else tree.field_text(specifier, "name"))
        return names

    # ------------------------------------------------------------------

    def _decorator(self, node: Node, tree: SyntaxTree) -> CodeAnnotation:
        """``@Name``, ``@Name(arg, ...)`` or ``@Name({key: value})``."""
        expression = node.named_children[0] if node.named_children else None
        if expression is None or expression.type != "call_expression":
            return CodeAnnotation(name=tree.text(expression))
        annotation = CodeAnnotation(name=tree.field_text(expression, "function"))
        arguments = expression.child_by_field_name("arguments")
        args = [a for a in (arguments.named_children if arguments else []) if a.type != "comment"]
        for index, arg in enumerate(args):
            if arg.type == "object":
                for pair in children_of_type(arg, "pair"):
                    key = strip_quotes(tree.field_text(pair, "key"))
                    annotation.parameters[key] = strip_quotes(tree.field_text(pair, "value"))
            else:
                key = "value" if index == 0 else str(index)
                annotation.parameters[key] = strip_quotes(tree.text(arg))
        return annotation

    def _decorators(self, node: Node, tree: SyntaxTree) -> list[CodeAnnotation]:
        """Decorators written inside the node or immediately before it."""
        found = [self._decorator(d, tree) for d in children_of_type(node, "decorator")]
        leading: list[CodeAnnotation] = []
        sibling = node.prev_named_sibling
        while sibling is not None and sibling.type == "decorator":
            leading.insert(0, self._decorator(sibling, tree))
            sibling = sibling.prev_named_sibling
        return leading + found

    def _parameters(self, node: Node | None, tree: SyntaxTree) -> list[CodeParameter]:
        if node is None:
            return []
        if node.type == "identifier":
            return [CodeParameter(name=tree.text(node))]
        params: list[CodeParameter] = []
        for param in node.named_children:
            if param.type in ("required_parameter", "optional_parameter"):
                params.append(
                    CodeParameter(
                        name=tree.field_text(param, "pattern"),
                        type=_annotation_type(tree, param.child_by_field_name("type")),
                    )
                )
            elif param.type in ("identifier", "assignment_pattern", "rest_pattern"):
                params.append(CodeParameter(name=tree.text(param)))
        return params

    def _populate_struct(self, struct: CodeDataStruct, node: Node, ctx: FileContext) -> None:
        tree = ctx.tree
        struct.annotations = self._decorators(node, tree)
        if node.type == "abstract_class_declaration":
            struct.extension["abstract"] = True

        heritage = first_child_of_type(node, "class_heritage")
        extends_clause = first_child_of_type(heritage, "extends_clause")
        if extends_clause is not None:
            values = extends_clause.children_by_field_name("value")
            if values:
                struct.extend = tree.text(values[0])
        implements_clause = first_child_of_type(heritage, "implements_clause")
        if implements_clause is not None:
            struct.implements = [tree.text(t) for t in implements_clause.named_children]

        extends_type = first_child_of_type(node, "extends_type_clause")
        if extends_type is not None:
            struct.multiple_extend = [tree.text(t) for t in extends_type.named_children]

    def _build_function(self, capture: Capture, ctx: FileContext) -> CodeFunction | None:
        tree = ctx.tree
        node = capture.node
        func = self._function_skeleton(capture, ctx)

        # variable and field initializers keep the signature on the value
        signature = node
        if node.type in ("variable_declarator", "public_field_definition"):
            value = node.child_by_field_name("value")
            if value is not None and value.type in FUNCTION_VALUE_TYPES:
                signature = value

        params = signature.child_by_field_name("parameters")
        if params is None:
            params = signature.child_by_field_name("parameter")
        func.parameters = self._parameters(params, tree)
        func.return_type = _annotation_type(tree, signature.child_by_field_name("return_type"))
        func.is_async = _has_token(signature, "async")
        func.is_static = _has_token(node, "static")
        func.is_constructor = node.type == "method_definition" and func.name == "constructor"
        decorators = self._decorators(node, tree)
        func.decorators = [d.name for d in decorators]
        func.annotations = decorators
        return func

    def _build_fields(self, capture: Capture, ctx: FileContext) -> list[CodeField]:
        tree = ctx.tree
        node = capture.node

        if node.type == "property_identifier":
            return [CodeField(name=tree.text(node))]
        if node.type == "enum_assignment":
            value = node.child_by_field_name("value")
            return [
                CodeField(
                    name=tree.field_text(node, "name"),
                    default=tree.text(value) if value is not None else None,
                )
            ]

        type_text = _annotation_type(tree, node.child_by_field_name("type"))
        value = node.child_by_field_name("value")
        return [
            CodeField(
                name=tree.field_text(node, "name"),
                type=type_text,
                is_array=type_text.endswith("[]") or type_text.startswith("Array<"),
                is_nullable=_has_token(node, "?") or "null" in [p.strip() for p in type_text.split("|")],
                default=tree.text(value) if value is not None else None,
                annotations=self._decorators(node, tree),
            )
        ]
