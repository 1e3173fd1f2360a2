"""Java structurer."""

from tree_sitter import Node

from ..models import (
    CodeAnnotation,
    CodeDataStruct,
    CodeField,
    CodeFunction,
    CodeParameter,
)
from ..syntax import SyntaxTree, children_of_type, first_child_of_type, strip_quotes
from .base import Capture, FileContext, LanguageStructurerBase, leading_comment

ANNOTATION_TYPES = ("annotation", "marker_annotation")


class JavaStructurer(LanguageStructurerBase):
    """Structurer for Java source files.

    Classes and records become ``Class``, interfaces and annotation types
    ``Interface`` and enums ``Enum`` with their constants as fields.
    """

    language_id = "java"
    languages = ("java",)
    SCOPE_BARRIER_TYPES = frozenset({"lambda_expression", "object_creation_expression"})

    def _extract_package(self, tree: SyntaxTree) -> str:
        for child in tree.root.children:
            if child.type == "package_declaration":
                name = first_child_of_type(child, "scoped_identifier", "identifier")
                return tree.text(name)
        return ""

    def _import_names(self, capture: Capture, tree: SyntaxTree) -> list[str]:
        name = first_child_of_type(capture.node, "scoped_identifier", "identifier")
        if name is None:
            return []
        text = tree.text(name)
        if first_child_of_type(capture.node, "asterisk") is not None:
            text += ".*"
        return [text]

    def _call_name(self, capture: Capture, tree: SyntaxTree) -> str:
        callee = tree.text(capture.sub("callee"))
        receiver = tree.text(capture.node.child_by_field_name("object"))
        return f"{receiver}.{callee}" if receiver else callee

    # ------------------------------------------------------------------

    def _modifiers(self, node: Node, tree: SyntaxTree) -> tuple[list[str], list[CodeAnnotation]]:
        """Keywords and annotations from a declaration's ``modifiers`` child."""
        keywords: list[str] = []
        annotations: list[CodeAnnotation] = []
        modifiers = first_child_of_type(node, "modifiers")
        if modifiers is None:
            return keywords, annotations
        for child in modifiers.children:
            if child.type in ANNOTATION_TYPES:
                annotations.append(self._annotation(child, tree))
            else:
                keywords.append(tree.text(child))
        return keywords, annotations

    def _annotation(self, node: Node, tree: SyntaxTree) -> CodeAnnotation:
        """``@Name``, ``@Name("x")`` or ``@Name(key = value, ...)``."""
        annotation = CodeAnnotation(name=tree.field_text(node, "name"))
        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            return annotation
        for arg in arguments.named_children:
            if arg.type == "element_value_pair":
                key = tree.field_text(arg, "key")
                annotation.parameters[key] = strip_quotes(tree.field_text(arg, "value"))
            elif arg.type not in ("line_comment", "block_comment"):
                annotation.parameters["value"] = strip_quotes(tree.text(arg))
        return annotation

    def _type_list(self, node: Node | None, tree: SyntaxTree) -> list[str]:
        type_list = first_child_of_type(node, "type_list")
        if type_list is None:
            return []
        return [tree.text(t) for t in type_list.named_children]

    def _parameters(self, node: Node | None, tree: SyntaxTree) -> list[CodeParameter]:
        params: list[CodeParameter] = []
        for param in children_of_type(node, "formal_parameter", "spread_parameter"):
            if param.type == "formal_parameter":
                params.append(
                    CodeParameter(
                        name=tree.field_text(param, "name"),
                        type=tree.field_text(param, "type"),
                    )
                )
                continue
            # String... args
            declarator = first_child_of_type(param, "variable_declarator")
            type_node = next(
                (c for c in param.named_children if c.type not in ("modifiers", "variable_declarator")),
                None,
            )
            params.append(
                CodeParameter(
                    name=tree.field_text(declarator, "name") if declarator else "",
                    type=f"{tree.text(type_node)}...",
                )
            )
        return params

    def _populate_struct(self, struct: CodeDataStruct, node: Node, ctx: FileContext) -> None:
        tree = ctx.tree
        keywords, struct.annotations = self._modifiers(node, tree)
        if keywords:
            struct.extension["modifiers"] = keywords

        superclass = node.child_by_field_name("superclass")
        if superclass is not None and superclass.named_children:
            struct.extend = tree.text(superclass.named_children[0])

        struct.implements = self._type_list(node.child_by_field_name("interfaces"), tree)
        struct.multiple_extend = self._type_list(first_child_of_type(node, "extends_interfaces"), tree)

        if node.type == "record_declaration":
            struct.parameters = self._parameters(node.child_by_field_name("parameters"), tree)
            struct.fields = [CodeField(name=p.name, type=p.type) for p in struct.parameters]

    def _build_function(self, capture: Capture, ctx: FileContext) -> CodeFunction | None:
        tree = ctx.tree
        node = capture.node
        func = self._function_skeleton(capture, ctx)
        keywords, func.annotations = self._modifiers(node, tree)
        func.is_static = "static" in keywords
        func.is_constructor = node.type == "constructor_declaration"
        func.return_type = "" if func.is_constructor else tree.field_text(node, "type")
        func.parameters = self._parameters(node.child_by_field_name("parameters"), tree)
        return func

    def _build_fields(self, capture: Capture, ctx: FileContext) -> list[CodeField]:
        tree = ctx.tree
        node = capture.node
        comment = leading_comment(node, tree)

        if node.type == "enum_constant":
            return [CodeField(name=tree.field_text(node, "name"), comment=comment)]

        _, annotations = self._modifiers(node, tree)
        type_node = node.child_by_field_name("type")
        type_text = tree.text(type_node)
        fields: list[CodeField] = []
        for declarator in node.children_by_field_name("declarator"):
            value = declarator.child_by_field_name("value")
            is_array = (type_node is not None and type_node.type == "array_type") or (
                declarator.child_by_field_name("dimensions") is not None
            )
            fields.append(
                CodeField(
                    name=tree.field_text(declarator, "name"),
                    type=type_text,
                    is_array=is_array,
                    default=tree.text(value) if value is not None else None,
                    comment=comment,
                    annotations=list(annotations),
                )
            )
        return fields
