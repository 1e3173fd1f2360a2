"""Python structurer."""

from tree_sitter import Node

from ..models import (
    CodeAnnotation,
    CodeDataStruct,
    CodeField,
    CodeFunction,
    CodeParameter,
    DataStructType,
)
from ..syntax import SyntaxTree, children_of_type, first_child_of_type, strip_quotes
from .base import Capture, FileContext, LanguageStructurerBase

ENUM_BASES = frozenset({"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"})
INTERFACE_BASES = frozenset({"Protocol", "ABC"})


def _short_name(text: str) -> str:
    """``enum.Enum`` -> ``Enum``, ``Protocol[T]`` -> ``Protocol``."""
    return text.split("[", 1)[0].rsplit(".", 1)[-1]


class PythonStructurer(LanguageStructurerBase):
    """Structurer for Python source files.

    Classes deriving from ``Enum`` become ``Enum`` structures and classes
    deriving from ``Protocol`` or ``ABC`` become ``Interface``. Module level
    functions go into the function holder.
    """

    language_id = "python"
    languages = ("python",)
    SCOPE_BARRIER_TYPES = frozenset({"lambda"})

    def _import_names(self, capture: Capture, tree: SyntaxTree) -> list[str]:
        node = capture.node
        names: list[str] = []
        if node.type == "import_statement":
            for name in node.children_by_field_name("name"):
                if name.type == "aliased_import":
                    name = name.child_by_field_name("name")
                names.append(tree.text(name))
            return names

        module = tree.field_text(node, "module_name")
        if first_child_of_type(node, "wildcard_import") is not None:
            return [f"{module}.*"]
        for name in node.children_by_field_name("name"):
            if name.type == "aliased_import":
                name = name.child_by_field_name("name")
            separator = "" if module.endswith(".") else "."
            names.append(f"{module}{separator}{tree.text(name)}")
        return names

    # ------------------------------------------------------------------

    def _decorator(self, node: Node, tree: SyntaxTree) -> CodeAnnotation:
        expression = node.named_children[0] if node.named_children else None
        if expression is None or expression.type != "call":
            return CodeAnnotation(name=tree.text(expression))
        annotation = CodeAnnotation(name=tree.field_text(expression, "function"))
        arguments = expression.child_by_field_name("arguments")
        positional = 0
        for arg in arguments.named_children if arguments else []:
            if arg.type == "keyword_argument":
                key = tree.field_text(arg, "name")
                annotation.parameters[key] = strip_quotes(tree.field_text(arg, "value"))
            elif arg.type != "comment":
                key = "value" if positional == 0 else str(positional)
                annotation.parameters[key] = strip_quotes(tree.text(arg))
                positional += 1
        return annotation

    def _decorators(self, node: Node, tree: SyntaxTree) -> list[CodeAnnotation]:
        parent = node.parent
        if parent is None or parent.type != "decorated_definition":
            return []
        return [self._decorator(d, tree) for d in children_of_type(parent, "decorator")]

    def _bases(self, node: Node, tree: SyntaxTree) -> tuple[list[str], dict[str, str]]:
        bases: list[str] = []
        keywords: dict[str, str] = {}
        superclasses = node.child_by_field_name("superclasses")
        for arg in superclasses.named_children if superclasses else []:
            if arg.type == "keyword_argument":
                keywords[tree.field_text(arg, "name")] = tree.field_text(arg, "value")
            elif arg.type != "comment":
                bases.append(tree.text(arg))
        return bases, keywords

    def _struct_type(self, capture: Capture, ctx: FileContext) -> DataStructType:
        bases, _ = self._bases(capture.node, ctx.tree)
        short = {_short_name(base) for base in bases}
        if short & ENUM_BASES:
            return DataStructType.ENUM
        if short & INTERFACE_BASES:
            return DataStructType.INTERFACE
        return DataStructType.CLASS

    def _populate_struct(self, struct: CodeDataStruct, node: Node, ctx: FileContext) -> None:
        tree = ctx.tree
        bases, keywords = self._bases(node, tree)
        if bases:
            struct.extend = bases[0]
            struct.multiple_extend = bases
        if "metaclass" in keywords:
            struct.extension["metaclass"] = keywords["metaclass"]
        struct.annotations = self._decorators(node, tree)

    def _parameters(self, node: Node | None, tree: SyntaxTree) -> list[CodeParameter]:
        params: list[CodeParameter] = []
        for param in node.named_children if node else []:
            if param.type == "identifier":
                params.append(CodeParameter(name=tree.text(param)))
            elif param.type == "typed_parameter":
                name = first_child_of_type(
                    param, "identifier", "list_splat_pattern", "dictionary_splat_pattern"
                )
                params.append(CodeParameter(name=tree.text(name), type=tree.field_text(param, "type")))
            elif param.type in ("default_parameter", "typed_default_parameter"):
                params.append(
                    CodeParameter(
                        name=tree.field_text(param, "name"),
                        type=tree.field_text(param, "type"),
                    )
                )
            elif param.type in ("list_splat_pattern", "dictionary_splat_pattern"):
                params.append(CodeParameter(name=tree.text(param)))
        return params

    def _build_function(self, capture: Capture, ctx: FileContext) -> CodeFunction | None:
        tree = ctx.tree
        node = capture.node
        func = self._function_skeleton(capture, ctx)
        func.parameters = self._parameters(node.child_by_field_name("parameters"), tree)
        func.return_type = tree.field_text(node, "return_type")
        func.is_async = any(child.type == "async" for child in node.children)
        decorators = self._decorators(node, tree)
        func.annotations = decorators
        func.decorators = [d.name for d in decorators]
        func.is_static = "staticmethod" in func.decorators
        func.is_constructor = func.name == "__init__"
        return func

    def _build_fields(self, capture: Capture, ctx: FileContext) -> list[CodeField]:
        tree = ctx.tree
        node = capture.node
        left = node.child_by_field_name("left")
        if left is None or left.type != "identifier":
            return []
        type_text = tree.field_text(node, "type")
        right = node.child_by_field_name("right")
        parts = {part.strip() for part in type_text.split("|")}
        return [
            CodeField(
                name=tree.text(left),
                type=type_text,
                is_array=_short_name(type_text) in ("list", "List", "Sequence", "tuple", "Tuple"),
                is_nullable=type_text.startswith("Optional[") or "None" in parts,
                default=tree.text(right) if right is not None else None,
            )
        ]
