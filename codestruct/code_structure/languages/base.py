"""Base class for query-driven language structurers.

Every language ships a set of tree-sitter queries under ``queries/``:

* ``<lang>_declarations.scm``: class-like declarations, captured as
  ``@declaration.<kind>`` with their ``@name``
* ``<lang>_functions.scm``: functions and methods, ``@function`` / ``@name``
* ``<lang>_fields.scm``: member fields, ``@field``
* ``<lang>_imports.scm``: ``@import`` (and optionally ``@export``)
* ``<lang>_calls.scm``: ``@call`` with ``@callee`` and optional ``@receiver``
* ``<lang>_locals.scm``: scopes, definitions and references for the scope graph

Queries run once over the whole file. Every capture is then attributed to
the nearest declaration that owns it; a capture that sits inside another
function (or lambda) belongs to that function and is not attributed to the
enclosing declaration.
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path

from tree_sitter import Node, Query, QueryError

from codestruct.core.exceptions import ParseFailureError, QueryLoadError
from codestruct.core.logger import get_logger

from ..base import StructurerProvider
from ..grammar import GrammarCatalog
from ..models import (
    CodeDataStruct,
    CodeField,
    CodeFunction,
    CodePosition,
    DataStructType,
)
from ..syntax import QueryMatch, SyntaxTree, ancestors, node_key

logger = get_logger(__name__)

BUNDLED_QUERY_DIR = Path(__file__).resolve().parent.parent / "queries"

NodeKey = tuple[int, int, str]

DECLARATION_KINDS: dict[str, DataStructType] = {
    "class": DataStructType.CLASS,
    "struct": DataStructType.CLASS,
    "record": DataStructType.CLASS,
    "interface": DataStructType.INTERFACE,
    "trait": DataStructType.INTERFACE,
    "service": DataStructType.INTERFACE,
    "enum": DataStructType.ENUM,
    "message": DataStructType.MESSAGE,
}


def query_path(prefix: str, concern: str, query_dir: Path | None = None) -> Path:
    """Resolve the file holding one query, preferring the override directory."""
    filename = f"{prefix}_{concern}.scm"
    if query_dir is not None:
        candidate = Path(query_dir) / filename
        if candidate.is_file():
            return candidate
    return BUNDLED_QUERY_DIR / filename


def read_query(prefix: str, concern: str, query_dir: Path | None = None, required: bool = True) -> str | None:
    """Read a query file.

    Raises:
        QueryLoadError: If a required query does not exist or cannot be read.
    """
    path = query_path(prefix, concern, query_dir)
    if not path.is_file():
        if required:
            raise QueryLoadError(f"Missing query: {path.name}", query_path=str(path))
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise QueryLoadError(
            f"Unreadable query: {path.name}",
            query_path=str(path),
            details={"error": str(e)},
        ) from e


def position_of(tree: SyntaxTree, node: Node) -> CodePosition:
    """Position model for a node."""
    span = tree.text_range(node)
    return CodePosition(
        start_line=span.start.line,
        start_column=span.start.column,
        end_line=span.end.line,
        end_column=span.end.column,
        start_byte=span.start.byte_offset,
        end_byte=span.end.byte_offset,
    )


def append_unique(items: list[str], value: str) -> None:
    if value and value not in items:
        items.append(value)


COMMENT_TYPES = ("comment", "line_comment", "block_comment")


def leading_comment(node: Node, tree: SyntaxTree) -> str:
    """Comment on the line directly above a node, if any."""
    previous = node.prev_sibling
    if previous is None or previous.type not in COMMENT_TYPES:
        return ""
    if node.start_point[0] - previous.end_point[0] > 1:
        return ""
    return tree.text(previous)


@dataclass
class Capture:
    """Main node of one query match plus the match it came from."""

    kind: str
    node: Node
    match: QueryMatch

    @property
    def key(self) -> NodeKey:
        return node_key(self.node)

    def sub(self, name: str) -> Node | None:
        return self.match.first(name)


@dataclass
class FileContext:
    """Per-file facts shared by every structure of the file."""

    tree: SyntaxTree
    file_path: str
    package: str = ""
    imports: list[str] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)


class LanguageStructurerBase(StructurerProvider):
    """Shared extraction pipeline; subclasses supply queries and node readers."""

    # Query files that must exist for this language
    QUERY_CONCERNS: tuple[str, ...] = ("declarations", "functions", "fields", "imports", "calls", "locals")
    # Node types that own their contents like a function does (lambdas etc.)
    SCOPE_BARRIER_TYPES: frozenset[str] = frozenset()
    HOLDER_NAME = "default"

    def __init__(self, include_content: bool = True, query_dir: Path | None = None) -> None:
        """Initialize the structurer.

        Args:
            include_content: Keep source text on structures and functions.
            query_dir: Directory whose query files override the bundled ones.
        """
        super().__init__()
        self.include_content = include_content
        self.query_dir = query_dir
        self._query_sources: dict[str, str] = {}
        self._compiled: dict[tuple[str, str], Query] = {}
        self._compile_lock = threading.Lock()

    @property
    def query_prefix(self) -> str:
        return self.language_id

    # ------------------------------------------------------------------
    # Query loading
    # ------------------------------------------------------------------

    def _on_init(self, catalog: GrammarCatalog) -> None:
        sources: dict[str, str] = {}
        for concern in self.QUERY_CONCERNS:
            sources[concern] = read_query(self.query_prefix, concern, self.query_dir)
        self._query_sources = sources
        self._compiled.clear()

        try:
            grammar = catalog.ensure_ready(self.language_id)
        except ParseFailureError as e:
            # Compilation is retried on first parse once the grammar is available.
            logger.warning(f"{self.name}: deferring query compilation, {e.message}")
            return
        for concern in sources:
            self._compile(concern, self.language_id, grammar)

    def _compile(self, concern: str, tag: str, grammar) -> Query:
        key = (tag, concern)
        query = self._compiled.get(key)
        if query is not None:
            return query
        with self._compile_lock:
            query = self._compiled.get(key)
            if query is None:
                source = self._query_sources.get(concern)
                if source is None:
                    raise QueryLoadError(
                        f"Query not loaded: {self.query_prefix}_{concern}.scm",
                        query_path=str(query_path(self.query_prefix, concern, self.query_dir)),
                    )
                try:
                    query = Query(grammar, source)
                except QueryError as e:
                    raise QueryLoadError(
                        f"Invalid query {self.query_prefix}_{concern}.scm for {tag}",
                        query_path=str(query_path(self.query_prefix, concern, self.query_dir)),
                        details={"error": str(e)},
                    ) from e
                self._compiled[key] = query
        return query

    def query(self, concern: str, tree: SyntaxTree) -> Query:
        """Compiled query for a concern, matching the tree's grammar."""
        return self._compile(concern, tree.language, tree.grammar)

    def has_query(self, concern: str) -> bool:
        return concern in self._query_sources

    def _collect(self, tree: SyntaxTree, concern: str, root: str) -> list[Capture]:
        """Run a query and return one capture per distinct main node, in source order.

        A concern the language does not ship a query for yields nothing.
        """
        if not self.has_query(concern):
            return []
        seen: dict[NodeKey, Capture] = {}
        prefix = root + "."
        for match in tree.find_all(self.query(concern, tree)):
            for name, nodes in match.captures.items():
                if name != root and not name.startswith(prefix):
                    continue
                kind = name[len(prefix):] if name.startswith(prefix) else root
                for node in nodes:
                    key = node_key(node)
                    if key not in seen:
                        seen[key] = Capture(kind, node, match)
        return sorted(seen.values(), key=lambda c: (c.node.start_byte, -c.node.end_byte))

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def parse_tree(self, tree: SyntaxTree, file_path: str) -> list[CodeDataStruct]:
        """Extract structures from a parsed tree.

        Args:
            tree: Syntax tree of one file.
            file_path: Path recorded on every structure.

        Returns:
            Top-level structures in source order, followed by structures
            synthesized for detached methods and the function holder.
        """
        if not self.is_initialized:
            raise RuntimeError(f"{self.name} used before init()")
        if tree.is_empty:
            return []

        ctx = FileContext(tree=tree, file_path=file_path)
        ctx.package = self._extract_package(tree)
        for capture in self._collect(tree, "imports", "import"):
            for value in self._import_names(capture, tree):
                append_unique(ctx.imports, value)
        for capture in self._collect(tree, "imports", "export"):
            for value in self._export_names(capture, tree):
                append_unique(ctx.exports, value)

        declarations = self._collect(tree, "declarations", "declaration")
        decl_keys = {c.key for c in declarations}
        functions = [c for c in self._collect(tree, "functions", "function") if c.key not in decl_keys]
        fn_keys = {c.key for c in functions}
        fields = [
            c for c in self._collect(tree, "fields", "field")
            if c.key not in decl_keys and c.key not in fn_keys
        ]

        structs: dict[NodeKey, CodeDataStruct] = {}
        top_level: list[CodeDataStruct] = []
        for capture in declarations:
            struct = self._build_struct(capture, ctx)
            if struct is None or not struct.node_name:
                continue
            owner = self._nearest(capture.node, structs)
            if owner is None:
                struct.module = struct.node_name
                top_level.append(struct)
            else:
                struct.module = f"{structs[owner].module}.{struct.node_name}"
                structs[owner].inner_structures.append(struct)
            structs[capture.key] = struct

        synthesized: list[CodeDataStruct] = []
        holder_functions: list[CodeFunction] = []
        built_functions: dict[NodeKey, CodeFunction] = {}
        function_owners: dict[NodeKey, CodeDataStruct | None] = {}
        for capture in functions:
            owner = self._owner(capture.node, structs, fn_keys)
            if owner == "nested":
                continue
            func = self._build_function(capture, ctx)
            if func is None or not func.name:
                continue
            built_functions[capture.key] = func
            target = structs[owner] if owner is not None else None
            if target is None:
                receiver = self._detached_owner(capture, ctx)
                if receiver:
                    target = self._find_or_synthesize(receiver, top_level, synthesized, ctx)
            if target is not None:
                target.functions.append(func)
            else:
                holder_functions.append(func)
            function_owners[capture.key] = target

        for capture in fields:
            owner = self._owner(capture.node, structs, fn_keys)
            if owner is None or owner == "nested":
                continue
            structs[owner].fields.extend(self._build_fields(capture, ctx))

        holder = None
        if holder_functions:
            holder = CodeDataStruct(
                node_name=self.HOLDER_NAME,
                module=self.HOLDER_NAME,
                type=DataStructType.CLASS,
                functions=holder_functions,
                extension={"function_holder": True},
            )

        self._attach_calls(tree, structs, built_functions, function_owners, holder)

        result = top_level + synthesized + ([holder] if holder is not None else [])
        for struct in result:
            struct.imports = list(ctx.imports)
            struct.exports = list(ctx.exports)
            for item in struct.iter_structures():
                item.package = ctx.package
                item.file_path = file_path
        return result

    def _nearest(self, node: Node, keys) -> NodeKey | None:
        """Nearest ancestor of ``node`` whose key is in ``keys``."""
        for parent in ancestors(node):
            key = node_key(parent)
            if key in keys:
                return key
        return None

    def _owner(self, node: Node, structs: dict[NodeKey, CodeDataStruct], fn_keys: set[NodeKey]):
        """Owning declaration key, ``None`` at file level, or ``"nested"``."""
        for parent in ancestors(node):
            key = node_key(parent)
            if key in structs:
                return key
            if key in fn_keys or parent.type in self.SCOPE_BARRIER_TYPES:
                return "nested"
        return None

    def _find_or_synthesize(
        self,
        name: str,
        top_level: list[CodeDataStruct],
        synthesized: list[CodeDataStruct],
        ctx: FileContext,
    ) -> CodeDataStruct:
        for struct in top_level + synthesized:
            if struct.node_name == name:
                return struct
        struct = CodeDataStruct(
            node_name=name,
            module=name,
            type=DataStructType.CLASS,
            extension={"synthesized": True},
        )
        synthesized.append(struct)
        return struct

    def _attach_calls(
        self,
        tree: SyntaxTree,
        structs: dict[NodeKey, CodeDataStruct],
        functions: dict[NodeKey, CodeFunction],
        function_owners: dict[NodeKey, CodeDataStruct | None],
        holder: CodeDataStruct | None,
    ) -> None:
        """Record calls on the enclosing function and on the struct owning it."""
        for capture in self._collect(tree, "calls", "call"):
            name = self._call_name(capture, tree)
            if not name:
                continue
            fn_key = self._nearest(capture.node, functions)
            if fn_key is not None:
                append_unique(functions[fn_key].function_calls, name)
                target = function_owners.get(fn_key) or holder
            else:
                struct_key = self._nearest(capture.node, structs)
                target = structs[struct_key] if struct_key is not None else None
            if target is not None:
                append_unique(target.function_calls, name)

    # ------------------------------------------------------------------
    # Node readers; subclasses override what their grammar needs
    # ------------------------------------------------------------------

    def _struct_type(self, capture: Capture, ctx: FileContext) -> DataStructType:
        return DECLARATION_KINDS.get(capture.kind, DataStructType.CLASS)

    def _build_struct(self, capture: Capture, ctx: FileContext) -> CodeDataStruct | None:
        """Skeleton of a declaration; ``_populate_struct`` adds the language details."""
        tree = ctx.tree
        name_node = capture.sub("name") or capture.node.child_by_field_name("name")
        struct = CodeDataStruct(
            node_name=tree.text(name_node),
            type=self._struct_type(capture, ctx),
            position=position_of(tree, capture.node),
            content=tree.text(capture.node) if self.include_content else "",
        )
        self._populate_struct(struct, capture.node, ctx)
        return struct

    def _populate_struct(self, struct: CodeDataStruct, node: Node, ctx: FileContext) -> None:
        """Fill inheritance and annotations of a declaration."""

    def _function_skeleton(self, capture: Capture, ctx: FileContext) -> CodeFunction:
        tree = ctx.tree
        name_node = capture.sub("name") or capture.node.child_by_field_name("name")
        return CodeFunction(
            name=tree.text(name_node),
            position=position_of(tree, capture.node),
            content=tree.text(capture.node) if self.include_content else "",
        )

    def _build_function(self, capture: Capture, ctx: FileContext) -> CodeFunction | None:
        return self._function_skeleton(capture, ctx)

    def _build_fields(self, capture: Capture, ctx: FileContext) -> list[CodeField]:
        name = ctx.tree.field_text(capture.node, "name")
        return [CodeField(name=name)] if name else []

    def _extract_package(self, tree: SyntaxTree) -> str:
        return ""

    def _import_names(self, capture: Capture, tree: SyntaxTree) -> list[str]:
        return [tree.text(capture.node)]

    def _export_names(self, capture: Capture, tree: SyntaxTree) -> list[str]:
        return [tree.text(capture.node)]

    def _call_name(self, capture: Capture, tree: SyntaxTree) -> str:
        """``receiver.callee`` when the call has a receiver, else ``callee``."""
        callee = tree.text(capture.sub("callee"))
        if not callee:
            return ""
        receiver = tree.text(capture.sub("receiver"))
        return f"{receiver}.{callee}" if receiver else callee

    def _detached_owner(self, capture: Capture, ctx: FileContext) -> str | None:
        """Type a file-level function belongs to (Go receivers), if any."""
        return None
