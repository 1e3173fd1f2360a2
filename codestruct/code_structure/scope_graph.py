"""Per-file scope graph built from a language's ``locals`` query.

The graph is an arena: every scope, definition and reference is a
``GraphNode`` addressed by its integer id, and relations are ``Edge``
records between ids. Construction runs in fixed stages::

    Parsed -> ScopesCollected -> DefinitionsBound -> ReferencesResolved -> Finalized

Each stage method checks the current stage and raises
``ScopeGraphStateError`` when called out of order.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tree_sitter import Node, Query

from codestruct.core.exceptions import ScopeGraphStateError
from codestruct.core.logger import get_logger

from .syntax import SyntaxTree, TextRange, ancestors, node_key

logger = get_logger(__name__)

SCOPE_CAPTURE = "local.scope"
DEFINITION_CAPTURE = "local.definition"
REFERENCE_CAPTURE = "local.reference"
MEMBER_CAPTURE = "local.member"
CLASS_SCOPE = "class"


class GraphStage(str, Enum):
    """Construction stages, in order."""

    PARSED = "parsed"
    SCOPES_COLLECTED = "scopes_collected"
    DEFINITIONS_BOUND = "definitions_bound"
    REFERENCES_RESOLVED = "references_resolved"
    FINALIZED = "finalized"


class NodeKind(str, Enum):
    SCOPE = "scope"
    DEFINITION = "definition"
    REFERENCE = "reference"


class EdgeKind(str, Enum):
    PARENT_SCOPE = "parent-scope"
    DEFINES = "defines"
    RESOLVES_TO = "resolves-to"


@dataclass(frozen=True, slots=True)
class GraphNode:
    """One scope, definition or reference.

    ``name`` is empty for scopes. ``symbol_kind`` is the ``<kind>`` suffix of
    a ``@local.scope.<kind>`` or ``@local.definition.<kind>`` capture and
    empty otherwise.
    """

    id: int
    kind: NodeKind
    name: str
    node_type: str
    span: TextRange
    symbol_kind: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "name": self.name,
            "node_type": self.node_type,
            "symbol_kind": self.symbol_kind,
            "start": [self.span.start.line, self.span.start.column],
            "end": [self.span.end.line, self.span.end.column],
        }


@dataclass(frozen=True, slots=True)
class Edge:
    kind: EdgeKind
    source: int
    target: int

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "source": self.source, "target": self.target}


class ScopeGraph:
    """Finished scope graph of one file. Read-only once built."""

    ROOT_ID = 0

    def __init__(
        self,
        file_path: str,
        nodes: list[GraphNode],
        edges: list[Edge],
        parents: dict[int, int],
        bindings: dict[int, list[int]],
        resolutions: dict[int, int | None],
    ) -> None:
        self.file_path = file_path
        self._nodes = nodes
        self._edges = edges
        self._parents = parents
        self._bindings = bindings
        self._resolutions = resolutions

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, node_id: int) -> GraphNode:
        """Node by id.

        Raises:
            KeyError: If no node has this id.
        """
        if not 0 <= node_id < len(self._nodes):
            raise KeyError(node_id)
        return self._nodes[node_id]

    @property
    def root(self) -> GraphNode:
        return self._nodes[self.ROOT_ID]

    def _of_kind(self, kind: NodeKind) -> list[GraphNode]:
        return [n for n in self._nodes if n.kind is kind]

    def scopes(self) -> list[GraphNode]:
        return self._of_kind(NodeKind.SCOPE)

    def definitions(self) -> list[GraphNode]:
        return self._of_kind(NodeKind.DEFINITION)

    def references(self) -> list[GraphNode]:
        return self._of_kind(NodeKind.REFERENCE)

    def edges(self) -> list[Edge]:
        return list(self._edges)

    def parent_of(self, scope_id: int) -> int | None:
        """Parent scope id, ``None`` for the root."""
        return self._parents.get(scope_id)

    def scope_chain(self, scope_id: int) -> Iterator[int]:
        """Yield ``scope_id`` and its ancestors up to the root."""
        current: int | None = scope_id
        while current is not None:
            yield current
            current = self._parents.get(current)

    def definitions_in(self, scope_id: int) -> list[GraphNode]:
        """Definitions bound directly in a scope, in source order."""
        return [self._nodes[i] for i in self._bindings.get(scope_id, [])]

    def resolve(self, reference_id: int) -> int | None:
        """Definition a reference resolves to, or ``None`` when unresolved.

        Raises:
            KeyError: If the id is not a reference of this graph.
        """
        if reference_id not in self._resolutions:
            raise KeyError(reference_id)
        return self._resolutions[reference_id]

    def unresolved(self) -> list[GraphNode]:
        return [self._nodes[i] for i, target in self._resolutions.items() if target is None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "nodes": [n.to_dict() for n in self._nodes],
            "edges": [e.to_dict() for e in self._edges],
        }


class ScopeGraphBuilder:
    """Builds a ``ScopeGraph`` stage by stage from ``locals`` query captures.

    Rules:
        * The root scope is the whole file. Scope captures nest by syntax.
        * A definition binds in its nearest enclosing scope, except that the
          ``name`` of a scope node (a function's own name, say) binds in the
          scope around that node.
        * A node captured both as definition and reference is a definition.
        * A node captured as ``@local.member`` is never a reference. Member
          and keyword names such as ``self.name`` live in another namespace.
        * A reference resolves in the nearest scope on its chain that binds
          the same name; within a scope the first definition in source
          order wins.
        * A ``@local.scope.class`` scope is searched only for references made
          directly in it. Code nested inside the class skips it.
    """

    def __init__(self, tree: SyntaxTree, query: Query | None, file_path: str = "") -> None:
        """Initialize the builder.

        Args:
            tree: Parsed file.
            query: Compiled ``locals`` query, or ``None`` for a graph holding
                only the root scope.
            file_path: Path recorded on the graph.
        """
        self.tree = tree
        self.file_path = file_path
        self.stage = GraphStage.PARSED
        self._scope_nodes: list[tuple[str, Node]] = []
        self._definition_nodes: list[tuple[str, Node]] = []
        self._reference_nodes: list[Node] = []
        if query is not None:
            self._split_captures(tree.captures(query))

        self._nodes: list[GraphNode] = []
        self._edges: list[Edge] = []
        self._parents: dict[int, int] = {}
        self._bindings: dict[int, list[int]] = {}
        self._resolutions: dict[int, int | None] = {}
        self._scope_ids: dict[tuple[int, int, str], int] = {}
        self._class_scopes: set[int] = set()

    def _split_captures(self, captures: list[tuple[str, Node]]) -> None:
        scopes: dict = {}
        seen_definitions: set = set()
        members: set = set()
        for name, node in captures:
            key = node_key(node)
            if name == SCOPE_CAPTURE or name.startswith(SCOPE_CAPTURE + "."):
                kind = name[len(SCOPE_CAPTURE) + 1:]
                if key not in scopes or (kind and not scopes[key][0]):
                    scopes[key] = (kind, node)
            elif name == DEFINITION_CAPTURE or name.startswith(DEFINITION_CAPTURE + "."):
                if key not in seen_definitions:
                    seen_definitions.add(key)
                    self._definition_nodes.append((name[len(DEFINITION_CAPTURE) + 1:], node))
            elif name == MEMBER_CAPTURE:
                members.add(key)
            elif name == REFERENCE_CAPTURE:
                self._reference_nodes.append(node)
        self._scope_nodes = list(scopes.values())

        seen_references: set = set()
        references: list[Node] = []
        for node in self._reference_nodes:
            key = node_key(node)
            if key in seen_definitions or key in members or key in seen_references:
                continue
            seen_references.add(key)
            references.append(node)
        self._reference_nodes = references

    def _require(self, expected: GraphStage) -> None:
        if self.stage is not expected:
            raise ScopeGraphStateError(
                f"Scope graph is {self.stage.value}, expected {expected.value}",
                current=self.stage.value,
                expected=expected.value,
            )

    def _add(self, kind: NodeKind, node: Node, name: str = "", symbol_kind: str = "") -> int:
        node_id = len(self._nodes)
        self._nodes.append(
            GraphNode(
                id=node_id,
                kind=kind,
                name=name,
                node_type=node.type,
                span=self.tree.text_range(node),
                symbol_kind=symbol_kind,
            )
        )
        return node_id

    def _enclosing_scope(self, node: Node) -> int:
        for parent in ancestors(node):
            scope_id = self._scope_ids.get(node_key(parent))
            if scope_id is not None:
                return scope_id
        return ScopeGraph.ROOT_ID

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def collect_scopes(self) -> "ScopeGraphBuilder":
        self._require(GraphStage.PARSED)
        root = self.tree.root
        self._scope_ids[node_key(root)] = self._add(NodeKind.SCOPE, root)
        # Outer scopes sort before the scopes they contain
        for kind, node in sorted(self._scope_nodes, key=lambda item: (item[1].start_byte, -item[1].end_byte)):
            key = node_key(node)
            if key in self._scope_ids:
                continue
            parent_id = self._enclosing_scope(node)
            scope_id = self._add(NodeKind.SCOPE, node, symbol_kind=kind)
            if kind == CLASS_SCOPE:
                self._class_scopes.add(scope_id)
            self._scope_ids[key] = scope_id
            self._parents[scope_id] = parent_id
            self._edges.append(Edge(EdgeKind.PARENT_SCOPE, scope_id, parent_id))
        self.stage = GraphStage.SCOPES_COLLECTED
        return self

    def _binding_scope(self, node: Node) -> int:
        parent = node.parent
        if parent is not None and node_key(parent) in self._scope_ids:
            name = parent.child_by_field_name("name")
            if name is not None and node_key(name) == node_key(node):
                return self._enclosing_scope(parent)
        return self._enclosing_scope(node)

    def bind_definitions(self) -> "ScopeGraphBuilder":
        self._require(GraphStage.SCOPES_COLLECTED)
        for symbol_kind, node in self._definition_nodes:
            name = self.tree.text(node)
            if not name:
                continue
            scope_id = self._binding_scope(node)
            def_id = self._add(NodeKind.DEFINITION, node, name, symbol_kind)
            self._bindings.setdefault(scope_id, []).append(def_id)
            self._edges.append(Edge(EdgeKind.DEFINES, scope_id, def_id))
        self.stage = GraphStage.DEFINITIONS_BOUND
        return self

    def _lookup(self, name: str, scope_id: int) -> int | None:
        current: int | None = scope_id
        while current is not None:
            if current == scope_id or current not in self._class_scopes:
                for def_id in self._bindings.get(current, []):
                    if self._nodes[def_id].name == name:
                        return def_id
            current = self._parents.get(current)
        return None

    def resolve_references(self) -> "ScopeGraphBuilder":
        self._require(GraphStage.DEFINITIONS_BOUND)
        for node in self._reference_nodes:
            name = self.tree.text(node)
            if not name:
                continue
            ref_id = self._add(NodeKind.REFERENCE, node, name)
            target = self._lookup(name, self._enclosing_scope(node))
            self._resolutions[ref_id] = target
            if target is not None:
                self._edges.append(Edge(EdgeKind.RESOLVES_TO, ref_id, target))
        self.stage = GraphStage.REFERENCES_RESOLVED
        return self

    def finalize(self) -> ScopeGraph:
        self._require(GraphStage.REFERENCES_RESOLVED)
        self.stage = GraphStage.FINALIZED
        graph = ScopeGraph(
            file_path=self.file_path,
            nodes=self._nodes,
            edges=self._edges,
            parents=self._parents,
            bindings=self._bindings,
            resolutions=self._resolutions,
        )
        logger.debug(
            f"Scope graph for {self.file_path or '<memory>'}: "
            f"{len(graph.scopes())} scopes, {len(graph.definitions())} definitions, "
            f"{len(graph.references())} references"
        )
        return graph

    def build(self) -> ScopeGraph:
        """Run all stages on a fresh builder."""
        return self.collect_scopes().bind_definitions().resolve_references().finalize()
