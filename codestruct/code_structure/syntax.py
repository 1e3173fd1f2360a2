"""Thin adapter over tree-sitter trees, nodes and query execution."""

from collections.abc import Iterator
from dataclasses import dataclass, field

from tree_sitter import Language, Node, Query, QueryCursor, Tree


@dataclass(frozen=True, slots=True)
class Point:
    """Location in source text. ``line`` and ``column`` are 0-based."""

    line: int
    column: int
    byte_offset: int


@dataclass(frozen=True, slots=True)
class TextRange:
    """Span of source text covered by a syntax node."""

    start: Point
    end: Point
    text: str

    @classmethod
    def from_node(cls, node: Node, source: bytes) -> "TextRange":
        """Build a range from a node; the only way ranges are created."""
        return cls(
            start=Point(node.start_point[0], node.start_point[1], node.start_byte),
            end=Point(node.end_point[0], node.end_point[1], node.end_byte),
            text=source[node.start_byte : node.end_byte].decode("utf-8", errors="replace"),
        )


@dataclass(frozen=True, slots=True)
class QueryMatch:
    """One match of a query: the pattern index and its captures by name."""

    pattern_index: int
    captures: dict[str, list[Node]] = field(default_factory=dict)

    def first(self, name: str) -> Node | None:
        """First node captured under ``name``, if any."""
        nodes = self.captures.get(name)
        return nodes[0] if nodes else None

    def names(self) -> list[str]:
        """Capture names present in this match."""
        return list(self.captures)


class QueryMatches:
    """Lazy, restartable sequence of query matches.

    Every iteration runs a fresh cursor over the same node, so iterating
    twice yields the same matches in the same order.
    """

    def __init__(self, query: Query, node: Node) -> None:
        self._query = query
        self._node = node

    def __iter__(self) -> Iterator[QueryMatch]:
        cursor = QueryCursor(self._query)
        for pattern_index, captures in cursor.matches(self._node):
            yield QueryMatch(pattern_index, captures)

    def to_list(self) -> list[QueryMatch]:
        """Materialize all matches."""
        return list(self)


class SyntaxTree:
    """Concrete syntax tree for one file together with its source."""

    def __init__(self, tree: Tree, source: bytes, language: str, grammar: Language) -> None:
        """Initialize the adapter.

        Args:
            tree: Parsed tree-sitter tree.
            source: The exact bytes that were parsed.
            language: Language tag the tree was parsed with.
            grammar: Grammar used for parsing; queries must be compiled against it.
        """
        self.tree = tree
        self.source = source
        self.language = language
        self.grammar = grammar

    @property
    def root(self) -> Node:
        """Root node of the tree."""
        return self.tree.root_node

    @property
    def has_error(self) -> bool:
        """Whether the parser had to recover from syntax errors."""
        return self.tree.root_node.has_error

    @property
    def is_empty(self) -> bool:
        """Whether the source holds nothing but whitespace."""
        return not self.source.strip()

    def text(self, node: Node | None) -> str:
        """Source text of a node, or an empty string for ``None``."""
        if node is None:
            return ""
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def text_range(self, node: Node) -> TextRange:
        """Range covered by a node."""
        return TextRange.from_node(node, self.source)

    def field_text(self, node: Node, field_name: str) -> str:
        """Text of a named child field, or an empty string."""
        return self.text(node.child_by_field_name(field_name))

    def find_all(self, query: Query, node: Node | None = None) -> QueryMatches:
        """Run a query under ``node`` (the root by default)."""
        return QueryMatches(query, node if node is not None else self.root)

    def captures(self, query: Query, node: Node | None = None) -> list[tuple[str, Node]]:
        """All captures as ``(name, node)`` pairs in source order."""
        cursor = QueryCursor(query)
        result = cursor.captures(node if node is not None else self.root)
        pairs = [(name, captured) for name, nodes in result.items() for captured in nodes]
        pairs.sort(key=lambda item: (item[1].start_byte, -item[1].end_byte, item[0]))
        return pairs

    def compile(self, source: str) -> Query:
        """Compile a query against this tree's grammar."""
        return Query(self.grammar, source)


def node_key(node: Node) -> tuple[int, int, str]:
    """Identity of a node within one tree."""
    return (node.start_byte, node.end_byte, node.type)


def ancestors(node: Node) -> Iterator[Node]:
    """Yield the parents of a node, nearest first."""
    parent = node.parent
    while parent is not None:
        yield parent
        parent = parent.parent


def children_of_type(node: Node | None, *types: str) -> list[Node]:
    """Direct named children of a node whose type is one of ``types``."""
    if node is None:
        return []
    return [child for child in node.named_children if child.type in types]


def first_child_of_type(node: Node | None, *types: str) -> Node | None:
    """First direct child of a node whose type is one of ``types``."""
    if node is None:
        return None
    for child in node.children:
        if child.type in types:
            return child
    return None


def strip_quotes(value: str) -> str:
    """Remove one level of matching quotes around a literal."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'`":
        return value[1:-1]
    return value
