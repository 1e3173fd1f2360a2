"""Code structure extraction.

Parses source files of several languages into one structural model
(``CodeDataStruct``) and builds per-file scope graphs.

Example usage:
    from codestruct.code_structure import StructureEngine

    engine = StructureEngine.create_default()
    structs = engine.parse_file(source, "src/Foo.java")
    print(structs_to_json(structs))

    graph = engine.build_scope_graph(source, "src/Foo.java")
    print(f"Unresolved references: {len(graph.unresolved())}")
"""

from .base import StructurerProvider, StructurerRegistry
from .grammar import GrammarCatalog, GrammarState
from .languages_map import detect_language, resolve_language
from .models import (
    BatchResult,
    CodeAnnotation,
    CodeDataStruct,
    CodeField,
    CodeFunction,
    CodeParameter,
    CodePosition,
    DataStructType,
    Diagnostic,
    DiagnosticLevel,
    FileResult,
    structs_to_json,
)
from .parser import ProjectParser, StructureEngine, parse_file, parse_project
from .scope_graph import EdgeKind, GraphNode, GraphStage, NodeKind, ScopeGraph, ScopeGraphBuilder
from .syntax import Point, QueryMatch, QueryMatches, SyntaxTree, TextRange

__all__ = [
    # Data models
    "BatchResult",
    "CodeAnnotation",
    "CodeDataStruct",
    "CodeField",
    "CodeFunction",
    "CodeParameter",
    "CodePosition",
    "DataStructType",
    "Diagnostic",
    "DiagnosticLevel",
    "FileResult",
    "structs_to_json",
    # Syntax trees
    "Point",
    "QueryMatch",
    "QueryMatches",
    "SyntaxTree",
    "TextRange",
    # Grammars and structurers
    "GrammarCatalog",
    "GrammarState",
    "StructurerProvider",
    "StructurerRegistry",
    # Scope graph
    "EdgeKind",
    "GraphNode",
    "GraphStage",
    "NodeKind",
    "ScopeGraph",
    "ScopeGraphBuilder",
    # Engine
    "ProjectParser",
    "StructureEngine",
    "detect_language",
    "resolve_language",
    "parse_file",
    "parse_project",
]
