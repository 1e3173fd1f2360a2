"""Language-specific structurers."""

from pathlib import Path

from .base import LanguageStructurerBase
from .go_parser import GoStructurer
from .java_parser import JavaStructurer
from .proto_parser import ProtoStructurer
from .python_parser import PythonStructurer
from .typescript_parser import TypeScriptStructurer

__all__ = [
    "LanguageStructurerBase",
    "GoStructurer",
    "JavaStructurer",
    "ProtoStructurer",
    "PythonStructurer",
    "TypeScriptStructurer",
    "default_structurers",
]


def default_structurers(
    include_content: bool = True, query_dir: Path | None = None
) -> list[LanguageStructurerBase]:
    """One instance of every built-in structurer."""
    return [
        JavaStructurer(include_content=include_content, query_dir=query_dir),
        TypeScriptStructurer(include_content=include_content, query_dir=query_dir),
        GoStructurer(include_content=include_content, query_dir=query_dir),
        PythonStructurer(include_content=include_content, query_dir=query_dir),
        ProtoStructurer(include_content=include_content, query_dir=query_dir),
    ]
