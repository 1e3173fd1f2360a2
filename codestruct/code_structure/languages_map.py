"""File extension to language tag mapping."""

from pathlib import Path

from codestruct.core.exceptions import UnsupportedLanguageError

from .grammar import GrammarCatalog

EXTENSION_LANGUAGE_MAP: dict[str, str] = {
    ".java": "java",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".go": "go",
    ".py": "python",
    ".pyi": "python",
    ".proto": "proto",
}


def detect_language(file_path: str | Path) -> str | None:
    """Language tag for a path, or ``None`` for unknown extensions."""
    return EXTENSION_LANGUAGE_MAP.get(Path(file_path).suffix.lower())


def resolve_language(language: str | None, file_path: str | Path | None) -> str:
    """Explicit tag if given (canonicalized), otherwise detect from the path.

    Raises:
        UnsupportedLanguageError: If neither yields a language.
    """
    if language:
        return GrammarCatalog.canonical(language)
    if file_path is not None:
        detected = detect_language(file_path)
        if detected is not None:
            return detected
        raise UnsupportedLanguageError(
            f"Unsupported file extension: {Path(file_path).suffix or '<none>'}",
            details={"file_path": str(file_path)},
        )
    raise UnsupportedLanguageError("Language must be provided when no file path is available")


def supported_extensions() -> list[str]:
    return sorted(EXTENSION_LANGUAGE_MAP)
