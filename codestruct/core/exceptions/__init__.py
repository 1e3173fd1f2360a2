"""Exception definitions module."""

from codestruct.core.exceptions.errors import (
    AmbiguousOrMissingProviderError,
    CodeStructError,
    ConfigurationError,
    ParseFailureError,
    QueryLoadError,
    ScopeGraphStateError,
    UnsupportedLanguageError,
)

__all__ = [
    "CodeStructError",
    "UnsupportedLanguageError",
    "ParseFailureError",
    "AmbiguousOrMissingProviderError",
    "QueryLoadError",
    "ScopeGraphStateError",
    "ConfigurationError",
]
