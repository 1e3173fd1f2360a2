"""Custom exception definitions for codestruct."""

from typing import Any


class CodeStructError(Exception):
    """Base exception for all codestruct errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Error message.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class UnsupportedLanguageError(CodeStructError):
    """Exception raised when no grammar is registered for a language tag."""

    def __init__(
        self,
        message: str,
        language: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize unsupported language error.

        Args:
            message: Error message.
            language: The language tag that was requested.
            details: Additional error details.
        """
        details = details or {}
        if language:
            details["language"] = language
        self.language = language
        super().__init__(message, details)


class ParseFailureError(CodeStructError):
    """Exception raised when source text cannot be turned into a syntax tree."""

    def __init__(
        self,
        message: str,
        language: str | None = None,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize parse failure error.

        Args:
            message: Error message.
            language: Language of the input.
            file_path: Path of the file being parsed.
            details: Additional error details.
        """
        details = details or {}
        if language:
            details["language"] = language
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, details)


class AmbiguousOrMissingProviderError(CodeStructError):
    """Exception raised when a language has zero or several structurers."""

    def __init__(
        self,
        message: str,
        language: str | None = None,
        providers: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize provider resolution error.

        Args:
            message: Error message.
            language: Language that failed to resolve.
            providers: Names of the applicable providers, if any.
            details: Additional error details.
        """
        details = details or {}
        if language:
            details["language"] = language
        if providers:
            details["providers"] = providers
        super().__init__(message, details)


class QueryLoadError(CodeStructError):
    """Exception raised when a query artifact is missing or does not compile."""

    def __init__(
        self,
        message: str,
        query_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize query load error.

        Args:
            message: Error message.
            query_path: Path of the offending query file.
            details: Additional error details.
        """
        details = details or {}
        if query_path:
            details["query_path"] = query_path
        super().__init__(message, details)


class ScopeGraphStateError(CodeStructError):
    """Exception raised on an out-of-order scope graph construction step."""

    def __init__(
        self,
        message: str,
        current: str | None = None,
        expected: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize scope graph state error.

        Args:
            message: Error message.
            current: Stage the builder is in.
            expected: Stage the operation requires.
            details: Additional error details.
        """
        details = details or {}
        if current:
            details["current"] = current
        if expected:
            details["expected"] = expected
        super().__init__(message, details)


class ConfigurationError(CodeStructError):
    """Exception raised for configuration errors."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error.

        Args:
            message: Error message.
            config_key: Configuration key that caused the error.
            details: Additional error details.
        """
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details)
