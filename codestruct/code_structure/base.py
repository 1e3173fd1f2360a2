"""Structurer provider contract and the registry that dispatches to providers."""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable

from codestruct.core.exceptions import AmbiguousOrMissingProviderError
from codestruct.core.logger import get_logger

from .grammar import GrammarCatalog
from .models import CodeDataStruct
from .syntax import SyntaxTree

logger = get_logger(__name__)


class StructurerProvider(ABC):
    """Abstract base class for language-specific structurers."""

    # Primary language tag and every tag this provider accepts
    language_id: str = ""
    languages: tuple[str, ...] = ()

    def __init__(self) -> None:
        self._catalog: GrammarCatalog | None = None

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def is_initialized(self) -> bool:
        return self._catalog is not None

    @property
    def catalog(self) -> GrammarCatalog:
        if self._catalog is None:
            raise RuntimeError(f"{self.name} used before init()")
        return self._catalog

    def is_applicable(self, language: str) -> bool:
        """Check if this provider handles the given language tag."""
        tag = GrammarCatalog.canonical(language)
        return tag == self.language_id or tag in self.languages

    def init(self, catalog: GrammarCatalog) -> None:
        """Bind the provider to a grammar catalog. Idempotent.

        Args:
            catalog: Catalog used to parse source text.
        """
        if self._catalog is catalog:
            return
        self._on_init(catalog)
        self._catalog = catalog

    def _on_init(self, catalog: GrammarCatalog) -> None:
        """Hook for subclasses to load resources at init time."""

    def parse_file(self, content: str | bytes, file_path: str, language: str | None = None) -> list[CodeDataStruct]:
        """Parse source text and extract its structures.

        Args:
            content: Source text.
            file_path: Path of the file, recorded on every structure.
            language: Tag to parse with. Defaults to ``language_id``.

        Returns:
            Top-level structures in source order.
        """
        tree = self.catalog.parse(content, language or self.language_id)
        return self.parse_tree(tree, file_path)

    @abstractmethod
    def parse_tree(self, tree: SyntaxTree, file_path: str) -> list[CodeDataStruct]:
        """Extract structures from an already parsed tree."""


class StructurerRegistry:
    """Holds the bound structurer providers and resolves them by language."""

    def __init__(self, providers: Iterable[StructurerProvider] | None = None) -> None:
        self._providers: list[StructurerProvider] = []
        self._lock = threading.Lock()
        for provider in providers or ():
            self.bind(provider)

    def bind(self, provider: StructurerProvider | type[StructurerProvider]) -> StructurerProvider:
        """Add a provider. Binding the same instance or class twice is a no-op.

        Args:
            provider: Provider instance, or a provider class to instantiate.

        Returns:
            The provider that is bound for this class.
        """
        cls = provider if isinstance(provider, type) else type(provider)
        with self._lock:
            for existing in self._providers:
                if existing is provider or type(existing) is cls:
                    return existing
            instance = provider() if isinstance(provider, type) else provider
            self._providers.append(instance)
        logger.debug(f"Bound structurer {instance.name}")
        return instance

    @property
    def providers(self) -> list[StructurerProvider]:
        return list(self._providers)

    def applicable(self, language: str) -> list[StructurerProvider]:
        """All providers that claim the language."""
        return [p for p in self._providers if p.is_applicable(language)]

    def get_structurer(self, language: str) -> StructurerProvider | None:
        """Get the single provider for a language.

        Returns:
            The provider, or None when no provider applies.

        Raises:
            AmbiguousOrMissingProviderError: If more than one provider applies.
        """
        matches = self.applicable(language)
        if len(matches) > 1:
            raise AmbiguousOrMissingProviderError(
                f"Multiple structurers apply to language: {language}",
                language=language,
                providers=[p.name for p in matches],
            )
        return matches[0] if matches else None

    def require_structurer(self, language: str) -> StructurerProvider:
        """Like ``get_structurer`` but a missing provider is an error too."""
        provider = self.get_structurer(language)
        if provider is None:
            raise AmbiguousOrMissingProviderError(
                f"No structurer applies to language: {language}",
                language=language,
            )
        return provider

    def validate(self, languages: Iterable[str]) -> None:
        """Check that every language resolves to exactly one provider.

        Raises:
            AmbiguousOrMissingProviderError: On the first language that does not.
        """
        for language in languages:
            self.require_structurer(language)

    def init_all(self, catalog: GrammarCatalog) -> None:
        """Initialize every bound provider against the catalog."""
        for provider in self._providers:
            provider.init(catalog)
