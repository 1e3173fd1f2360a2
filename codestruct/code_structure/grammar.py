"""Grammar catalog: lazily loaded tree-sitter grammars keyed by language tag."""

import asyncio
import importlib
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tree_sitter import Language, Parser

from codestruct.core.config.settings import DEFAULT_LANGUAGES
from codestruct.core.exceptions import (
    ConfigurationError,
    ParseFailureError,
    UnsupportedLanguageError,
)
from codestruct.core.logger import get_logger

from .syntax import SyntaxTree

logger = get_logger(__name__)

GrammarLoader = Callable[[], Any]

LANGUAGE_ALIASES: dict[str, str] = {
    "ts": "typescript",
    "typescriptreact": "tsx",
    "js": "javascript",
    "jsx": "javascript",
    "javascriptreact": "javascript",
    "golang": "go",
    "py": "python",
    "protobuf": "proto",
}


def _module_loader(module_name: str, attr: str = "language") -> GrammarLoader:
    """Loader importing a grammar binding package on first use."""

    def load() -> Any:
        module = importlib.import_module(module_name)
        return getattr(module, attr)()

    return load


def _language_pack_loader(name: str) -> GrammarLoader:
    """Loader resolving a grammar from tree-sitter-language-pack."""

    def load() -> Any:
        from tree_sitter_language_pack import get_language

        return get_language(name)

    return load


BUILTIN_LOADERS: dict[str, GrammarLoader] = {
    "java": _module_loader("tree_sitter_java"),
    "go": _module_loader("tree_sitter_go"),
    "python": _module_loader("tree_sitter_python"),
    "typescript": _module_loader("tree_sitter_typescript", "language_typescript"),
    "tsx": _module_loader("tree_sitter_typescript", "language_tsx"),
    # JSX is common in .js files, the tsx grammar accepts both
    "javascript": _module_loader("tree_sitter_typescript", "language_tsx"),
    "proto": _language_pack_loader("proto"),
}


class GrammarState(str, Enum):
    """Load state of a grammar handle."""

    UNLOADED = "unloaded"
    READY = "ready"


@dataclass
class GrammarHandle:
    """One registered grammar and its load state."""

    tag: str
    loader: GrammarLoader
    language: Language | None = None
    error: str | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def state(self) -> GrammarState:
        return GrammarState.READY if self.language is not None else GrammarState.UNLOADED


def _as_language(loaded: Any) -> Language:
    if isinstance(loaded, Language):
        return loaded
    return Language(loaded)


class GrammarCatalog:
    """Registry of grammars with an awaitable bulk load and blocking lazy load.

    The cache is append-only: once a grammar is loaded it is never replaced,
    so trees handed out earlier always stay consistent with their grammar.
    """

    def __init__(
        self,
        default_languages: Iterable[str] | None = None,
        loaders: dict[str, GrammarLoader] | None = None,
    ) -> None:
        """Initialize the catalog.

        Args:
            default_languages: Languages loaded by ``ready()`` when called
                without arguments.
            loaders: Grammar loaders by tag. Defaults to the built-in set.
        """
        self._handles: dict[str, GrammarHandle] = {}
        self._registry_lock = threading.Lock()
        self._inflight: dict[tuple[str, ...], asyncio.Future] = {}
        self.default_languages = tuple(
            self.canonical(lang) for lang in (default_languages or DEFAULT_LANGUAGES)
        )
        for tag, loader in (loaders if loaders is not None else BUILTIN_LOADERS).items():
            self._handles[tag] = GrammarHandle(tag=tag, loader=loader)

    @staticmethod
    def canonical(language: str) -> str:
        """Normalize a language tag and resolve aliases."""
        tag = language.strip().lower()
        return LANGUAGE_ALIASES.get(tag, tag)

    def register(self, language: str, loader: GrammarLoader) -> None:
        """Register an additional grammar under a new tag.

        Raises:
            ConfigurationError: If the tag is already registered.
        """
        tag = self.canonical(language)
        with self._registry_lock:
            if tag in self._handles:
                raise ConfigurationError(
                    f"Grammar already registered for language: {tag}",
                    config_key=tag,
                )
            self._handles[tag] = GrammarHandle(tag=tag, loader=loader)
        logger.debug(f"Registered grammar for {tag}")

    def languages(self) -> list[str]:
        """All registered language tags."""
        return sorted(self._handles)

    def is_registered(self, language: str) -> bool:
        return self.canonical(language) in self._handles

    def state(self, language: str) -> GrammarState:
        """Load state of a registered grammar."""
        return self._handle(language).state

    @property
    def failures(self) -> dict[str, str]:
        """Languages whose last load attempt failed, with the reason."""
        return {
            tag: handle.error
            for tag, handle in self._handles.items()
            if handle.error is not None and handle.language is None
        }

    def _handle(self, language: str) -> GrammarHandle:
        tag = self.canonical(language)
        handle = self._handles.get(tag)
        if handle is None:
            raise UnsupportedLanguageError(
                f"No grammar registered for language: {language}",
                language=language,
                details={"registered": self.languages()},
            )
        return handle

    def ensure_ready(self, language: str) -> Language:
        """Load a grammar if needed and return it. Blocks the calling thread.

        Raises:
            UnsupportedLanguageError: If no grammar is registered for the tag.
            ParseFailureError: If the grammar fails to load.
        """
        handle = self._handle(language)
        if handle.language is not None:
            return handle.language

        with handle.lock:
            if handle.language is None:
                try:
                    handle.language = _as_language(handle.loader())
                except Exception as e:
                    handle.error = f"{type(e).__name__}: {e}"
                    logger.warning(f"Failed to load grammar for {handle.tag}: {e}")
                    raise ParseFailureError(
                        f"Grammar for {handle.tag} could not be loaded",
                        language=handle.tag,
                        details={"error": handle.error},
                    ) from e
                handle.error = None
                logger.debug(f"Loaded grammar for {handle.tag}")
        return handle.language

    def _load_many(self, tags: tuple[str, ...]) -> None:
        for tag in tags:
            try:
                self.ensure_ready(tag)
            except ParseFailureError:
                # the reason is kept on the handle; the rest still load
                continue

    def _settled(self, tag: str) -> bool:
        handle = self._handles.get(tag)
        return handle is None or handle.language is not None or handle.error is not None

    async def ready(self, languages: Iterable[str] | None = None) -> dict[str, str]:
        """Load grammars off the event loop.

        Idempotent; concurrent callers share one in-flight load. Cancelling
        a caller does not cancel the load itself.

        Args:
            languages: Tags to load. Defaults to ``default_languages``.

        Returns:
            Languages that failed to load, mapped to the reason.
        """
        tags = tuple(
            self.canonical(lang) for lang in (languages if languages is not None else self.default_languages)
        )
        pending = tuple(tag for tag in tags if not self._settled(tag))
        if pending:
            future = self._inflight.get(pending)
            if future is None:
                future = asyncio.ensure_future(asyncio.to_thread(self._load_many, pending))
                self._inflight[pending] = future
                future.add_done_callback(lambda _f, key=pending: self._inflight.pop(key, None))
            await asyncio.shield(future)

        result: dict[str, str] = {}
        for tag in tags:
            handle = self._handles.get(tag)
            if handle is None:
                result[tag] = "unsupported language"
            elif handle.language is None and handle.error is not None:
                result[tag] = handle.error
        return result

    def parse(self, text: str | bytes, language: str) -> SyntaxTree:
        """Parse source text into a syntax tree.

        A new parser is created per call, so concurrent calls are safe.

        Raises:
            UnsupportedLanguageError: If the language has no grammar.
            ParseFailureError: If the grammar cannot be loaded, the text
                cannot be encoded or no tree is produced.
        """
        tag = self.canonical(language)
        grammar = self.ensure_ready(tag)

        if isinstance(text, bytes):
            source = text
        else:
            try:
                source = text.encode("utf-8")
            except UnicodeEncodeError as e:
                raise ParseFailureError(
                    "Source text is not encodable as UTF-8",
                    language=tag,
                    details={"error": str(e)},
                ) from e

        tree = Parser(grammar).parse(source)
        if tree is None:
            raise ParseFailureError("Parser produced no tree", language=tag)
        return SyntaxTree(tree, source, tag, grammar)
