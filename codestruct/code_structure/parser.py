"""Structure engine: the entry point tying catalog, registry and structurers together."""

import asyncio
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from codestruct.core.config import StructurerSettings, get_settings
from codestruct.core.exceptions import CodeStructError, ParseFailureError
from codestruct.core.logger import get_logger

from .base import StructurerProvider, StructurerRegistry
from .grammar import GrammarCatalog
from .languages import LanguageStructurerBase, default_structurers
from .languages_map import detect_language, resolve_language
from .models import BatchResult, CodeDataStruct, Diagnostic, DiagnosticLevel, FileResult
from .scope_graph import ScopeGraph, ScopeGraphBuilder

logger = get_logger(__name__)

# (file_path, content, language or None to detect from the path)
SourceInput = tuple[str, str | bytes, str | None]


def decode_source(content: str | bytes, file_path: str, language: str | None = None) -> str:
    """Decode file bytes as UTF-8.

    Raises:
        ParseFailureError: If the bytes are not valid UTF-8.
    """
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseFailureError(
            f"File is not valid UTF-8: {file_path}",
            language=language,
            file_path=file_path,
            details={"error": str(e)},
        ) from e


class StructureEngine:
    """Owns one grammar catalog and one structurer registry.

    Nothing is global: two engines share no state besides the grammars
    each catalog loads for itself.
    """

    def __init__(
        self,
        settings: StructurerSettings | None = None,
        catalog: GrammarCatalog | None = None,
        registry: StructurerRegistry | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            settings: Structurer settings. Defaults to the global settings.
            catalog: Grammar catalog. A new one is created if omitted.
            registry: Registry of structurers. Defaults to every built-in one.
        """
        self.settings = settings or get_settings().structurer
        self.catalog = catalog or GrammarCatalog(default_languages=self.settings.languages)
        self.registry = registry or StructurerRegistry(
            default_structurers(
                include_content=self.settings.include_content,
                query_dir=self.settings.query_dir,
            )
        )
        self._initialized = False
        self._init_lock = threading.Lock()

    @classmethod
    def create_default(cls) -> "StructureEngine":
        """Engine configured from the global settings."""
        return cls(settings=get_settings().structurer)

    def initialize(self) -> None:
        """Validate the registry and initialize every structurer. Idempotent.

        Raises:
            AmbiguousOrMissingProviderError: If a configured language has no
                structurer or more than one.
            QueryLoadError: If a structurer's queries are missing or invalid.
        """
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            self.registry.validate(self.settings.languages)
            self.registry.init_all(self.catalog)
            self._initialized = True
            logger.debug(f"Engine ready with {len(self.registry.providers)} structurers")

    async def ready(self) -> dict[str, str]:
        """Load the configured grammars and initialize the structurers.

        Returns:
            Languages whose grammar failed to load, mapped to the reason.
        """
        failures = await self.catalog.ready(self.settings.languages)
        for language, reason in failures.items():
            logger.warning(f"Grammar for {language} unavailable: {reason}")
        await asyncio.to_thread(self.initialize)
        return failures

    def structurer_for(self, language: str) -> StructurerProvider:
        """The single structurer for a language tag."""
        self.initialize()
        return self.registry.require_structurer(language)

    def parse_file(self, content: str | bytes, file_path: str, language: str | None = None) -> list[CodeDataStruct]:
        """Extract the structures of one file.

        Args:
            content: Source text, or raw bytes decoded as UTF-8.
            file_path: Path of the file; also used to detect the language.
            language: Explicit language tag.

        Returns:
            Top-level structures in source order.
        """
        tag = resolve_language(language, file_path)
        text = decode_source(content, file_path, tag)
        return self.structurer_for(tag).parse_file(text, file_path, tag)

    def parse_path(self, path: str | Path, language: str | None = None) -> list[CodeDataStruct]:
        """Read a file from disk and extract its structures."""
        path = Path(path)
        return self.parse_file(path.read_bytes(), str(path), language)

    def build_scope_graph(self, content: str | bytes, file_path: str, language: str | None = None) -> ScopeGraph:
        """Build the scope graph of one file.

        A language without a ``locals`` query yields a graph holding only
        the file scope.
        """
        tag = resolve_language(language, file_path)
        text = decode_source(content, file_path, tag)
        provider = self.structurer_for(tag)
        tree = self.catalog.parse(text, tag)
        query = None
        if isinstance(provider, LanguageStructurerBase) and provider.has_query("locals"):
            query = provider.query("locals", tree)
        return ScopeGraphBuilder(tree, query, file_path).build()

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def _parse_one(self, file_path: str, content: str | bytes, language: str | None) -> tuple[FileResult, list[Diagnostic]]:
        tag = resolve_language(language, file_path)
        text = decode_source(content, file_path, tag)
        provider = self.structurer_for(tag)
        tree = self.catalog.parse(text, tag)
        structs = provider.parse_tree(tree, file_path)

        diagnostics: list[Diagnostic] = []
        if tree.has_error:
            diagnostics.append(
                Diagnostic(
                    file_path=file_path,
                    language=tag,
                    level=DiagnosticLevel.WARNING,
                    error_type="SyntaxError",
                    message="Source has syntax errors; structures are best effort",
                )
            )
        return FileResult(file_path=file_path, language=tag, structs=structs), diagnostics

    def parse_batch(self, files: Iterable[SourceInput], max_workers: int | None = None) -> BatchResult:
        """Parse many files in parallel.

        A failing file becomes an error diagnostic and never stops the
        others. Results and diagnostics keep the input order.

        Args:
            files: ``(file_path, content, language)`` triples; a ``None``
                language is detected from the path.
            max_workers: Worker threads. Defaults to the configured count.

        Returns:
            Per-file results plus diagnostics.
        """
        items = list(files)
        self.initialize()
        outcomes: dict[int, tuple[FileResult | None, list[Diagnostic]]] = {}

        with ThreadPoolExecutor(max_workers=max_workers or self.settings.max_workers) as executor:
            future_to_index = {
                executor.submit(self._parse_one, path, content, language): index
                for index, (path, content, language) in enumerate(items)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                file_path, _, language = items[index]
                try:
                    outcomes[index] = future.result()
                except CodeStructError as e:
                    logger.warning(f"Failed to parse {file_path}: {e.message}")
                    outcomes[index] = (None, [_error_diagnostic(file_path, language, e)])
                except Exception as e:
                    logger.error(f"Failed to parse {file_path}: {e}")
                    outcomes[index] = (None, [_error_diagnostic(file_path, language, e)])

        batch = BatchResult()
        for index in range(len(items)):
            result, diagnostics = outcomes[index]
            if result is not None:
                batch.results.append(result)
            batch.diagnostics.extend(diagnostics)

        logger.info(
            f"Parsed {len(batch.results)} of {len(items)} files, "
            f"{batch.struct_count} structures, {len(batch.errors)} errors"
        )
        return batch


def _error_diagnostic(file_path: str, language: str | None, error: Exception) -> Diagnostic:
    message = error.message if isinstance(error, CodeStructError) else str(error)
    return Diagnostic(
        file_path=file_path,
        language=getattr(error, "language", None) or language or detect_language(file_path),
        level=DiagnosticLevel.ERROR,
        error_type=type(error).__name__,
        message=message,
    )


class ProjectParser:
    """Parser for entire projects/directories."""

    def __init__(self, engine: StructureEngine | None = None) -> None:
        """Initialize the project parser.

        Args:
            engine: Engine to parse with. A default engine is created if omitted.
        """
        self.engine = engine or StructureEngine.create_default()
        self.settings = self.engine.settings

    def find_source_files(self, root_path: Path) -> Iterator[Path]:
        """Find all source files to parse.

        Args:
            root_path: Root directory to search.

        Yields:
            Paths to source files with a known extension, in sorted order.
        """
        excluded_dirs = set(self.settings.excluded_dirs)

        for file_path in sorted(Path(root_path).rglob("*")):
            if any(part in excluded_dirs for part in file_path.relative_to(root_path).parts):
                continue
            if not file_path.is_file() or detect_language(file_path) is None:
                continue

            try:
                if file_path.stat().st_size > self.settings.max_file_size:
                    logger.debug(f"Skipping large file: {file_path}")
                    continue
            except OSError:
                continue

            yield file_path

    def parse_project(self, root_path: Path | str) -> BatchResult:
        """Parse all source files in a project.

        Args:
            root_path: Root directory of the project.

        Returns:
            Batch result over every source file found.
        """
        root_path = Path(root_path).resolve()
        files = list(self.find_source_files(root_path))
        logger.info(f"Found {len(files)} source files to parse")

        inputs: list[SourceInput] = []
        unreadable: list[Diagnostic] = []
        for file_path in files:
            try:
                inputs.append((str(file_path), file_path.read_bytes(), None))
            except OSError as e:
                unreadable.append(_error_diagnostic(str(file_path), None, e))

        batch = self.engine.parse_batch(inputs)
        batch.diagnostics.extend(unreadable)
        return batch


def parse_file(file_path: Path | str, language: str | None = None) -> list[CodeDataStruct]:
    """Convenience function to parse a single file.

    Args:
        file_path: Path to the file.
        language: Explicit language tag.

    Returns:
        Top-level structures of the file.
    """
    return StructureEngine.create_default().parse_path(file_path, language)


def parse_project(root_path: Path | str) -> BatchResult:
    """Convenience function to parse a project.

    Args:
        root_path: Root directory of the project.

    Returns:
        Batch result for the project.
    """
    return ProjectParser().parse_project(root_path)
