"""Tests for the grammar catalog."""

import asyncio
import threading

import pytest
import tree_sitter_java

from codestruct.code_structure.grammar import GrammarCatalog, GrammarState
from codestruct.core.exceptions import (
    ConfigurationError,
    ParseFailureError,
    UnsupportedLanguageError,
)


def _failing_loader():
    raise ImportError("grammar package not installed")


class TestCanonical:
    """Tests for tag normalization."""

    @pytest.mark.parametrize(
        "tag, expected",
        [
            ("Java", "java"),
            ("ts", "typescript"),
            ("jsx", "javascript"),
            ("golang", "go"),
            ("py", "python"),
            ("protobuf", "proto"),
            (" TSX ", "tsx"),
        ],
    )
    def test_aliases(self, tag, expected):
        """Test aliases resolve to canonical tags."""
        assert GrammarCatalog.canonical(tag) == expected


class TestEnsureReady:
    """Tests for the blocking lazy load."""

    def test_lazy_load(self):
        """Test a handle moves from Unloaded to Ready."""
        catalog = GrammarCatalog()
        assert catalog.state("java") == GrammarState.UNLOADED
        language = catalog.ensure_ready("java")
        assert language is not None
        assert catalog.state("java") == GrammarState.READY
        assert catalog.ensure_ready("java") is language

    def test_unknown_language(self):
        """Test an unregistered tag raises UnsupportedLanguageError."""
        catalog = GrammarCatalog()
        with pytest.raises(UnsupportedLanguageError):
            catalog.ensure_ready("cobol")

    def test_failing_loader(self):
        """Test a loader error becomes ParseFailureError and is recorded."""
        catalog = GrammarCatalog(loaders={"broken": _failing_loader})
        with pytest.raises(ParseFailureError) as exc_info:
            catalog.ensure_ready("broken")

        assert isinstance(exc_info.value.__cause__, ImportError)
        assert catalog.state("broken") == GrammarState.UNLOADED
        assert "ImportError" in catalog.failures["broken"]

    def test_loader_runs_once_under_contention(self):
        """Test concurrent callers share a single load."""
        calls = []
        barrier = threading.Barrier(4)

        def loader():
            calls.append(1)
            return tree_sitter_java.language()

        catalog = GrammarCatalog(loaders={"java": loader})

        def worker():
            barrier.wait()
            catalog.ensure_ready("java")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1


class TestRegister:
    """Tests for dynamic registration."""

    def test_register_custom_tag(self):
        """Test an extra grammar can be added under a new tag."""
        catalog = GrammarCatalog()
        catalog.register("java-legacy", tree_sitter_java.language)

        assert catalog.is_registered("java-legacy")
        tree = catalog.parse("class A {}", "java-legacy")
        assert tree.language == "java-legacy"
        assert tree.root.type == "program"

    def test_register_existing_tag(self):
        """Test re-registering a tag is refused."""
        catalog = GrammarCatalog()
        with pytest.raises(ConfigurationError):
            catalog.register("java", tree_sitter_java.language)

    def test_register_keeps_earlier_trees(self):
        """Test registration does not touch trees already returned."""
        catalog = GrammarCatalog()
        before = catalog.parse("class A {}", "java")
        catalog.register("other", tree_sitter_java.language)
        assert before.text(before.root) == "class A {}"


class TestParse:
    """Tests for parse."""

    def test_parse_text_and_bytes(self):
        """Test str and bytes input give the same tree."""
        catalog = GrammarCatalog()
        from_text = catalog.parse("package main\n", "go")
        from_bytes = catalog.parse(b"package main\n", "go")
        assert str(from_text.root) == str(from_bytes.root)
        assert from_text.text(from_text.root) == from_bytes.text(from_bytes.root)

    def test_alias_tag(self):
        """Test parsing through an alias records the canonical tag."""
        tree = GrammarCatalog().parse("x = 1\n", "py")
        assert tree.language == "python"

    def test_unencodable_text(self):
        """Test lone surrogates cannot be parsed."""
        with pytest.raises(ParseFailureError, match="UTF-8"):
            GrammarCatalog().parse("x = '\ud800'\n", "python")

    def test_unsupported_language(self):
        """Test parsing an unknown tag."""
        with pytest.raises(UnsupportedLanguageError):
            GrammarCatalog().parse("x", "cobol")

    def test_javascript_uses_jsx_capable_grammar(self):
        """Test JSX in a .js file parses without errors."""
        tree = GrammarCatalog().parse("const el = <div>{name}</div>;\n", "javascript")
        assert not tree.has_error


class TestReady:
    """Tests for the awaitable bulk load."""

    @pytest.mark.asyncio
    async def test_ready_loads_defaults(self):
        """Test ready loads the configured languages."""
        catalog = GrammarCatalog(default_languages=["java", "go"])
        failures = await catalog.ready()

        assert failures == {}
        assert catalog.state("java") == GrammarState.READY
        assert catalog.state("go") == GrammarState.READY
        assert catalog.state("python") == GrammarState.UNLOADED

    @pytest.mark.asyncio
    async def test_ready_is_idempotent(self):
        """Test calling ready twice is harmless."""
        catalog = GrammarCatalog(default_languages=["python"])
        assert await catalog.ready() == {}
        assert await catalog.ready() == {}

    @pytest.mark.asyncio
    async def test_failure_does_not_block_others(self):
        """Test one failing grammar is reported while the rest load."""
        catalog = GrammarCatalog(
            loaders={"java": tree_sitter_java.language, "broken": _failing_loader}
        )
        failures = await catalog.ready(["broken", "java", "cobol"])

        assert "ImportError" in failures["broken"]
        assert failures["cobol"] == "unsupported language"
        assert "java" not in failures
        assert catalog.state("java") == GrammarState.READY

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_load(self):
        """Test concurrent ready calls run the loader once."""
        calls = []

        def loader():
            calls.append(1)
            return tree_sitter_java.language()

        catalog = GrammarCatalog(loaders={"java": loader})
        results = await asyncio.gather(catalog.ready(["java"]), catalog.ready(["java"]))

        assert results == [{}, {}]
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_load(self):
        """Test the load still completes after its waiter is cancelled."""
        started = threading.Event()
        release = threading.Event()

        def loader():
            started.set()
            release.wait(timeout=5)
            return tree_sitter_java.language()

        catalog = GrammarCatalog(loaders={"java": loader})
        waiter = asyncio.ensure_future(catalog.ready(["java"]))
        await asyncio.to_thread(started.wait, 5)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        release.set()
        assert await catalog.ready(["java"]) == {}
        assert catalog.state("java") == GrammarState.READY
