"""Tests for query file loading."""

from pathlib import Path

import pytest

from codestruct.code_structure.languages.base import BUNDLED_QUERY_DIR, query_path, read_query
from codestruct.code_structure.languages.java_parser import JavaStructurer
from codestruct.code_structure.languages.proto_parser import ProtoStructurer
from codestruct.core.exceptions import QueryLoadError


class WidgetJavaStructurer(JavaStructurer):
    """Java structurer that needs a query nobody ships."""

    QUERY_CONCERNS = ("declarations", "widgets")


class TestQueryFiles:
    """Tests for locating and reading query files."""

    def test_bundled_queries_exist(self):
        """Test every bundled language ships its core concerns."""
        for language in ("java", "typescript", "go", "python"):
            for concern in ("declarations", "functions", "fields", "imports", "locals"):
                assert (BUNDLED_QUERY_DIR / f"{language}_{concern}.scm").is_file()

    def test_override_directory_preferred(self, temp_dir: Path):
        """Test a file in the override directory wins over the bundled one."""
        (temp_dir / "java_declarations.scm").write_text("; custom\n")

        assert query_path("java", "declarations", temp_dir) == temp_dir / "java_declarations.scm"
        assert query_path("java", "fields", temp_dir) == BUNDLED_QUERY_DIR / "java_fields.scm"

    def test_missing_optional_query(self):
        """Test an optional missing query reads as None."""
        assert read_query("java", "widgets", required=False) is None

    def test_missing_required_query(self):
        """Test a required missing query raises."""
        with pytest.raises(QueryLoadError) as exc_info:
            read_query("java", "widgets")

        assert exc_info.value.details["query_path"].endswith("java_widgets.scm")


class TestQueryLoadingAtInit:
    """Tests for query compilation when a structurer is initialized."""

    def test_override_used(self, catalog, temp_dir: Path):
        """Test the structurer loads the override query source."""
        bundled = (BUNDLED_QUERY_DIR / "java_declarations.scm").read_text(encoding="utf-8")
        (temp_dir / "java_declarations.scm").write_text("; custom\n" + bundled)

        structurer = JavaStructurer(query_dir=temp_dir)
        structurer.init(catalog)

        structs = structurer.parse_file("class A {}", "A.java")
        assert structs[0].node_name == "A"

    def test_invalid_query(self, catalog, temp_dir: Path):
        """Test a query that does not fit the grammar fails init."""
        (temp_dir / "java_declarations.scm").write_text("(no_such_node) @declaration.class\n")

        with pytest.raises(QueryLoadError) as exc_info:
            JavaStructurer(query_dir=temp_dir).init(catalog)

        assert "java_declarations.scm" in exc_info.value.message

    def test_missing_query_fails_init(self, catalog):
        """Test a structurer without one of its queries cannot be initialized."""
        structurer = WidgetJavaStructurer()

        with pytest.raises(QueryLoadError):
            structurer.init(catalog)

        assert not structurer.is_initialized

    def test_proto_queries_bundled(self):
        """Test the proto structurer ships a query for each concern it runs."""
        for concern in ProtoStructurer.QUERY_CONCERNS:
            assert (BUNDLED_QUERY_DIR / f"proto_{concern}.scm").is_file()

    def test_proto_missing_query_fails_init(self, catalog):
        """Test proto init fails when one of its queries is missing."""

        class PartialProtoStructurer(ProtoStructurer):
            QUERY_CONCERNS = ("declarations", "options")

        with pytest.raises(QueryLoadError):
            PartialProtoStructurer().init(catalog)
