"""Tests for CLI main module."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from codestruct.cli.main import main

JAVA_SOURCE = (
    "package com.example;\n"
    "\n"
    "public class Foo extends Bar {\n"
    "    int x;\n"
    "    void bar() {}\n"
    "}\n"
)

PYTHON_SOURCE = "def greet(name):\n    return name\n\ngreet('a')\n"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def default_engine(engine):
    """Make every command use the test engine."""
    with patch("codestruct.cli.main.StructureEngine.create_default", return_value=engine):
        yield engine


class TestMainCommand:
    """Test main CLI command."""

    def test_version_flag(self, runner: CliRunner) -> None:
        """Test version flag."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_no_command_shows_help(self, runner: CliRunner) -> None:
        """Test help is printed without a subcommand."""
        result = runner.invoke(main, [])
        assert result.exit_code == 0
        assert "parse" in result.output
        assert "scan" in result.output
        assert "scopes" in result.output


class TestParseCommand:
    """Test parse subcommand."""

    def test_parse_table(self, runner: CliRunner, temp_dir: Path) -> None:
        """Test structures are listed in a table."""
        path = temp_dir / "Foo.java"
        path.write_text(JAVA_SOURCE)

        result = runner.invoke(main, ["parse", str(path)])

        assert result.exit_code == 0
        assert "Foo" in result.output
        assert "Class" in result.output

    def test_parse_detailed(self, runner: CliRunner, temp_dir: Path) -> None:
        """Test detailed output lists members."""
        path = temp_dir / "Foo.java"
        path.write_text(JAVA_SOURCE)

        result = runner.invoke(main, ["parse", str(path), "--detailed"])

        assert result.exit_code == 0
        assert "com.example" in result.output

    def test_parse_json_output(self, runner: CliRunner, temp_dir: Path) -> None:
        """Test JSON output uses the canonical field names."""
        path = temp_dir / "Foo.java"
        path.write_text(JAVA_SOURCE)
        output = temp_dir / "foo.json"

        result = runner.invoke(main, ["parse", str(path), "--json", "-o", str(output)])

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert data[0]["NodeName"] == "Foo"
        assert data[0]["Extend"] == "Bar"
        assert data[0]["Package"] == "com.example"

    def test_parse_explicit_language(self, runner: CliRunner, temp_dir: Path) -> None:
        """Test the language option overrides the extension."""
        path = temp_dir / "script.txt"
        path.write_text(PYTHON_SOURCE)
        output = temp_dir / "script.json"

        result = runner.invoke(main, ["parse", str(path), "-l", "python", "-o", str(output)])

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert data[0]["Functions"][0]["Name"] == "greet"

    def test_parse_unsupported_file(self, runner: CliRunner, temp_dir: Path) -> None:
        """Test an unsupported file exits with an error."""
        path = temp_dir / "notes.txt"
        path.write_text("hello")

        result = runner.invoke(main, ["parse", str(path)])

        assert result.exit_code == 1
        assert "Parse Failed" in result.output

    def test_parse_missing_file(self, runner: CliRunner) -> None:
        """Test a missing file is rejected by argument validation."""
        result = runner.invoke(main, ["parse", "does/not/exist.java"])

        assert result.exit_code == 2


class TestScanCommand:
    """Test scan subcommand."""

    def test_scan_summary(self, runner: CliRunner, sample_project: Path) -> None:
        """Test a scan prints the summary."""
        result = runner.invoke(main, ["scan", str(sample_project)])

        assert result.exit_code == 0
        assert "Scan Summary" in result.output
        assert "UserService" in result.output

    def test_scan_json_output(self, runner: CliRunner, sample_project: Path, temp_dir: Path) -> None:
        """Test the batch is written as JSON."""
        output = temp_dir / "scan.json"

        result = runner.invoke(main, ["scan", str(sample_project), "--json", "-o", str(output), "-w", "2"])

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert len(data["results"]) == 3
        assert data["diagnostics"] == []

    def test_scan_reports_failures(self, runner: CliRunner, sample_project: Path, temp_dir: Path) -> None:
        """Test undecodable files are reported and the scan continues."""
        (sample_project / "web" / "broken.ts").write_bytes(b"\xff\xfe export")
        output = temp_dir / "scan.json"

        result = runner.invoke(main, ["scan", str(sample_project), "-o", str(output)])

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert len(data["results"]) == 3
        (diagnostic,) = data["diagnostics"]
        assert diagnostic["file_path"].endswith("broken.ts")
        assert diagnostic["error_type"] == "ParseFailureError"

    def test_scan_empty_directory(self, runner: CliRunner, temp_dir: Path) -> None:
        """Test scanning a directory without sources."""
        result = runner.invoke(main, ["scan", str(temp_dir)])

        assert result.exit_code == 0
        assert "Nothing to parse" in result.output


class TestScopesCommand:
    """Test scopes subcommand."""

    def test_scopes_table(self, runner: CliRunner, temp_dir: Path) -> None:
        """Test definitions are listed."""
        path = temp_dir / "greet.py"
        path.write_text(PYTHON_SOURCE)

        result = runner.invoke(main, ["scopes", str(path)])

        assert result.exit_code == 0
        assert "Definitions" in result.output
        assert "greet" in result.output

    def test_scopes_json_output(self, runner: CliRunner, temp_dir: Path) -> None:
        """Test the graph is written as JSON."""
        path = temp_dir / "greet.py"
        path.write_text(PYTHON_SOURCE)
        output = temp_dir / "graph.json"

        result = runner.invoke(main, ["scopes", str(path), "--json", "-o", str(output)])

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert data["file_path"] == str(path)
        names = {n["name"] for n in data["nodes"] if n["kind"] == "definition"}
        assert names == {"greet", "name"}

    def test_scopes_unsupported_file(self, runner: CliRunner, temp_dir: Path) -> None:
        """Test an unsupported file exits with an error."""
        path = temp_dir / "notes.txt"
        path.write_text("hello")

        result = runner.invoke(main, ["scopes", str(path)])

        assert result.exit_code == 1
        assert "Scope Graph Failed" in result.output
