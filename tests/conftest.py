"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from codestruct.code_structure import GrammarCatalog, StructureEngine
from codestruct.core.config import StructurerSettings


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory that is cleaned up after the test.

    Yields:
        Path to the temporary directory.
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture(scope="session")
def catalog() -> GrammarCatalog:
    """Grammar catalog shared by the whole test session.

    The cache is append-only, so sharing it between tests is safe.
    """
    return GrammarCatalog()


@pytest.fixture
def structurer_settings() -> StructurerSettings:
    """Structurer settings independent of the environment."""
    return StructurerSettings(
        languages=["java", "typescript", "go", "python"],
        query_dir=None,
        include_content=True,
        max_workers=2,
    )


@pytest.fixture
def engine(structurer_settings: StructurerSettings, catalog: GrammarCatalog) -> StructureEngine:
    """Create a structure engine for testing.

    Args:
        structurer_settings: Settings fixture.
        catalog: Shared grammar catalog.

    Returns:
        StructureEngine instance.
    """
    return StructureEngine(settings=structurer_settings, catalog=catalog)


@pytest.fixture
def sample_project(temp_dir: Path) -> Path:
    """Create a small multi-language project.

    Args:
        temp_dir: Temporary directory fixture.

    Returns:
        Path to the project root.
    """
    root = temp_dir / "project"
    (root / "src" / "main" / "java" / "com" / "example").mkdir(parents=True)
    (root / "web").mkdir()
    (root / "cmd").mkdir()
    (root / "node_modules" / "lib").mkdir(parents=True)

    (root / "src" / "main" / "java" / "com" / "example" / "UserService.java").write_text(
        "package com.example;\n"
        "\n"
        "public class UserService {\n"
        "    private String name;\n"
        "\n"
        "    public String getName() {\n"
        "        return name;\n"
        "    }\n"
        "}\n"
    )
    (root / "web" / "app.ts").write_text(
        "export class App {\n"
        "  title: string = 'demo';\n"
        "  start(): void {}\n"
        "}\n"
    )
    (root / "cmd" / "main.go").write_text(
        "package main\n"
        "\n"
        "func main() {}\n"
    )
    (root / "node_modules" / "lib" / "index.js").write_text("function ignored() {}\n")
    (root / "README.md").write_text("# Sample\n")
    return root
