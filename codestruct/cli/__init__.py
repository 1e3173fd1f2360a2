"""Command line interface for codestruct."""

from codestruct.cli.main import main

__all__ = ["main"]
