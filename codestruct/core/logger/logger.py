"""Logging system with Rich support.

All log output goes to stderr so that JSON written to stdout by the CLI
stays machine readable.
"""

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from codestruct.core.config.settings import LoggingSettings, get_settings

_configured = False


def setup_logging(settings: LoggingSettings | None = None) -> None:
    """Configure the ``codestruct`` logger hierarchy.

    Only the package logger is touched, so embedding applications keep
    control of the root logger.

    Args:
        settings: Logging settings. Uses global settings if not provided.
    """
    global _configured

    if settings is None:
        settings = get_settings().logging

    package_logger = logging.getLogger("codestruct")
    package_logger.setLevel(getattr(logging, settings.level))
    package_logger.handlers.clear()
    package_logger.propagate = False

    handler: logging.Handler
    if settings.use_rich:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            show_time=True,
            rich_tracebacks=True,
            markup=False,
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(settings.format))
    package_logger.addHandler(handler)

    if settings.file:
        settings.file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.file, encoding="utf-8")
        file_handler.setLevel(getattr(logging, settings.level))
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        package_logger.addHandler(file_handler)

    _configured = True


def set_level(level: str) -> None:
    """Change the level of the package logger and its handlers."""
    numeric = getattr(logging, level.upper())
    package_logger = logging.getLogger("codestruct")
    package_logger.setLevel(numeric)
    for handler in package_logger.handlers:
        handler.setLevel(numeric)


def get_logger(name: str) -> logging.Logger:
    """Get a logger, configuring the package hierarchy on first use.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Logger instance.
    """
    if not _configured and name.startswith("codestruct"):
        setup_logging()
    return logging.getLogger(name)

