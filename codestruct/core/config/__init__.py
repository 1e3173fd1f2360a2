"""Configuration management for codestruct."""

from codestruct.core.config.loader import ConfigLoader
from codestruct.core.config.settings import (
    LoggingSettings,
    Settings,
    StructurerSettings,
    get_settings,
)

__all__ = [
    "ConfigLoader",
    "LoggingSettings",
    "Settings",
    "StructurerSettings",
    "get_settings",
]
