"""YAML configuration file loader."""

import os
from pathlib import Path
from typing import Any

import yaml

from codestruct.core.exceptions.errors import ConfigurationError

# Points at a YAML file that replaces config/default.yaml
CONFIG_PATH_ENV = "CODESTRUCT_CONFIG"


class ConfigLoader:
    """Read a YAML config file whose top-level keys are settings sections."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path = config_path
        self._config: dict[str, Any] = {}

    def load(self, path: Path | None = None) -> dict[str, Any]:
        """Read and validate the YAML file.

        Args:
            path: File to read. Falls back to ``config_path``.

        Returns:
            The parsed mapping, or an empty dict when no path is known.

        Raises:
            ConfigurationError: If the file is missing, is not valid YAML,
                or its root is not a mapping.
        """
        source = path or self.config_path
        if not source:
            return {}

        try:
            text = Path(source).read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Configuration file not found: {source}",
                config_key=str(source),
                details={"path": str(source)},
            ) from e
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {source}",
                config_key=str(source),
                details={"error": str(e)},
            ) from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping: {source}",
                config_key=str(source),
                details={"type": type(loaded).__name__},
            )
        self._config = loaded
        return loaded

    def get(self, key: str, default: Any = None) -> Any:
        """Value at a dotted key such as ``structurer.max_workers``."""
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_section(self, section: str) -> dict[str, Any]:
        """One settings section; a missing or non-mapping section is empty."""
        value = self._config.get(section)
        return value if isinstance(value, dict) else {}

    @property
    def config(self) -> dict[str, Any]:
        return self._config

    @staticmethod
    def default_path() -> Path:
        """Config file to load when none is given.

        ``$CODESTRUCT_CONFIG`` if set, otherwise the repository's
        ``config/default.yaml``.
        """
        override = os.environ.get(CONFIG_PATH_ENV)
        if override:
            return Path(override)
        return Path(__file__).resolve().parents[3] / "config" / "default.yaml"
