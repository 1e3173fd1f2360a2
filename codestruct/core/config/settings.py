"""Application settings using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from codestruct.core.config.loader import ConfigLoader

DEFAULT_LANGUAGES = ["java", "typescript", "go", "python", "proto"]

DEFAULT_EXCLUDED_DIRS = [
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "vendor",
    "build",
    "dist",
    "target",
    "__pycache__",
    ".venv",
    "venv",
]


class StructurerSettings(BaseSettings):
    """Structure extraction settings."""

    model_config = SettingsConfigDict(
        env_prefix="CODESTRUCT_STRUCTURER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    languages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LANGUAGES),
        description="Languages whose grammars are loaded eagerly",
    )
    query_dir: Path | None = Field(
        default=None,
        description="Directory overriding the bundled .scm queries",
    )
    include_content: bool = Field(
        default=True,
        description="Keep the source text of each structure",
    )
    max_file_size: int = Field(
        default=1024 * 1024,
        ge=1,
        description="Files larger than this many bytes are skipped by scans",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Worker threads for batch parsing",
    )
    excluded_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS),
        description="Directory names skipped by scans",
    )

    @field_validator("query_dir", mode="before")
    @classmethod
    def validate_query_dir(cls, v: str | None) -> Path | None:
        """Validate and convert query_dir to Path."""
        if v is None or v == "":
            return None
        return Path(v)

    @field_validator("languages", mode="before")
    @classmethod
    def validate_languages(cls, v: str | list[str]) -> list[str]:
        """Normalize language tags, accepting a comma separated string."""
        if isinstance(v, str):
            v = [part for part in v.split(",") if part.strip()]
        return [lang.strip().lower() for lang in v]


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="CODESTRUCT_LOGGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = Field(
        default="WARNING",
        description="Log level",
    )
    format: str = Field(
        default="[%(name)s] %(message)s",
        description="Log format string",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    use_rich: bool = Field(
        default=True,
        description="Use Rich console for output",
    )

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("file", mode="before")
    @classmethod
    def validate_file(cls, v: str | None) -> Path | None:
        """Validate and convert file to Path."""
        if v is None or v == "":
            return None
        return Path(v)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CODESTRUCT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    structurer: StructurerSettings = Field(default_factory=StructurerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Settings instance with values from YAML.
        """
        loader = ConfigLoader(path)
        loader.load()

        return cls(
            structurer=StructurerSettings(**loader.get_section("structurer")),
            logging=LoggingSettings(**loader.get_section("logging")),
        )

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from default locations.

        Keys present in config/default.yaml win; anything it omits falls
        back to environment variables, then .env, then defaults.

        Returns:
            Settings instance.
        """
        default_path = ConfigLoader.default_path()
        if default_path.exists():
            return cls.from_yaml(default_path)

        return cls()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings singleton.
    """
    return Settings.load()
