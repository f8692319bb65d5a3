"""
Configuration Management.

Loads overrides from the environment (and config/.env when present) and
settings from config/settings/*.yaml.
Code holds no configuration values of its own.

Environment (.env or process environment, prefix KBNOTES_):
    KBNOTES_NOTES_ROOT, KBNOTES_LOG_LEVEL

Settings (YAML):
    application.yaml   - App identity
    notes.yaml         - Note directory, file extensions, validation rules
    logging.yaml       - Logging configuration
    concurrency.yaml   - Thread pool sizing
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from kbnotes.core.config_schema import (
    ApplicationSchema,
    ConcurrencySchema,
    LoggingSchema,
    NotesSchema,
)


def find_project_root() -> Path:
    """Find project root by looking for .project_root marker file."""
    current = Path.cwd()
    while current != current.parent:
        if (current / ".project_root").exists():
            return current
        current = current.parent
    raise RuntimeError("Project root not found. Ensure .project_root file exists.")


def validate_project_root() -> Path:
    """
    Validate that the project root can be found.

    Raises SystemExit with a clear message if .project_root is not found.
    Use this in entry scripts before any configuration loading.
    """
    try:
        return find_project_root()
    except RuntimeError as e:
        raise SystemExit(f"Error: {e}") from e


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Load a YAML configuration file from config/settings/."""
    project_root = find_project_root()
    config_path = project_root / "config" / "settings" / filename

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    """Environment overrides loaded from config/.env and KBNOTES_* variables."""

    notes_root: str | None = None
    log_level: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="KBNOTES_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _load_validated(schema_cls: type, filename: str) -> Any:
    """Load YAML and validate against schema. Returns typed model instance."""
    raw = load_yaml_config(filename)
    try:
        return schema_cls(**raw)
    except ValidationError as e:
        raise ValueError(
            f"Invalid configuration in {filename}:\n{e}"
        ) from e


class AppConfig:
    """
    Application configuration loaded from YAML files.

    Each YAML file is validated against its Pydantic schema at load time.
    Missing keys, wrong types, or unknown fields raise a clear error
    immediately instead of causing cryptic KeyErrors later.

    Properties return typed Pydantic model instances with attribute access.
    """

    def __init__(self) -> None:
        self._application = _load_validated(ApplicationSchema, "application.yaml")
        self._notes = _load_validated(NotesSchema, "notes.yaml")
        self._logging = _load_validated(LoggingSchema, "logging.yaml")
        self._concurrency = _load_validated(ConcurrencySchema, "concurrency.yaml")

    @property
    def application(self) -> ApplicationSchema:
        """Application settings."""
        return self._application

    @property
    def notes(self) -> NotesSchema:
        """Note store settings."""
        return self._notes

    @property
    def logging(self) -> LoggingSchema:
        """Logging settings."""
        return self._logging

    @property
    def concurrency(self) -> ConcurrencySchema:
        """Concurrency settings (thread pool)."""
        return self._concurrency


@lru_cache
def get_settings() -> Settings:
    """Get cached environment settings. Resolves .env path from project root."""
    env_path = find_project_root() / "config" / ".env"
    return Settings(_env_file=str(env_path))


@lru_cache
def get_app_config() -> AppConfig:
    """Get cached application configuration."""
    return AppConfig()


def get_notes_root(override: str | Path | None = None) -> Path:
    """
    Resolve the notes directory.

    Precedence: explicit override, then KBNOTES_NOTES_ROOT, then notes.yaml.
    Relative paths are resolved against the project root.

    Args:
        override: Path passed on the command line, if any.

    Returns:
        Absolute path to the notes directory.
    """
    configured = override or get_settings().notes_root or get_app_config().notes.root
    path = Path(configured).expanduser()
    if not path.is_absolute():
        path = find_project_root() / path
    return path
