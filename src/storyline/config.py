"""Unified configuration loaded from .storyline.toml, env vars, and CLI flags.

Loading order: defaults, then TOML file, env vars and CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".storyline.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
    Path.home() / ".config" / "storyline",
]


class DatabaseSectionConfig(BaseModel):
    """[database] section."""

    url: str = "sqlite:///storyline.db"
    echo: bool = False


class GenerationSectionConfig(BaseModel):
    """[generation] section."""

    model: str | None = "sonnet"
    max_tokens: int = 1024
    temperature: float = 0.7
    timeout: int = 120
    language: str = "English"
    use_cli: bool = False


class QuotaSectionConfig(BaseModel):
    """[quota] section."""

    daily_limit: int = Field(default=10, ge=1)


class SecuritySectionConfig(BaseModel):
    """[security] section."""

    csrf_secret: str = ""
    csrf_ttl_seconds: int = 3600


class LoggingSectionConfig(BaseModel):
    """[logging] section."""

    level: str = "INFO"


class StorylineConfig(BaseModel):
    """Top-level configuration for the story engine."""

    database: DatabaseSectionConfig = Field(default_factory=DatabaseSectionConfig)
    generation: GenerationSectionConfig = Field(default_factory=GenerationSectionConfig)
    quota: QuotaSectionConfig = Field(default_factory=QuotaSectionConfig)
    security: SecuritySectionConfig = Field(default_factory=SecuritySectionConfig)
    logging: LoggingSectionConfig = Field(default_factory=LoggingSectionConfig)


def load_config(path: str | Path | None = None) -> StorylineConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .storyline.toml in CWD
    3. ~/.config/storyline/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged StorylineConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        global_config = Path.home() / ".config" / "storyline" / "config.toml"
        if not data and global_config.exists():
            data = _load_toml(global_config)
            logger.info("Loaded config from %s", global_config)

    config = StorylineConfig.model_validate(data) if data else StorylineConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: StorylineConfig, **cli_kwargs: object) -> StorylineConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "database_url": ("database", "url"),
        "model": ("generation", "model"),
        "language": ("generation", "language"),
        "log_level": ("logging", "level"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return StorylineConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: StorylineConfig) -> StorylineConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "STORYLINE_DATABASE_URL": ("database", "url"),
        "STORYLINE_MODEL": ("generation", "model"),
        "STORYLINE_LANGUAGE": ("generation", "language"),
        "STORYLINE_CSRF_SECRET": ("security", "csrf_secret"),
        "STORYLINE_LOG_LEVEL": ("logging", "level"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    use_cli_raw = os.environ.get("STORYLINE_USE_CLI")
    if use_cli_raw is not None:
        data["generation"]["use_cli"] = use_cli_raw.lower() in ("true", "1", "yes")

    limit_raw = os.environ.get("STORYLINE_DAILY_LIMIT")
    if limit_raw is not None:
        data["quota"]["daily_limit"] = int(limit_raw)

    return StorylineConfig.model_validate(data)
