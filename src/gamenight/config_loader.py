"""Configuration loader and validator."""

import re
from pathlib import Path
from typing import Any

import yaml

from gamenight.models import DEFAULT_PALETTE, MAX_TEAMS
from gamenight.storage import DEFAULT_DB_PATH

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

DEFAULT_CONFIG = {
    "db_path": DEFAULT_DB_PATH,
    "default_title": "Game Night",
    "palette": list(DEFAULT_PALETTE),
    "log_level": "WARNING",
}


class ConfigError(Exception):
    """Configuration validation error."""

    pass


def load_config(path: str) -> dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML config file

    Returns:
        Dictionary with configuration values

    Raises:
        ConfigError: If file not found or invalid YAML
    """
    config_file = Path(path)

    if not config_file.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")

    if config is None:
        raise ConfigError("Config file is empty")

    if not isinstance(config, dict):
        raise ConfigError("Config file must contain a mapping")

    return config


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate configuration values.

    Missing keys fall back to DEFAULT_CONFIG.

    Args:
        config: Configuration dictionary

    Returns:
        Validated and normalized configuration

    Raises:
        ConfigError: If validation fails
    """
    validated = {}

    db_path = config.get("db_path", DEFAULT_CONFIG["db_path"])
    if not isinstance(db_path, str) or not db_path.strip():
        raise ConfigError("db_path must be a non-empty string")
    validated["db_path"] = db_path

    title = config.get("default_title", DEFAULT_CONFIG["default_title"])
    if not isinstance(title, str) or not title.strip():
        raise ConfigError("default_title must be a non-empty string")
    validated["default_title"] = title.strip()

    palette = config.get("palette", DEFAULT_CONFIG["palette"])
    if not isinstance(palette, list):
        raise ConfigError("palette must be a list of colors")
    for color in palette:
        if not isinstance(color, str) or not COLOR_RE.match(color):
            raise ConfigError(f"palette colors must look like #RRGGBB, got {color!r}")
    normalized = [c.upper() for c in palette]
    if len(set(normalized)) != len(normalized):
        raise ConfigError("palette colors must be unique")
    # Every team of a full night needs its own color
    if len(normalized) < MAX_TEAMS:
        raise ConfigError(f"palette needs at least {MAX_TEAMS} colors, got {len(normalized)}")
    validated["palette"] = normalized

    level = str(config.get("log_level", DEFAULT_CONFIG["log_level"])).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got '{level}'")
    validated["log_level"] = level

    return validated


def load_and_validate_config(path: str) -> dict[str, Any]:
    """Load and validate configuration in one step.

    Args:
        path: Path to YAML config file

    Returns:
        Validated configuration dictionary

    Raises:
        ConfigError: If loading or validation fails
    """
    config = load_config(path)
    return validate_config(config)
