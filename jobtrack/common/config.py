"""Configuration for the tracker.

Loads from a YAML config file with environment variable overrides.
Pattern: JOBTRACK__{SECTION}__{KEY} overrides nested YAML keys.
Example: JOBTRACK__DATABASE__ECHO=true

Environment variables:
  JOBTRACK_CONFIG   config file path (default: ~/.config/jobtrack/config.yml)
  JOBTRACK_DB_PATH SQLite path, wins over the file
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = "~/.config/jobtrack/config.yml"
DEFAULT_DB_PATH = "~/.local/share/jobtrack/jobtrack.db"
ENV_PREFIX = "JOBTRACK"


class DatabaseConfig(BaseModel):
    path: str = DEFAULT_DB_PATH
    echo: bool = False
    busy_timeout_ms: int = Field(default=5000, ge=0)


class SprintConfig(BaseModel):
    current: Optional[str] = None  # name of the sprint new jobs land in


class DisplayConfig(BaseModel):
    date_format: str = "%Y-%m-%d"


class AppConfig(BaseModel):
    database: DatabaseConfig = DatabaseConfig()
    sprint: SprintConfig = SprintConfig()
    display: DisplayConfig = DisplayConfig()


def get_config_path() -> Path:
    return Path(os.getenv("JOBTRACK_CONFIG", DEFAULT_CONFIG_PATH)).expanduser()


def _apply_env_overrides(config_dict: dict, prefix: str = ENV_PREFIX) -> dict:
    """Apply environment variable overrides to config dict.

    Pattern: JOBTRACK__SECTION__KEY=value maps to config[section][key] = value
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}__"):
            continue
        parts = key[len(prefix) + 2 :].lower().split("__")
        target = config_dict
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        if value.lower() in ("true", "false"):
            value = value.lower() == "true"
        elif value.isdigit():
            value = int(value)
        target[parts[-1]] = value
    return config_dict


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load configuration from YAML file with env overrides.

    Priority: env vars > YAML file > defaults
    """
    config_dict = {}

    path = Path(config_path).expanduser() if config_path else get_config_path()
    if path.exists():
        with open(path) as f:
            config_dict = yaml.safe_load(f) or {}

    config_dict = _apply_env_overrides(config_dict)

    db_path = os.getenv("JOBTRACK_DB_PATH")
    if db_path:
        config_dict.setdefault("database", {})["path"] = db_path

    return AppConfig(**config_dict)


def save_config(config: AppConfig, config_path: Optional[str] = None) -> Path:
    """Write the config back as YAML, creating the directory if needed."""
    path = Path(config_path).expanduser() if config_path else get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(), f, sort_keys=False)
    return path


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> AppConfig:
    global _config
    _config = load_config(config_path)
    return _config
