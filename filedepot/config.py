"""filedepot application configuration.

Loads the service settings from a single file, ``config.json`` by default.
JSON and YAML are both accepted; the format is picked from the file suffix.

The original deployment format is a flat object with a single ``port``
field::

    {"port": 8080}

Optional sections extend it::

    host: 127.0.0.1
    port: 8080
    storage:
      root_dir: ./files
      max_upload_bytes: 10485760
    logging:
      level: debug
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

CONFIG_FILE = Path("config.json")
CONFIG_ENV_VAR = "FILEDEPOT_CONFIG"

# 10 MiB
DEFAULT_MAX_UPLOAD_BYTES = 10 << 20

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with path.open(encoding="utf-8") as fh:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(fh)
            else:
                data = json.load(fh)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be an object")
    return data


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class StorageSettings(BaseModel):
    root_dir:         str = "files"
    max_upload_bytes: int = Field(DEFAULT_MAX_UPLOAD_BYTES, gt=0)


class LoggingSettings(BaseModel):
    level: str = "info"

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        if v.lower() not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {v}")
        return v.lower()


class AppConfig(BaseModel):
    host:    str             = "0.0.0.0"
    port:    int             = Field(..., ge=0, le=65535)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

_config: Optional[AppConfig] = None


def default_config_path() -> Path:
    """Return the config path from ``FILEDEPOT_CONFIG`` or ``config.json``."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else CONFIG_FILE


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """Load and validate the configuration file.

    A relative ``storage.root_dir`` is resolved against the directory that
    holds the config file, so the layout does not depend on the working
    directory the server was started from.

    Raises:
        ConfigError: If the file is missing, unparsable or fails validation.
    """
    config_path = Path(path) if path is not None else default_config_path()
    data = _load_file(config_path)

    try:
        config = AppConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}") from e

    root = Path(config.storage.root_dir)
    if not root.is_absolute():
        config.storage.root_dir = str(config_path.resolve().parent / root)

    logger.info(
        "Config loaded from %s (server=%s:%s, storage=%s)",
        config_path,
        config.host,
        config.port,
        config.storage.root_dir,
    )
    return config


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    global _config
    _config = config
