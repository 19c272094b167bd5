"""Configuration loading for the client.

The configuration is a YAML mapping with ``url``, ``username``, ``password``
and ``timeout`` (seconds). It is loaded once per process and never changes
afterwards; any problem with it is fatal.
"""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .logging_conf import get_logger, mask_secret
from .types import ConfigError

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "Settings",
    "config_path_from_env",
    "load_config",
    "get_config",
]

DEFAULT_CONFIG_PATH = "/etc/puppet/opsview.conf"

logger = get_logger("opsview_client.config")


class Settings(BaseModel):
    """Connection settings for one Opsview server."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    timeout: int = Field(..., gt=0)  # seconds, per request and for reload polling

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.rstrip("/")
        if not value:
            raise ValueError("url must not be empty")
        return value


def config_path_from_env() -> str:
    """Return OPSVIEW_CONFIG, falling back to the system-wide default path."""
    return os.getenv("OPSVIEW_CONFIG", DEFAULT_CONFIG_PATH)


def load_config(path: str | Path) -> Settings:
    """Read and validate the configuration file at `path`.

    Raises:
        ConfigError: if the file can't be read or parsed, isn't a mapping, or
            lacks any of url/username/password/timeout.
    """
    logger.debug("config.load", extra={"event": "config_load", "path": str(path)})
    try:
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not parse YAML configuration file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration file {path} must contain a YAML mapping")

    missing = [k for k in ("url", "username", "password", "timeout") if raw.get(k) is None]
    if missing:
        raise ConfigError(
            "Config file must contain URL, username, password and timeout fields "
            f"(missing: {', '.join(missing)})"
        )

    try:
        settings = Settings(**{k: raw[k] for k in ("url", "username", "password", "timeout")})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.debug(
        "config.loaded",
        extra={
            "event": "config_loaded",
            "url": settings.url,
            "username": settings.username,
            "password": mask_secret(settings.password),
            "timeout": settings.timeout,
        },
    )
    return settings


@lru_cache(maxsize=None)
def _cached_config(path: str) -> Settings:
    return load_config(path)


def get_config(path: str | Path | None = None) -> Settings:
    """Return the memoized settings for `path` (default: OPSVIEW_CONFIG)."""
    return _cached_config(str(path) if path is not None else config_path_from_env())
