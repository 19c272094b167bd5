"""Async client for the Opsview configuration REST API.

Pushes and fetches config objects and drives reloads, going quiet once the
server is known to be unreachable.
"""
from importlib.metadata import PackageNotFoundError, version

from .breaker import CircuitBreaker
from .client import OpsviewClient
from .config import Settings, get_config, load_config
from .resource import ResourceAdapter
from .types import (
    ConfigError,
    MissingNameError,
    ObjectNotFoundError,
    OpsviewError,
    ReloadOutcome,
    ReloadStatus,
    ReloadStatusError,
    ResponseParseError,
)

try:
    __version__ = version("opsview-client")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "CircuitBreaker",
    "ConfigError",
    "MissingNameError",
    "ObjectNotFoundError",
    "OpsviewClient",
    "OpsviewError",
    "ReloadOutcome",
    "ReloadStatus",
    "ReloadStatusError",
    "ResourceAdapter",
    "ResponseParseError",
    "Settings",
    "get_config",
    "load_config",
]
