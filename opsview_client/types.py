from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator

__all__ = [
    "OpsviewError",
    "ConfigError",
    "MissingNameError",
    "ObjectNotFoundError",
    "ResponseParseError",
    "ReloadStatusError",
    "ReloadStatus",
    "ReloadOutcome",
]


# ------------------------
# Errors
# ------------------------
class OpsviewError(RuntimeError):
    """Base class for errors raised to callers of the client."""


class ConfigError(OpsviewError):
    """Raised when the configuration file is missing, unreadable or invalid.

    Fatal: nothing else can run without a configuration.
    """


class MissingNameError(OpsviewError, ValueError):
    """Raised when a single-object lookup is attempted without a name."""


class ObjectNotFoundError(OpsviewError):
    """Raised when a name lookup returns an empty list."""

    def __init__(self, resource_type: str, name: str) -> None:
        super().__init__(f"No {resource_type} object named {name!r}")
        self.resource_type = resource_type
        self.name = name


class ResponseParseError(OpsviewError):
    """Raised when a read returns a body that is not the expected JSON."""


class ReloadStatusError(OpsviewError):
    """Raised when the reload status cannot be fetched.

    Polling has no comparison basis without it, so it is never downgraded to a
    warning.
    """


# ------------------------
# Wire models
# ------------------------
class ReloadStatus(BaseModel):
    """Body of ``GET /reload``; only the fields polling relies on."""

    server_status: int
    lastupdated: str | None = None

    @field_validator("lastupdated", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # Servers send either an epoch integer or a formatted timestamp
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @property
    def idle(self) -> bool:
        return self.server_status == 0


class ReloadOutcome(str, Enum):
    skipped = "skipped"
    already_in_progress = "already_in_progress"
    completed = "completed"
    timed_out = "timed_out"
