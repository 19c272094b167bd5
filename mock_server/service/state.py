from __future__ import annotations

import asyncio
import os
import time
from typing import Any
from uuid import uuid4

from opsview_client.logging_conf import get_logger

logger = get_logger("mock_server.state")

__all__ = ["ServerState", "ReloadBusyError", "get_reload_seconds_from_env"]


class ReloadBusyError(RuntimeError):
    """Raised when a reload is requested while another is running."""


def get_reload_seconds_from_env() -> float:
    """Return MOCK_RELOAD_SECONDS from environment, defaulting to 1.0."""
    raw = os.getenv("MOCK_RELOAD_SECONDS", "1.0")
    try:
        val = float(raw)
    except ValueError as e:  # pragma: no cover
        raise ValueError("MOCK_RELOAD_SECONDS must be a float") from e
    if val < 0:
        raise ValueError("MOCK_RELOAD_SECONDS must be >= 0")
    return val


class ServerState:
    """In-memory stand-in for an Opsview server.

    Holds issued tokens, config objects keyed by type and name, and the
    reload status. Reloads flip server_status to 1 for `reload_seconds` and
    then back to 0 with a fresh lastupdated.
    """

    def __init__(
        self,
        *,
        username: str | None = None,
        password: str | None = None,
        reload_seconds: float | None = None,
    ) -> None:
        self.username = username or os.getenv("MOCK_USERNAME", "admin")
        self.password = password or os.getenv("MOCK_PASSWORD", "initial")
        self.reload_seconds = get_reload_seconds_from_env() if reload_seconds is None else reload_seconds
        self.tokens: set[str] = set()
        self.objects: dict[str, dict[str, dict[str, Any]]] = {}
        self.server_status = 0
        self.lastupdated = int(time.time())
        self.reloads = 0

    # ------------------------
    # Auth
    # ------------------------

    def login(self, username: str, password: str) -> str | None:
        if username != self.username or password != self.password:
            logger.info("login.rejected", extra={"event": "login_rejected", "username": username})
            return None
        token = uuid4().hex
        self.tokens.add(token)
        logger.info("login.ok", extra={"event": "login_ok", "username": username})
        return token

    def authorized(self, username: str | None, token: str | None) -> bool:
        return username == self.username and token in self.tokens

    # ------------------------
    # Config objects
    # ------------------------

    def list_objects(self, resource_type: str, name: str | None = None) -> list[dict[str, Any]]:
        objs = self.objects.get(resource_type, {})
        if name is not None:
            return [objs[name]] if name in objs else []
        return [objs[k] for k in sorted(objs)]

    def put_object(self, resource_type: str, obj: dict[str, Any]) -> dict[str, Any]:
        name = obj.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError("object must have a non-empty name")
        stored = {**self.objects.get(resource_type, {}).get(name, {}), **obj}
        self.objects.setdefault(resource_type, {})[name] = stored
        logger.info(
            "object.put",
            extra={"event": "object_put", "resource_type": resource_type, "name": name},
        )
        return stored

    # ------------------------
    # Reload
    # ------------------------

    def reload_status(self) -> dict[str, Any]:
        return {
            "server_status": self.server_status,
            "lastupdated": self.lastupdated,
            "configuration_status": "uptodate" if self.server_status == 0 else "pending",
        }

    async def reload(self) -> dict[str, Any]:
        if self.server_status != 0:
            raise ReloadBusyError("reload already running")
        self.server_status = 1
        logger.info("reload.start", extra={"event": "reload_start"})
        try:
            await asyncio.sleep(self.reload_seconds)
        finally:
            self.server_status = 0
            # Strictly increasing even when two reloads finish in the same second
            self.lastupdated = max(int(time.time()), self.lastupdated + 1)
            self.reloads += 1
        logger.info("reload.done", extra={"event": "reload_done", "lastupdated": self.lastupdated})
        return self.reload_status()
