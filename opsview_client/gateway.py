"""HTTP operations against the Opsview REST API.

Every operation checks the circuit breaker first. Once the server is known to
be unreachable the gateway goes quiet: it logs a warning and returns None
instead of calling out or raising into the caller.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from .breaker import CircuitBreaker
from .config import Settings
from .logging_conf import get_logger
from .session import SessionManager
from .types import (
    MissingNameError,
    ObjectNotFoundError,
    ReloadStatus,
    ReloadStatusError,
    ResponseParseError,
)

__all__ = ["RestGateway", "config_path"]

logger = get_logger("opsview_client.gateway")

_SKIPPED_MSG = "Problem talking to Opsview server; ignoring Opsview config"


def config_path(resource_type: str) -> str:
    """Return the API path for a config object type, e.g. ``config/host``."""
    return f"config/{resource_type.lower()}"


class RestGateway:
    def __init__(
        self,
        settings: Settings,
        http: httpx.AsyncClient,
        session: SessionManager,
        breaker: CircuitBreaker,
    ) -> None:
        self._settings = settings
        self._http = http
        self._session = session
        self._breaker = breaker

    # ------------------------
    # Internals
    # ------------------------

    def _skip(self, op: str) -> bool:
        if self._breaker.is_degraded():
            logger.warning(
                "gateway.skipped",
                extra={"event": "skipped", "op": op, "reason": _SKIPPED_MSG},
            )
            return True
        return False

    async def _headers(self, op: str) -> dict[str, str] | None:
        token = await self._session.get_token()
        if token is None:
            logger.warning(
                "gateway.no_token",
                extra={"event": "skipped", "op": op, "reason": "no session token"},
            )
            return None
        return {
            "X-Opsview-Username": self._settings.username,
            "X-Opsview-Token": token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _transport_failed(self, op: str, url: str, exc: Exception) -> None:
        self._breaker.mark_degraded()
        logger.warning(
            "gateway.transport_error",
            extra={"event": "transport_error", "op": op, "url": url, "error": repr(exc)},
        )

    # ------------------------
    # Generic operations
    # ------------------------

    async def put(self, path: str, body: Mapping[str, Any]) -> Any | None:
        """PUT `body` as JSON to `path` and return the parsed acknowledgment.

        Returns None when skipped or when the exchange failed; failures
        degrade the breaker, success clears it.
        """
        if self._skip("put"):
            return None
        headers = await self._headers("put")
        if headers is None:
            return None

        try:
            r = await self._http.put(path, json=dict(body), headers=headers, timeout=self._settings.timeout)
            r.raise_for_status()
        except httpx.HTTPError as e:
            self._transport_failed("put", path, e)
            return None

        try:
            ack = r.json()
        except ValueError as e:
            self._breaker.mark_degraded()
            logger.warning(
                "gateway.parse_error",
                extra={"event": "parse_error", "op": "put", "url": path, "error": repr(e)},
            )
            return None

        self._breaker.mark_healthy()
        logger.info("config.put", extra={"event": "config_put", "path": path})
        return ack

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any | None:
        """GET `path` and return the parsed JSON body.

        Returns None when skipped or on transport failure. A body that isn't
        JSON raises ResponseParseError since callers have nothing to fall
        back on.
        """
        if self._skip("get"):
            return None
        headers = await self._headers("get")
        if headers is None:
            return None

        try:
            r = await self._http.get(path, params=params, headers=headers, timeout=self._settings.timeout)
            r.raise_for_status()
        except httpx.HTTPError as e:
            self._transport_failed("get", path, e)
            return None

        try:
            data = r.json()
        except ValueError as e:
            self._breaker.mark_degraded()
            raise ResponseParseError(f"Could not parse the JSON response from Opsview: {r.text!r}") from e

        self._breaker.mark_healthy()
        return data

    # ------------------------
    # Config objects
    # ------------------------

    async def put_object(self, resource_type: str, body: Mapping[str, Any]) -> Any | None:
        return await self.put(config_path(resource_type), body)

    async def get_single(self, resource_type: str, name: str | None) -> dict[str, Any] | None:
        """Fetch the one object of `resource_type` called `name`.

        Raises:
            MissingNameError: if no name was given.
            ObjectNotFoundError: if the server has no such object.
            ResponseParseError: if the response isn't the expected envelope.
        """
        if not name:
            raise MissingNameError(f"Did not specify a {resource_type} to look up.")

        data = await self.get(config_path(resource_type), params={"s.name": name, "rows": "all"})
        if data is None:
            return None
        objs = _list_of(data)
        if not objs:
            raise ObjectNotFoundError(resource_type, name)
        return objs[0]

    async def get_all(self, resource_type: str) -> list[dict[str, Any]] | None:
        data = await self.get(config_path(resource_type), params={"rows": "all"})
        if data is None:
            return None
        return _list_of(data)

    # ------------------------
    # Reload
    # ------------------------

    async def get_reload_status(self) -> ReloadStatus:
        """Fetch the server's reload status.

        Any failure degrades the breaker and raises ReloadStatusError. A
        successful read does not clear the breaker; only put/get do.
        """
        headers = await self._headers("get_reload_status")
        if headers is None:
            raise ReloadStatusError("Was not able to fetch Opsview status: no session token")

        try:
            r = await self._http.get("reload", headers=headers, timeout=self._settings.timeout)
        except httpx.HTTPError as e:
            self._breaker.mark_degraded()
            raise ReloadStatusError(f"Was not able to fetch Opsview status: {e!r}") from e

        if r.status_code == 401:
            self._breaker.mark_degraded()
            raise ReloadStatusError(f"Login failed: HTTP code {r.status_code}")
        if r.status_code != 200:
            self._breaker.mark_degraded()
            raise ReloadStatusError(f"Was not able to fetch Opsview status: HTTP code {r.status_code}")

        try:
            status = ReloadStatus.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            self._breaker.mark_degraded()
            raise ReloadStatusError(f"Could not parse Opsview reload status: {r.text!r}") from e

        logger.debug(
            "reload.status",
            extra={
                "event": "reload_status",
                "server_status": status.server_status,
                "lastupdated": status.lastupdated,
            },
        )
        return status

    async def trigger_reload(self) -> bool:
        """POST to ``reload`` and wait for the server to answer.

        Sent without a request timeout since a reload can take longer than
        the configured one. Failures are logged and reported as False; they
        are never raised and never touch the breaker.
        """
        headers = await self._headers("trigger_reload")
        if headers is None:
            return False
        try:
            r = await self._http.post("reload", headers=headers, timeout=None)
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "reload.trigger_failed",
                extra={"event": "reload_trigger_failed", "error": repr(e)},
            )
            return False
        logger.debug("reload.triggered", extra={"event": "reload_triggered", "status_code": r.status_code})
        return True


def _list_of(data: Any) -> list[dict[str, Any]]:
    try:
        objs = data["list"]
    except (KeyError, TypeError) as e:
        raise ResponseParseError(f"Response has no object list: {data!r}") from e
    if not isinstance(objs, list):
        raise ResponseParseError(f"Response object list is not a list: {objs!r}")
    return objs
