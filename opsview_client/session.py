from __future__ import annotations

import asyncio

import httpx

from .breaker import CircuitBreaker
from .config import Settings
from .logging_conf import get_logger, mask_secret

__all__ = ["SessionManager"]

logger = get_logger("opsview_client.session")


class SessionManager:
    """Owns the authentication token for one client.

    The token is fetched lazily with a single ``POST login`` and reused until
    the process exits. A failed login is never cached, so the next caller tries
    again (unless the breaker has already made it skip the call).
    """

    def __init__(self, settings: Settings, http: httpx.AsyncClient, breaker: CircuitBreaker) -> None:
        self._settings = settings
        self._http = http
        self._breaker = breaker
        self._token: str | None = None
        self._lock = asyncio.Lock()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def token(self) -> str | None:
        return self._token

    async def get_token(self) -> str | None:
        """Return the cached token, logging in first if there is none.

        Concurrent callers wait on the same login instead of racing their own.
        Returns None (and degrades the breaker) when login fails.
        """
        if self._token is not None:
            return self._token
        async with self._lock:
            if self._token is None:
                self._token = await self._login()
            return self._token

    async def _login(self) -> str | None:
        settings = self._settings
        logger.debug(
            "token.fetch",
            extra={
                "event": "token_fetch",
                "url": f"{settings.url}/login",
                "username": settings.username,
                "password": mask_secret(settings.password),
                "timeout": settings.timeout,
            },
        )
        try:
            r = await self._http.post(
                "login",
                json={"username": settings.username, "password": settings.password},
                timeout=settings.timeout,
            )
        except httpx.HTTPError as e:
            self._breaker.mark_degraded()
            logger.warning(
                "token.error",
                extra={"event": "token_error", "error": repr(e)},
            )
            return None

        if r.status_code != 200:
            self._breaker.mark_degraded()
            logger.warning(
                "token.rejected",
                extra={"event": "token_rejected", "status_code": r.status_code},
            )
            return None

        try:
            token = r.json()["token"]
        except (ValueError, KeyError, TypeError) as e:
            self._breaker.mark_degraded()
            logger.warning(
                "token.malformed",
                extra={"event": "token_malformed", "error": repr(e)},
            )
            return None
        if not isinstance(token, str) or not token:
            self._breaker.mark_degraded()
            logger.warning("token.malformed", extra={"event": "token_malformed", "error": "empty token"})
            return None

        logger.debug("token.fetched", extra={"event": "token_fetched"})
        return token
