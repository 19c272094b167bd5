from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx

from .breaker import CircuitBreaker
from .config import Settings
from .gateway import RestGateway
from .reload import POLL_INTERVAL_S, ReloadCoordinator
from .session import SessionManager
from .types import ReloadOutcome

__all__ = ["OpsviewClient"]


class OpsviewClient:
    """One connection to an Opsview server: session, breaker, gateway, reload.

    Use as an async context manager so the underlying HTTP client is closed:

        async with OpsviewClient(settings) as client:
            await client.put("host", {...})
            await client.reload()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        breaker: CircuitBreaker | None = None,
        poll_interval: float = POLL_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        trigger_grace: float | None = None,
    ) -> None:
        self.settings = settings
        self._http = httpx.AsyncClient(
            base_url=settings.url,
            transport=transport,
            timeout=settings.timeout,
        )
        self.breaker = breaker or CircuitBreaker()
        self.session = SessionManager(settings, self._http, self.breaker)
        self.gateway = RestGateway(settings, self._http, self.session, self.breaker)
        self.reloader = ReloadCoordinator(
            settings,
            self.gateway,
            self.breaker,
            poll_interval=poll_interval,
            clock=clock,
            sleep=sleep,
            trigger_grace=trigger_grace,
        )

    async def __aenter__(self) -> OpsviewClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def degraded(self) -> bool:
        return self.breaker.is_degraded()

    async def put(self, resource_type: str, body: Mapping[str, Any]) -> Any | None:
        return await self.gateway.put_object(resource_type, body)

    async def get_resource(self, resource_type: str, name: str | None) -> dict[str, Any] | None:
        return await self.gateway.get_single(resource_type, name)

    async def get_resources(self, resource_type: str) -> list[dict[str, Any]] | None:
        return await self.gateway.get_all(resource_type)

    async def reload(self) -> ReloadOutcome:
        return await self.reloader.run()
