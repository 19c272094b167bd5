"""Trigger an Opsview reload and wait for it to finish.

The API answers ``POST /reload`` only once the reload is done, which may take
longer than the configured request timeout. So the trigger runs as its own
task while this coordinator polls ``GET /reload`` until the server is idle
again with a new ``lastupdated`` marker, or the timeout runs out.
"""
from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

from .breaker import CircuitBreaker
from .config import Settings
from .gateway import RestGateway
from .logging_conf import get_logger
from .types import ReloadOutcome, ReloadStatus

__all__ = ["POLL_INTERVAL_S", "ReloadCoordinator"]

POLL_INTERVAL_S = 2.0

logger = get_logger("opsview_client.reload")


class ReloadCoordinator:
    def __init__(
        self,
        settings: Settings,
        gateway: RestGateway,
        breaker: CircuitBreaker,
        *,
        poll_interval: float = POLL_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        trigger_grace: float | None = None,
    ) -> None:
        self._settings = settings
        self._gateway = gateway
        self._breaker = breaker
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        # How long the trigger may keep running once polling has finished
        self._trigger_grace = poll_interval if trigger_grace is None else trigger_grace

    async def run(self) -> ReloadOutcome:
        """Reload the server configuration and wait for it to complete.

        Raises:
            ReloadStatusError: if a status read fails; polling can't go on
                without it.
        """
        if self._breaker.is_degraded():
            logger.warning(
                "reload.skipped",
                extra={
                    "event": "skipped",
                    "op": "reload",
                    "reason": "Problem talking to Opsview server; ignoring Opsview config",
                },
            )
            return ReloadOutcome.skipped

        baseline = await self._gateway.get_reload_status()
        if not baseline.idle:
            logger.info(
                "reload.already_in_progress",
                extra={"event": "reload_already_in_progress", "server_status": baseline.server_status},
            )
            return ReloadOutcome.already_in_progress

        logger.info(
            "reload.start",
            extra={"event": "reload_start", "last_reload": baseline.lastupdated},
        )
        trigger = asyncio.create_task(self._gateway.trigger_reload(), name="opsview-reload-trigger")
        try:
            outcome, polls = await self._poll(baseline)
        finally:
            await self._join(trigger)

        if outcome is ReloadOutcome.timed_out:
            self._breaker.mark_degraded()
            logger.warning(
                "reload.timeout",
                extra={
                    "event": "reload_timeout",
                    "detail": f"Reload did not complete within configured timeout ({self._settings.timeout} seconds)",
                    "timeout": self._settings.timeout,
                    "polls": polls,
                },
            )
        else:
            # The breaker is left as-is here: only put/get exchanges clear it.
            logger.info("reload.completed", extra={"event": "reload_completed", "polls": polls})
        return outcome

    async def _poll(self, baseline: ReloadStatus) -> tuple[ReloadOutcome, int]:
        # Deadline counts from the start of polling, not from the trigger
        deadline = self._clock() + self._settings.timeout
        polls = 0
        while True:
            await self._sleep(self._poll_interval)
            current = await self._gateway.get_reload_status()
            polls += 1
            if current.idle and current.lastupdated != baseline.lastupdated:
                return ReloadOutcome.completed, polls
            if self._clock() >= deadline:
                return ReloadOutcome.timed_out, polls

    async def _join(self, trigger: asyncio.Task[bool]) -> None:
        logger.debug("reload.join", extra={"event": "reload_join"})
        try:
            ok = await asyncio.wait_for(asyncio.shield(trigger), self._trigger_grace)
        except TimeoutError:
            trigger.cancel()
            await asyncio.wait([trigger])
            logger.warning(
                "reload.trigger_abandoned",
                extra={"event": "reload_trigger_abandoned", "grace": self._trigger_grace},
            )
            return
        except Exception:
            logger.exception("reload.trigger_crashed", extra={"event": "reload_trigger_crashed"})
            return
        if not ok:
            logger.warning("reload.trigger_unsuccessful", extra={"event": "reload_trigger_unsuccessful"})
