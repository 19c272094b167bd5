from __future__ import annotations

import threading

from .logging_conf import get_logger

__all__ = ["CircuitBreaker"]

logger = get_logger("opsview_client.breaker")


class CircuitBreaker:
    """Process-scoped "server unreachable" flag, owned by one client.

    Stored as a failure counter: 0 is healthy, anything above is degraded.
    Only an explicit successful exchange brings it back to 0.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._failures = 0

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    def is_degraded(self) -> bool:
        with self._lock:
            return self._failures > 0

    def mark_degraded(self) -> None:
        with self._lock:
            self._failures += 1
            failures = self._failures
        logger.debug("breaker.degraded", extra={"event": "breaker_degraded", "failures": failures})

    def mark_healthy(self) -> None:
        with self._lock:
            was = self._failures
            self._failures = 0
        if was:
            logger.info("breaker.healthy", extra={"event": "breaker_healthy", "cleared": was})
