"""Store reachability circuit breaker.

Caches the result of a cheap store probe for a fixed TTL so request
handlers can fail fast while the relational store is down. There is no
fallback storage behind it: an open breaker means the request fails with a
retryable error.
"""

import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[None]]
Clock = Callable[[], float]


class StoreCircuitBreaker:
    """Remembers whether the store answered its last probe.

    ``probe`` is an async callable that raises when the store is unreachable.
    ``clock`` returns monotonic seconds and is injectable for tests.
    """

    def __init__(self, probe: Probe, ttl_seconds: float = 30.0, clock: Clock = time.monotonic):
        self._probe = probe
        self._ttl = ttl_seconds
        self._clock = clock
        self._available: bool | None = None
        self._checked_at: float | None = None

    @property
    def last_known_state(self) -> bool | None:
        """Last cached result, without probing. None if never checked."""
        return self._available

    def _is_fresh(self) -> bool:
        if self._checked_at is None:
            return False
        return (self._clock() - self._checked_at) < self._ttl

    async def is_available(self) -> bool:
        """Return the cached reachability, re-probing once the TTL has elapsed."""
        if self._available is not None and self._is_fresh():
            return self._available

        try:
            await self._probe()
        except Exception as e:
            if self._available is not False:
                logger.error("Store probe failed: %s", e)
            self._set(False)
        else:
            if self._available is False:
                logger.info("Store reachable again")
            self._set(True)
        return self._available

    def record_failure(self) -> None:
        """Mark the store unreachable now (a request just hit an I/O error)."""
        if self._available is not False:
            logger.warning("Store marked unreachable for %.0fs", self._ttl)
        self._set(False)

    def _set(self, available: bool) -> None:
        self._available = available
        self._checked_at = self._clock()
