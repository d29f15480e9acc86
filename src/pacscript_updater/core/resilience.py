"""
Politeness and fail-fast patterns for catalog requests.

Neither helper retries: a throttle only spaces requests out, and an open
circuit turns further queries into immediate CatalogUnreachableError instead
of waiting on a service that is already known to be down.
"""

import asyncio
import logging
import time

from pacscript_updater.core.exceptions import CatalogUnreachableError

logger = logging.getLogger(__name__)


class RequestThrottle:
    """Keeps at least `min_interval` seconds between consecutive requests."""

    def __init__(self, min_interval: float = 1.0):
        self.min_interval = min_interval
        self.last_request: float | None = None

    def delay(self) -> float:
        """Seconds to wait before the next request may be sent."""
        if self.last_request is None:
            return 0.0
        return max(0.0, self.min_interval - (time.monotonic() - self.last_request))

    async def wait(self) -> None:
        delay = self.delay()
        if delay > 0:
            logger.debug(f"Throttling catalog request for {delay:.2f}s")
            await asyncio.sleep(delay)
        self.last_request = time.monotonic()


class CircuitBreaker:
    """
    Stops querying the catalog after repeated consecutive failures.

    Once `failure_threshold` queries in a row have failed, the circuit opens
    and `guard()` refuses further queries until `cooldown` seconds pass. The
    first query after the cooldown is a probe: one more failure reopens the
    circuit straight away, a success closes it.
    """

    def __init__(self, failure_threshold: int = 3, cooldown: float = 300.0):
        self.failure_threshold = failure_threshold
        self.cooldown = cooldown
        self.consecutive_failures = 0
        self.opened_at: float | None = None

    @property
    def is_open(self) -> bool:
        if self.opened_at is None:
            return False
        if time.monotonic() - self.opened_at >= self.cooldown:
            logger.info(f"Catalog circuit half-open after {self.cooldown:.0f}s cooldown")
            self.opened_at = None
            return False
        return True

    def guard(self, project: str) -> None:
        """Raise instead of querying while the circuit is open."""
        if self.is_open:
            raise CatalogUnreachableError(
                project, f"skipped, {self.consecutive_failures} consecutive catalog failures"
            )

    def record_failure(self) -> None:
        self.consecutive_failures += 1
        if self.consecutive_failures >= self.failure_threshold and self.opened_at is None:
            self.opened_at = time.monotonic()
            logger.warning(f"Catalog circuit OPEN ({self.consecutive_failures} consecutive failures)")

    def record_success(self) -> None:
        if self.consecutive_failures:
            logger.debug("Catalog circuit closed")
        self.consecutive_failures = 0
        self.opened_at = None
