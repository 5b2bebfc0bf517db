"""Interval scheduler - the per-endpoint probe loop.

Each configured endpoint gets its own IntervalScheduler running as an
independent asyncio task:

    WAITING -> PROBING -> PERSISTING -> WAITING -> ...

Ticks are spaced by the interval measured from the start of the previous
tick. A slow tick pushes the next one back (it fires immediately if the
interval has already elapsed); there is no drift compensation. Failures are
logged and the loop moves on to its next tick, so nothing that happens to
one endpoint can stop another.
"""
import asyncio
import enum
import logging
import time
from typing import Optional, Protocol

from ..errors import ProbeError, StoreError

logger = logging.getLogger(__name__)


class LoopState(str, enum.Enum):
    WAITING = "waiting"
    PROBING = "probing"
    PERSISTING = "persisting"


class Clock:
    """Time source for monitor loops."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> int:
        """Wall-clock unix seconds, used for checked_at."""
        return int(time.time())

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class SupportsProbe(Protocol):
    async def probe(self, url: str) -> int: ...


class SupportsAppend(Protocol):
    async def append_result(self, url: str, checked_at: int, status: int) -> None: ...


class IntervalScheduler:
    """Probe one URL every `interval_seconds` and record the outcome."""

    def __init__(
        self,
        url: str,
        interval_seconds: float,
        prober: SupportsProbe,
        store: SupportsAppend,
        clock: Optional[Clock] = None,
    ):
        self.url = url
        self.interval_seconds = interval_seconds
        self.prober = prober
        self.store = store
        self.clock = clock or Clock()
        self.state = LoopState.WAITING
        self.ticks = 0
        self.recorded = 0
        self.failures = 0

    async def run(self) -> None:
        """Loop forever. Only cancellation ends it."""
        next_tick = self.clock.monotonic() + self.interval_seconds
        logger.debug(f"Monitoring {self.url} every {self.interval_seconds}s")
        while True:
            self.state = LoopState.WAITING
            delay = next_tick - self.clock.monotonic()
            if delay > 0:
                await self.clock.sleep(delay)
            next_tick = self.clock.monotonic() + self.interval_seconds
            await self.tick()

    async def tick(self) -> Optional[int]:
        """Probe once and persist the result.

        Returns:
            The recorded status code, or None if the tick was abandoned
        """
        self.ticks += 1
        try:
            self.state = LoopState.PROBING
            try:
                status = await self.prober.probe(self.url)
            except ProbeError as e:
                self.failures += 1
                logger.warning(f"{self.url} - probe failed: {e.reason}")
                return None

            self.state = LoopState.PERSISTING
            try:
                await self.store.append_result(self.url, self.clock.now(), status)
            except StoreError as e:
                self.failures += 1
                logger.error(f"{self.url} - could not record status {status}: {e}")
                return None
        except Exception:
            self.failures += 1
            logger.exception(f"{self.url} - unexpected error during check")
            return None
        finally:
            self.state = LoopState.WAITING

        self.recorded += 1
        logger.info(f"{self.url} - {status}")
        return status
