"""Monitoring session - loads endpoints and supervises one loop per endpoint."""
import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

from pydantic import ValidationError

from ..errors import ConfigError
from ..schemas.endpoint import EndpointConfig
from .scheduler import Clock, IntervalScheduler, SupportsAppend, SupportsProbe
from .store import EndpointRow

logger = logging.getLogger(__name__)


class SupportsSessionStore(SupportsAppend, Protocol):
    async def list_endpoints(self) -> Sequence[EndpointRow]: ...


def validate_endpoint(row: EndpointRow) -> EndpointConfig:
    """Turn a stored row into a runnable config.

    Raises:
        ConfigError: on an empty url or a non-positive interval
    """
    try:
        return EndpointConfig(url=row.url, interval_seconds=row.interval_seconds)
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ConfigError(f"Endpoint {row.id} ({row.url!r}, {row.interval_seconds!r}) is invalid: {problems}") from e


class MonitoringSession:
    """Runs every configured endpoint's loop concurrently until cancelled."""

    def __init__(
        self,
        store: SupportsSessionStore,
        prober: SupportsProbe,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.prober = prober
        self.clock = clock or Clock()
        self.schedulers: List[IntervalScheduler] = []
        self._tasks: List[asyncio.Task] = []
        self._started = False

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def load(self) -> List[EndpointConfig]:
        """Read and validate the endpoint list.

        A StoreError here propagates: with no endpoint list there is nothing
        to run. Malformed rows are logged and skipped.
        """
        rows = await self.store.list_endpoints()
        configs = []
        for row in rows:
            try:
                configs.append(validate_endpoint(row))
            except ConfigError as e:
                logger.error(f"Skipping endpoint: {e}")
        return configs

    async def start(self) -> None:
        """Load endpoints and start one loop task per endpoint."""
        if self._started:
            return
        self._started = True

        configs = await self.load()
        for config in configs:
            scheduler = IntervalScheduler(
                config.url,
                config.interval_seconds,
                self.prober,
                self.store,
                clock=self.clock,
            )
            self.schedulers.append(scheduler)
            self._tasks.append(asyncio.create_task(
                scheduler.run(),
                name=f"monitor-{len(self._tasks)}-{config.url}",
            ))

        if self._tasks:
            logger.info(f"Monitoring {len(self._tasks)} endpoint(s)")
        else:
            logger.info("No endpoints configured - nothing to monitor")

    async def run(self) -> None:
        """Start all loops and block while any is alive.

        Cancelling the task running this coroutine cancels every loop.
        """
        await self.start()
        try:
            if self._tasks:
                await asyncio.gather(*self._tasks)
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Cancel all loops and wait for them to finish."""
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("Monitoring stopped")
