"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import defaultdict

import pytest
import pytest_asyncio

from endpoint_watch.config import Settings
from endpoint_watch.database import close_db, create_engine, create_session_factory, init_db
from endpoint_watch.errors import ProbeError, StoreError
from endpoint_watch.services.scheduler import Clock
from endpoint_watch.services.store import EndpointRow, EndpointStore


class ScaledClock(Clock):
    """A clock where `speed` simulated seconds pass per real second."""

    def __init__(self, speed: float = 20.0) -> None:
        self.speed = speed
        self._origin = time.monotonic()
        self._epoch = 1_700_000_000

    def monotonic(self) -> float:
        return (time.monotonic() - self._origin) * self.speed

    def now(self) -> int:
        return int(self._epoch + self.monotonic())

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds / self.speed)


class FakeProber:
    """Returns a fixed status per URL; URLs in `failing` raise ProbeError."""

    def __init__(self, status: int = 200, failing: set[str] | None = None) -> None:
        self.status = status
        self.failing = failing or set()
        self.calls: list[str] = []

    async def probe(self, url: str) -> int:
        self.calls.append(url)
        if url in self.failing:
            raise ProbeError(url, "Connection error: refused")
        return self.status


class MemoryStore:
    """In-memory store with optional failure injection."""

    def __init__(self, rows: list[EndpointRow] | None = None) -> None:
        self.rows = rows or []
        self.results: dict[str, list[tuple[int, int]]] = defaultdict(list)
        self.fail_list = False
        self.fail_append = False

    async def list_endpoints(self) -> list[EndpointRow]:
        if self.fail_list:
            raise StoreError("database unavailable")
        return list(self.rows)

    async def append_result(self, url: str, checked_at: int, status: int) -> None:
        if self.fail_append:
            raise StoreError("disk full")
        self.results[url].append((checked_at, status))


async def run_for(coro, clock: ScaledClock, seconds: float) -> None:
    """Run a never-ending coroutine for `seconds` of simulated time, then cancel it."""
    task = asyncio.create_task(coro)
    await clock.sleep(seconds)
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


@pytest.fixture
def clock() -> ScaledClock:
    return ScaledClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(data_path=str(tmp_path), database_url=None, monitor_on_startup=False)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest_asyncio.fixture
async def store(engine) -> EndpointStore:
    return EndpointStore(create_session_factory(engine))
