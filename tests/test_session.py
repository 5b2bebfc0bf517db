"""Tests for the monitoring session."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from conftest import FakeProber, MemoryStore, ScaledClock, run_for
from endpoint_watch.database import create_session_factory
from endpoint_watch.errors import ConfigError, StoreError
from endpoint_watch.models import Endpoint
from endpoint_watch.services.prober import Prober
from endpoint_watch.services.session import MonitoringSession, validate_endpoint
from endpoint_watch.services.store import EndpointRow, EndpointStore


def _rows(*pairs: tuple[str, int]) -> list[EndpointRow]:
    return [EndpointRow(id=i + 1, url=url, interval_seconds=interval) for i, (url, interval) in enumerate(pairs)]


class TestValidateEndpoint:
    def test_valid_row(self) -> None:
        config = validate_endpoint(EndpointRow(id=1, url="http://a.test", interval_seconds=5))
        assert (config.url, config.interval_seconds) == ("http://a.test", 5)

    @pytest.mark.parametrize("url,interval", [("http://a.test", 0), ("http://a.test", -1), ("", 5)])
    def test_malformed_rows(self, url: str, interval: int) -> None:
        with pytest.raises(ConfigError):
            validate_endpoint(EndpointRow(id=7, url=url, interval_seconds=interval))

    def test_url_kept_verbatim(self) -> None:
        config = validate_endpoint(EndpointRow(id=1, url=" http://a.test/ ", interval_seconds=5))
        assert config.url == " http://a.test/ "

    def test_whitespace_only_url_rejected(self) -> None:
        with pytest.raises(ConfigError):
            validate_endpoint(EndpointRow(id=1, url="   ", interval_seconds=5))


class TestSession:
    @pytest.mark.asyncio
    async def test_example_scenario(self, clock: ScaledClock) -> None:
        store = MemoryStore(_rows(("http://a.test", 5), ("http://b.test", 10)))
        session = MonitoringSession(store, FakeProber(200), clock=clock)

        await run_for(session.run(), clock, 21)

        a = store.results["http://a.test"]
        b = store.results["http://b.test"]
        assert len(a) >= 4
        assert len(b) >= 2
        assert all(status == 200 for _, status in a + b)

    @pytest.mark.asyncio
    async def test_failing_endpoint_does_not_suppress_others(self, clock: ScaledClock) -> None:
        store = MemoryStore(_rows(("http://a.test", 2), ("http://b.test", 3)))
        prober = FakeProber(200, failing={"http://a.test"})
        session = MonitoringSession(store, prober, clock=clock)

        await run_for(session.run(), clock, 2 * max(2, 3) + 0.5)

        assert store.results["http://a.test"] == []
        assert len(store.results["http://b.test"]) >= 1
        assert prober.calls.count("http://a.test") >= 2

    @pytest.mark.asyncio
    async def test_malformed_row_skipped_and_logged(self, clock: ScaledClock, caplog) -> None:
        store = MemoryStore(_rows(("http://zero.test", 0), ("http://ok.test", 1)))
        prober = FakeProber(200)
        session = MonitoringSession(store, prober, clock=clock)

        with caplog.at_level(logging.ERROR, logger="endpoint_watch.services.session"):
            await run_for(session.run(), clock, 2.5)

        assert [s.url for s in session.schedulers] == ["http://ok.test"]
        assert "http://zero.test" not in prober.calls
        assert len(store.results["http://ok.test"]) >= 1
        assert "Skipping endpoint" in caplog.text
        assert "http://zero.test" in caplog.text

    @pytest.mark.asyncio
    async def test_store_unavailable_is_fatal(self, clock: ScaledClock) -> None:
        store = MemoryStore(_rows(("http://a.test", 1)))
        store.fail_list = True
        session = MonitoringSession(store, FakeProber(200), clock=clock)

        with pytest.raises(StoreError):
            await session.run()
        assert session.schedulers == []

    @pytest.mark.asyncio
    async def test_append_failures_do_not_stop_session(self, clock: ScaledClock) -> None:
        store = MemoryStore(_rows(("http://a.test", 1)))
        store.fail_append = True
        prober = FakeProber(200)
        session = MonitoringSession(store, prober, clock=clock)

        task = asyncio.create_task(session.run())
        await clock.sleep(3.5)
        assert session.running
        store.fail_append = False
        await clock.sleep(2)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

        assert len(prober.calls) >= 4
        assert len(store.results["http://a.test"]) >= 1

    @pytest.mark.asyncio
    async def test_no_endpoints_returns(self, clock: ScaledClock) -> None:
        session = MonitoringSession(MemoryStore(), FakeProber(200), clock=clock)
        await asyncio.wait_for(session.run(), timeout=1)
        assert not session.running

    @pytest.mark.asyncio
    async def test_cancel_stops_all_loops(self, clock: ScaledClock) -> None:
        store = MemoryStore(_rows(("http://a.test", 1), ("http://b.test", 1)))
        session = MonitoringSession(store, FakeProber(200), clock=clock)

        task = asyncio.create_task(session.run())
        await clock.sleep(1.5)
        assert session.running
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not session.running
        counts = {url: len(results) for url, results in store.results.items()}
        await clock.sleep(3)
        assert {url: len(results) for url, results in store.results.items()} == counts

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, clock: ScaledClock) -> None:
        session = MonitoringSession(MemoryStore(_rows(("http://a.test", 1))), FakeProber(200), clock=clock)
        await session.start()
        await session.start()
        try:
            assert len(session.schedulers) == 1
        finally:
            await session.stop()


class TestSessionWithStore:
    @pytest.mark.asyncio
    async def test_end_to_end(self, store: EndpointStore, clock: ScaledClock) -> None:
        await store.add_endpoint("http://a.test", 1)
        await store.add_endpoint("http://b.test", 2)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200 if request.url.host == "a.test" else 503)

        prober = Prober(transport=httpx.MockTransport(handler))
        session = MonitoringSession(store, prober, clock=clock)

        await run_for(session.run(), clock, 6.5)

        states = {s.url: s for s in await store.endpoint_states()}
        assert states["http://a.test"].last_status == 200
        assert states["http://b.test"].last_status == 503
        assert states["http://b.test"].state == "down"
        assert await store.count_results("http://a.test") >= 3

    @pytest.mark.asyncio
    async def test_padded_url_results_stay_with_their_row(
        self, store: EndpointStore, engine, clock: ScaledClock,
    ) -> None:
        async with create_session_factory(engine)() as db:
            db.add(Endpoint(url="http://a.test ", interval_seconds=1))
            await db.commit()

        seen: list[str] = []

        class RecordingProber:
            async def probe(self, url: str) -> int:
                seen.append(url)
                return 200

        session = MonitoringSession(store, RecordingProber(), clock=clock)
        await run_for(session.run(), clock, 2.5)

        assert seen and set(seen) == {"http://a.test "}
        (state,) = await store.endpoint_states()
        assert state.url == "http://a.test "
        assert state.last_status == 200
        assert await store.count_results("http://a.test") == 0
