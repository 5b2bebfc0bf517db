"""Endpoint store - durable record of endpoints and probe results.

The store is the only resource shared by the monitor loops. Writes are
serialized in-process and committed with retry on transient lock errors, so
loops can append concurrently without coordinating among themselves.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import ConfigError, StoreError
from ..models import Endpoint, ProbeResult
from ..schemas.endpoint import EndpointCreate
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)


@dataclass
class EndpointRow:
    """A configured endpoint as read from the store (not yet validated)."""
    id: int
    url: str
    interval_seconds: int


@dataclass
class ProbeResultRow:
    """A recorded probe result."""
    id: int
    endpoint_url: str
    checked_at: int
    status: int


@dataclass
class EndpointState:
    """Configuration of a URL joined with its most recent result."""
    url: str
    intervals: List[int] = field(default_factory=list)
    last_checked: Optional[int] = None
    last_status: Optional[int] = None

    @property
    def state(self) -> str:
        if self.last_status is None:
            return "unchecked"
        return "up" if self.last_status < 400 else "down"


class EndpointStore:
    """Async store for endpoint configuration and probe history."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    async def list_endpoints(self) -> List[EndpointRow]:
        """All configured endpoints in creation order.

        Raises:
            StoreError: if the store cannot be read
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Endpoint.id, Endpoint.url, Endpoint.interval_seconds)
                    .order_by(Endpoint.id)
                )
                return [EndpointRow(id=row.id, url=row.url, interval_seconds=row.interval_seconds)
                        for row in result.all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load endpoints: {e}") from e

    async def append_result(self, url: str, checked_at: int, status: int) -> None:
        """Append one probe result. Not idempotent: every call adds a row.

        Raises:
            StoreError: if the write fails after retries
        """
        async def insert():
            async with self._session_factory() as session:
                session.add(ProbeResult(endpoint_url=url, checked_at=checked_at, status=status))
                await session.commit()

        async with self._write_lock:
            try:
                await retry_on_lock(insert)
            except SQLAlchemyError as e:
                raise StoreError(f"Could not record result for {url}: {e}") from e

    async def add_endpoint(self, url: str, interval_seconds: int) -> EndpointRow:
        """Validate and insert a new endpoint.

        Raises:
            ConfigError: if the url is empty or the interval is not positive
            StoreError: if the write fails
        """
        try:
            config = EndpointCreate(url=url.strip(), interval_seconds=interval_seconds)
        except ValidationError as e:
            raise ConfigError(f"Invalid endpoint {url!r}: {e.errors()[0]['msg']}") from e

        async def insert():
            async with self._session_factory() as session:
                endpoint = Endpoint(url=config.url, interval_seconds=config.interval_seconds)
                session.add(endpoint)
                await session.commit()
                return EndpointRow(id=endpoint.id, url=endpoint.url, interval_seconds=endpoint.interval_seconds)

        async with self._write_lock:
            try:
                row = await retry_on_lock(insert)
            except SQLAlchemyError as e:
                raise StoreError(f"Could not add endpoint {url}: {e}") from e
        logger.info(f"Added endpoint {row.url} every {row.interval_seconds}s (id={row.id})")
        return row

    async def remove_endpoint(self, url: str) -> int:
        """Delete every endpoint row for a URL. History is kept.

        Returns:
            Number of rows removed
        """
        async def remove():
            async with self._session_factory() as session:
                result = await session.execute(delete(Endpoint).where(Endpoint.url == url))
                await session.commit()
                return result.rowcount

        async with self._write_lock:
            try:
                removed = await retry_on_lock(remove)
            except SQLAlchemyError as e:
                raise StoreError(f"Could not remove endpoint {url}: {e}") from e
        logger.info(f"Removed {removed} endpoint row(s) for {url}")
        return removed

    async def endpoint_states(self) -> List[EndpointState]:
        """Current state per URL, ordered by first configuration."""
        latest = (
            select(
                ProbeResult.endpoint_url,
                func.max(ProbeResult.checked_at).label("last_checked"),
            )
            .group_by(ProbeResult.endpoint_url)
            .subquery()
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(Endpoint.url, Endpoint.interval_seconds).order_by(Endpoint.id))
                states: dict[str, EndpointState] = {}
                for url, interval_seconds in result.all():
                    states.setdefault(url, EndpointState(url=url)).intervals.append(interval_seconds)
                if not states:
                    return []

                # Ties on checked_at resolve to the newest row
                result = await session.execute(
                    select(ProbeResult.endpoint_url, ProbeResult.checked_at, ProbeResult.status)
                    .join(
                        latest,
                        and_(
                            ProbeResult.endpoint_url == latest.c.endpoint_url,
                            ProbeResult.checked_at == latest.c.last_checked,
                        ),
                    )
                    .where(ProbeResult.endpoint_url.in_(list(states)))
                    .order_by(ProbeResult.id)
                )
                for url, checked_at, status in result.all():
                    states[url].last_checked = checked_at
                    states[url].last_status = status
                return list(states.values())
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load endpoint states: {e}") from e

    async def history(self, url: str, limit: int = 50, offset: int = 0) -> List[ProbeResultRow]:
        """Probe results for a URL, newest first. Works for removed URLs too."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ProbeResult)
                    .where(ProbeResult.endpoint_url == url)
                    .order_by(ProbeResult.checked_at.desc(), ProbeResult.id.desc())
                    .offset(offset)
                    .limit(limit)
                )
                return [
                    ProbeResultRow(id=r.id, endpoint_url=r.endpoint_url, checked_at=r.checked_at, status=r.status)
                    for r in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load history for {url}: {e}") from e

    async def count_results(self, url: str | None = None) -> int:
        """Number of recorded results for a URL, or in total when url is None."""
        query = select(func.count(ProbeResult.id))
        if url is not None:
            query = query.where(ProbeResult.endpoint_url == url)
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not count results: {e}") from e
