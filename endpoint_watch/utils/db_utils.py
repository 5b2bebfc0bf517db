"""Database utility functions."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Substrings of driver messages that mean "try the same write again"
TRANSIENT_ERRORS = (
    "database is locked",
    "database table is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "too many clients",
)


def is_transient(error: DBAPIError) -> bool:
    """SQLite lock contention or a dropped PostgreSQL connection."""
    if error.connection_invalidated:
        return True
    message = str(error.orig if error.orig is not None else error).lower()
    return any(fragment in message for fragment in TRANSIENT_ERRORS)


async def retry_on_lock(operation: Callable[[], Awaitable[T]], max_attempts: int = 3, base_delay: float = 0.1) -> T:
    """Run a unit of work, retrying it with exponential backoff on transient errors.

    The operation must open its own session so a retry starts from a clean
    transaction.

    Args:
        operation: Callable returning a coroutine for one attempt
        max_attempts: Total number of attempts
        base_delay: Delay in seconds before the second attempt (doubles each time)

    Raises:
        OperationalError/InterfaceError: when attempts run out or the error is not transient
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except (OperationalError, InterfaceError) as e:
            if attempt == max_attempts or not is_transient(e):
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(f"Database busy ({e.orig}), retrying in {delay}s (attempt {attempt}/{max_attempts})")
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")
