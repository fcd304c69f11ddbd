import asyncio
import logging
from functools import wraps
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError, DisconnectionError, ProgrammingError, DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

import config
from db import session_rollback
from exceptions.store import SchemaDriftException, StoreUnavailableException

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING_SCHEMA_MARKERS = (
    "no such column",
    "no such table",
    "has no column named",
    "42703",  # postgres undefined_column
    "42p01",  # postgres undefined_table
    "does not exist",
)

_UNAVAILABLE_MARKERS = (
    "unable to open database",
    "disk i/o error",
    "connection refused",
    "could not connect",
    "server closed the connection",
)

_LOCKED_MARKERS = (
    "database is locked",
    "database table is locked",
)


def is_missing_table_or_column(error: Exception) -> bool:
    if not isinstance(error, (OperationalError, ProgrammingError)):
        return False
    message = str(error).lower()
    return any(marker in message for marker in _MISSING_SCHEMA_MARKERS)


def is_store_unavailable(error: Exception) -> bool:
    if isinstance(error, (InterfaceError, DisconnectionError)):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    if isinstance(error, OperationalError):
        message = str(error).lower()
        return any(marker in message for marker in _UNAVAILABLE_MARKERS)
    return False


def is_lock_contention(error: Exception) -> bool:
    if not isinstance(error, OperationalError):
        return False
    message = str(error).lower()
    return any(marker in message for marker in _LOCKED_MARKERS)


def _find_session(args, kwargs) -> AsyncSession | Session | None:
    session = kwargs.get("session")
    if session is not None:
        return session
    for arg in args:
        if isinstance(arg, (AsyncSession, Session)):
            return arg
    return None


class StoreGuard:
    """
    Classifies storage errors and applies the recovery policy for each kind.

    - Missing table/column: repair the schema and retry once.
    - Lock contention: retry with exponential backoff.
    - Unreachable store: raise StoreUnavailableException.
    """

    MAX_RETRIES = config.STORE_LOCK_MAX_RETRIES
    RETRY_DELAY_BASE = config.STORE_LOCK_RETRY_DELAY

    @staticmethod
    async def with_schema_fallback(
        operation: Callable[[], Awaitable[T]],
        session: AsyncSession | Session,
        repair: Optional[Callable[[AsyncSession | Session], Awaitable[object]]] = None
    ) -> T:
        """
        Run a single-statement operation, self-healing schema drift once.

        Args:
            operation: Zero-argument coroutine factory, called again on retry
            session: Session the operation runs in (rolled back before repair)
            repair: Coroutine taking the session that creates the missing schema.
                    Defaults to SchemaRepository.ensure_stock_schema.

        Raises:
            SchemaDriftException: The retry after repair failed on missing schema again
            StoreUnavailableException: The database cannot be reached
        """
        if repair is None:
            from repositories.schema import SchemaRepository
            repair = SchemaRepository.ensure_stock_schema

        try:
            return await operation()
        except (OperationalError, ProgrammingError, InterfaceError, DisconnectionError) as e:
            if is_store_unavailable(e):
                raise StoreUnavailableException(str(e.orig) if getattr(e, 'orig', None) else str(e)) from e
            if not is_missing_table_or_column(e):
                raise
            logger.warning(f"Schema drift detected, repairing: {e.orig if e.orig else e}")

        await session_rollback(session)
        await repair(session)

        try:
            return await operation()
        except (OperationalError, ProgrammingError) as e:
            if is_missing_table_or_column(e):
                logger.error(f"Schema drift persists after repair: {e.orig if e.orig else e}")
                raise SchemaDriftException(str(e.orig) if e.orig else str(e)) from e
            if is_store_unavailable(e):
                raise StoreUnavailableException(str(e.orig) if e.orig else str(e)) from e
            raise

    @staticmethod
    def with_retry(max_retries: Optional[int] = None, delay_base: Optional[float] = None):
        """
        Decorator retrying an async operation on SQLite lock contention.

        The session argument (keyword ``session`` or any positional session)
        is rolled back before each retry.

        Args:
            max_retries: Maximum number of retry attempts
            delay_base: Base delay for exponential backoff
        """
        max_retries = max_retries if max_retries is not None else StoreGuard.MAX_RETRIES
        delay_base = delay_base if delay_base is not None else StoreGuard.RETRY_DELAY_BASE

        def decorator(func):
            @wraps(func)
            async def wrapper(*args, **kwargs):
                last_exception = None

                for attempt in range(max_retries + 1):
                    try:
                        return await func(*args, **kwargs)
                    except OperationalError as e:
                        if is_store_unavailable(e):
                            raise StoreUnavailableException(str(e.orig) if e.orig else str(e)) from e
                        if not is_lock_contention(e):
                            raise
                        last_exception = e

                        if attempt == max_retries:
                            logger.error(f"Function {func.__name__} failed after {max_retries} retries: {str(e)}")
                            break

                        session = _find_session(args, kwargs)
                        if session is not None:
                            await session_rollback(session)

                        delay = delay_base * (2 ** attempt) + (delay_base * 0.1 * attempt)
                        logger.warning(f"Attempt {attempt + 1} failed for {func.__name__}, retrying in {delay:.2f}s: {str(e)}")
                        await asyncio.sleep(delay)

                raise last_exception

            return wrapper
        return decorator
