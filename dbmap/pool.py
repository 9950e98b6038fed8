"""Connection pool shared by every operation of a database configuration."""

import logging
import threading
from collections import deque
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from dbmap.exceptions import DatabaseConnectionError, DbMapError, ImproperConfigurationError, PoolClosedError
from dbmap.utils.logging import POOL_LOGGER_NAME, get_logger, log_with_context

if TYPE_CHECKING:
    from types import TracebackType

    from dbmap.driver._base import DriverConnection
    from dbmap.protocols import ConnectionFactory

__all__ = ("ConnectionPool", "PoolConnectionContext")

logger = get_logger(POOL_LOGGER_NAME)


class PoolConnectionContext:
    """Async context manager for scoped acquisition: acquire on enter, release on exit."""

    __slots__ = ("_connection", "_pool")

    def __init__(self, pool: "ConnectionPool") -> None:
        self._pool = pool
        self._connection: Optional[DriverConnection] = None

    async def __aenter__(self) -> "DriverConnection":
        connection = await self._pool.acquire()
        if connection is None:
            msg = "Cannot acquire connection from closed pool"
            raise PoolClosedError(msg)
        self._connection = connection
        return connection

    async def __aexit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> "Optional[bool]":
        if self._connection is None:
            return False
        connection, self._connection = self._connection, None
        await self._pool.release(connection)
        return False


class ConnectionPool:
    """Pool of idle physical connections.

    Connections are created on demand through ``connection_factory`` and cached when
    released. The idle cache and the disposed flag are guarded by one lock, which is
    never held while a connection is being opened or closed.
    """

    __slots__ = ("_connection_factory", "_created", "_disposed", "_idle", "_lock", "_max_idle", "_pool_id")

    def __init__(self, connection_factory: "ConnectionFactory", *, max_idle: Optional[int] = None) -> None:
        """Initialize connection pool.

        Args:
            connection_factory: Coroutine function opening a new connection.
            max_idle: Maximum number of idle connections kept. Unbounded when None.

        Raises:
            ImproperConfigurationError: ``max_idle`` is negative.
        """
        if max_idle is not None and max_idle < 0:
            msg = f"max_idle must be zero or greater, got {max_idle}"
            raise ImproperConfigurationError(msg)
        self._connection_factory = connection_factory
        self._max_idle = max_idle
        self._idle: deque[DriverConnection] = deque()
        self._lock = threading.Lock()
        self._created = 0
        self._disposed = False
        self._pool_id = uuid4().hex[:8]  # Short ID for logging

    def __repr__(self) -> str:
        return f"ConnectionPool(id={self._pool_id!r}, idle={self.size()}, closed={self._disposed})"

    @property
    def pool_id(self) -> str:
        return self._pool_id

    @property
    def is_closed(self) -> bool:
        """Check if pool has been shut down.

        Returns:
            True if pool is closed
        """
        return self._disposed

    @property
    def created(self) -> int:
        """Number of physical connections opened by this pool so far."""
        return self._created

    @property
    def max_idle(self) -> Optional[int]:
        return self._max_idle

    def size(self) -> int:
        """Get the number of idle connections.

        Returns:
            Idle connection count
        """
        with self._lock:
            return len(self._idle)

    def _take_idle(self) -> "tuple[bool, Optional[DriverConnection]]":
        with self._lock:
            if self._disposed:
                return True, None
            while self._idle:
                connection = self._idle.pop()
                if connection.is_open:
                    return False, connection
            return False, None

    async def _create_connection(self) -> "DriverConnection":
        try:
            connection = await self._connection_factory()
        except DbMapError:
            raise
        except Exception as e:
            log_with_context(logger, logging.WARNING, "pool.connection.create.error", pool_id=self._pool_id, error=str(e))
            msg = f"Could not open a database connection: {e}"
            raise DatabaseConnectionError(msg) from e
        with self._lock:
            self._created += 1
            created = self._created
        log_with_context(logger, logging.DEBUG, "pool.connection.create", pool_id=self._pool_id, created=created)
        return connection

    async def acquire(self) -> "Optional[DriverConnection]":
        """Take an idle connection or open a new one.

        Returns:
            An open connection, or None when the pool has been shut down.

        Raises:
            DatabaseConnectionError: Opening a new connection failed.
        """
        disposed, connection = self._take_idle()
        if disposed:
            log_with_context(logger, logging.DEBUG, "pool.acquire.closed", pool_id=self._pool_id)
            return None
        if connection is not None:
            log_with_context(logger, logging.DEBUG, "pool.connection.reuse", pool_id=self._pool_id)
            return connection
        return await self._create_connection()

    async def release(self, connection: "Optional[DriverConnection]") -> None:
        """Return a connection to the idle cache, or close it.

        Closed connections, connections handed back after shutdown and connections
        beyond ``max_idle`` are closed rather than cached. Releasing None or a closed
        connection does nothing.
        """
        if connection is None or not connection.is_open:
            return
        with self._lock:
            if any(idle is connection for idle in self._idle):
                return
            keep = not self._disposed and (self._max_idle is None or len(self._idle) < self._max_idle)
            if keep:
                self._idle.append(connection)
            reason = "pool_closed" if self._disposed else "max_idle"
        if keep:
            log_with_context(logger, logging.DEBUG, "pool.connection.release", pool_id=self._pool_id)
            return
        log_with_context(logger, logging.DEBUG, "pool.connection.discard", pool_id=self._pool_id, reason=reason)
        await self._close(connection)

    async def _close(self, connection: "DriverConnection") -> None:
        try:
            await connection.close()
        except Exception as e:
            log_with_context(logger, logging.WARNING, "pool.connection.close.error", pool_id=self._pool_id, error=str(e))

    async def shutdown(self) -> None:
        """Mark the pool disposed and close every idle connection exactly once."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            connections = list(self._idle)
            self._idle.clear()
        log_with_context(
            logger, logging.DEBUG, "pool.shutdown", pool_id=self._pool_id, idle_connections=len(connections)
        )
        for connection in connections:
            await self._close(connection)

    def provide_connection(self) -> PoolConnectionContext:
        """Scoped acquisition.

        Raises:
            PoolClosedError: On enter, when the pool has been shut down.
        """
        return PoolConnectionContext(self)

    async def __aenter__(self) -> "ConnectionPool":
        return self

    async def __aexit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        await self.shutdown()
