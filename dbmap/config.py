"""Database configuration: a connection string, a provider and the pool built from them."""

from typing import TYPE_CHECKING, Any, Optional, Union

from dbmap.adapters import resolve_provider
from dbmap.pool import ConnectionPool

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from dbmap.driver._base import DriverConnection
    from dbmap.pool import PoolConnectionContext
    from dbmap.protocols import ConnectionProvider

__all__ = ("DatabaseConfig",)


class DatabaseConfig:
    """Settings for one database and the pool serving it.

    The pool is created lazily on first use and owned by the configuration until
    :meth:`close_pool`.

    Example::

        config = DatabaseConfig("app.db", provider="aiosqlite")
        async with config.provide_connection() as connection:
            ...
        await config.close_pool()
    """

    __slots__ = ("_provider", "connection_string", "max_idle", "on_connection_create", "pool_instance", "provider")

    def __init__(
        self,
        connection_string: str = "",
        provider: "Union[str, ConnectionProvider, type[Any]]" = "aiosqlite",
        *,
        max_idle: Optional[int] = None,
        on_connection_create: "Optional[Callable[[DriverConnection], Awaitable[None]]]" = None,
        pool_instance: "Optional[ConnectionPool]" = None,
    ) -> None:
        """Initialize the configuration.

        Args:
            connection_string: Driver-specific connection string.
            provider: Registered provider name, ``module:attribute`` import path, provider
                class or provider instance.
            max_idle: Upper bound on idle connections kept by the pool.
            on_connection_create: Async callback run on every newly opened connection.
            pool_instance: Optional pre-built pool.
        """
        self.connection_string = connection_string
        self.provider = provider
        self.max_idle = max_idle
        self.on_connection_create = on_connection_create
        self.pool_instance = pool_instance
        self._provider: Optional[ConnectionProvider] = None

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        parts = ", ".join(
            [
                f"connection_string={self.connection_string!r}",
                f"provider={self.provider!r}",
                f"max_idle={self.max_idle!r}",
                f"pool_instance={self.pool_instance!r}",
            ]
        )
        return f"{type(self).__name__}({parts})"

    @property
    def connection_provider(self) -> "ConnectionProvider":
        """Resolved provider.

        Raises:
            ImproperConfigurationError: The provider identity cannot be resolved.
        """
        if self._provider is None:
            self._provider = resolve_provider(self.provider)
        return self._provider

    async def create_connection(self) -> "DriverConnection":
        """Open a new connection outside the pool."""
        connection = await self.connection_provider.connect(self.connection_string)
        if self.on_connection_create is not None:
            try:
                await self.on_connection_create(connection)
            except BaseException:
                await connection.close()
                raise
        return connection

    def create_pool(self) -> ConnectionPool:
        """Create the pool, or return the existing one."""
        if self.pool_instance is None:
            self.pool_instance = ConnectionPool(self.create_connection, max_idle=self.max_idle)
        return self.pool_instance

    def provide_pool(self) -> ConnectionPool:
        return self.create_pool()

    def provide_connection(self) -> "PoolConnectionContext":
        """Scoped acquisition from the configuration's pool."""
        return self.create_pool().provide_connection()

    async def close_pool(self) -> None:
        """Shut the pool down. A later call creates a fresh pool."""
        pool, self.pool_instance = self.pool_instance, None
        if pool is not None:
            await pool.shutdown()
