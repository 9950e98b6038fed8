"""Runtime-checkable protocols for the pluggable parts of dbmap."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dbmap.driver._base import DriverConnection

__all__ = ("ConnectionFactory", "ConnectionProvider")


@runtime_checkable
class ConnectionProvider(Protocol):
    """A database driver able to open connections from a connection string."""

    async def connect(self, connection_string: str) -> "DriverConnection":
        """Open a new physical connection."""
        ...


@runtime_checkable
class ConnectionFactory(Protocol):
    """Zero-argument coroutine function producing an open connection."""

    async def __call__(self) -> "DriverConnection": ...
