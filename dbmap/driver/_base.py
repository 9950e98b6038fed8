"""Driver collaborator contract.

The core never talks to a database library directly. It only needs a
connection that can run a :class:`~dbmap.core.Command` for a row count, a
scalar or a reader, and open a transaction. Adapters under
:mod:`dbmap.adapters` implement these classes for a concrete library.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Optional

if TYPE_CHECKING:
    from collections.abc import Sequence
    from contextlib import AbstractAsyncContextManager
    from types import TracebackType

    from dbmap.core.command import Command

__all__ = ("DriverConnection", "DriverReader", "DriverTransaction")


class DriverReader(ABC):
    """Forward-only cursor over the rows produced by a command."""

    __slots__ = ()

    @property
    @abstractmethod
    def columns(self) -> "list[str]":
        """Column names in result order."""

    @property
    def field_count(self) -> int:
        return len(self.columns)

    def get_name(self, index: int) -> str:
        return self.columns[index]

    @abstractmethod
    async def read(self) -> "Optional[Sequence[Any]]":
        """Advance to the next row.

        Returns:
            The row values by column index, or None once the rows are exhausted.
        """

    def __aiter__(self) -> "DriverReader":
        return self

    async def __anext__(self) -> "Sequence[Any]":
        row = await self.read()
        if row is None:
            raise StopAsyncIteration
        return row


class DriverTransaction(ABC):
    """A transaction opened on a connection.

    Used as an async context manager it guarantees the transaction does not
    outlive the block: leaving without :meth:`commit` rolls it back.
    """

    __slots__ = ()

    @property
    @abstractmethod
    def connection(self) -> "DriverConnection":
        """Connection the transaction belongs to."""

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """Whether the transaction is still open."""

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...

    async def __aenter__(self) -> "DriverTransaction":
        return self

    async def __aexit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        if self.is_active:
            await self.rollback()


class DriverConnection(ABC):
    """A live database session.

    Implementations translate ``@N`` placeholders and map driver errors into
    the :mod:`dbmap.exceptions` hierarchy.
    """

    __slots__ = ()

    identity_sql: "ClassVar[str]"
    """Scalar query returning the last identity value generated on this connection."""

    @property
    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    async def execute(self, command: "Command") -> int:
        """Run a non-query command.

        Returns:
            Number of affected rows.
        """

    @abstractmethod
    async def execute_scalar(self, command: "Command") -> Any:
        """Run a command and return the first column of the first row, or None."""

    @abstractmethod
    def execute_reader(self, command: "Command") -> "AbstractAsyncContextManager[DriverReader]":
        """Run a command and provide a reader, closed when the context exits."""

    @abstractmethod
    async def begin(self) -> DriverTransaction:
        """Start a transaction on this connection."""

    @abstractmethod
    async def close(self) -> None:
        """Close the physical connection. Closing twice is a no-op."""
