"""Driver collaborator for SQLite through aiosqlite.

Connections are opened in autocommit mode; transactions are explicit ``BEGIN``
statements issued by :meth:`AiosqliteConnection.begin`. Placeholders written
``@0``, ``@1``, ... are native SQLite named parameters, so commands are bound by
name without rewriting their SQL.
"""

import datetime
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import TYPE_CHECKING, Any, ClassVar, Final, Optional

import aiosqlite

from dbmap._serialization import encode_json
from dbmap.driver._base import DriverConnection, DriverReader, DriverTransaction
from dbmap.exceptions import CommandError, DatabaseConnectionError, DbMapError, TransactionError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dbmap.core.command import Command

__all__ = (
    "AiosqliteConnection",
    "AiosqliteReader",
    "AiosqliteTransaction",
    "aiosqlite_type_coercion_map",
    "coerce_parameter",
    "handle_database_exceptions",
)

aiosqlite_type_coercion_map: Final["dict[type, Callable[[Any], Any]]"] = {
    bool: int,
    datetime.datetime: lambda v: v.isoformat(),
    datetime.date: lambda v: v.isoformat(),
    datetime.time: lambda v: v.isoformat(),
    Decimal: str,
    dict: encode_json,
    list: encode_json,
    tuple: lambda v: encode_json(list(v)),
}


def coerce_parameter(value: Any) -> Any:
    """Convert a bound value to a type sqlite3 can store."""
    converter = aiosqlite_type_coercion_map.get(type(value))
    return value if converter is None else converter(value)


@asynccontextmanager
async def handle_database_exceptions(sql: Optional[str] = None) -> "AsyncGenerator[None, None]":
    """Translate aiosqlite and sqlite3 errors into the dbmap hierarchy."""
    try:
        yield
    except DbMapError:
        raise
    except aiosqlite.IntegrityError as e:
        msg = f"SQLite integrity constraint violation: {e}"
        raise CommandError(msg, sql) from e
    except aiosqlite.OperationalError as e:
        msg = f"SQLite operational error: {e}"
        raise CommandError(msg, sql) from e
    except aiosqlite.ProgrammingError as e:
        if "closed" in str(e).lower():
            msg = f"SQLite connection is closed: {e}"
            raise DatabaseConnectionError(msg) from e
        msg = f"SQLite programming error: {e}"
        raise CommandError(msg, sql) from e
    except aiosqlite.Error as e:
        msg = f"SQLite error: {e}"
        raise CommandError(msg, sql) from e
    except ValueError as e:
        if "closed" in str(e).lower():
            msg = f"SQLite connection is closed: {e}"
            raise DatabaseConnectionError(msg) from e
        msg = f"Unexpected database operation error: {e}"
        raise CommandError(msg, sql) from e


class AiosqliteReader(DriverReader):
    """Reader over an aiosqlite cursor."""

    __slots__ = ("_columns", "_cursor", "_sql")

    def __init__(self, cursor: "aiosqlite.Cursor", sql: str) -> None:
        self._cursor = cursor
        self._sql = sql
        self._columns = [column[0] for column in cursor.description or ()]

    @property
    def columns(self) -> "list[str]":
        return self._columns

    async def read(self) -> "Optional[Sequence[Any]]":
        async with handle_database_exceptions(self._sql):
            return await self._cursor.fetchone()


class AiosqliteTransaction(DriverTransaction):
    """Transaction opened with ``BEGIN`` on an autocommit connection."""

    __slots__ = ("_active", "_connection")

    def __init__(self, connection: "AiosqliteConnection") -> None:
        self._connection = connection
        self._active = True

    @property
    def connection(self) -> "AiosqliteConnection":
        return self._connection

    @property
    def is_active(self) -> bool:
        return self._active

    async def commit(self) -> None:
        """Commit the transaction.

        Raises:
            TransactionError: The transaction is finished or COMMIT failed.
        """
        if not self._active:
            msg = "Transaction is no longer active"
            raise TransactionError(msg)
        try:
            await self._connection.raw.commit()
        except (aiosqlite.Error, ValueError) as e:
            msg = f"Failed to commit transaction: {e}"
            raise TransactionError(msg) from e
        self._active = False

    async def rollback(self) -> None:
        """Roll the transaction back. Rolling back a finished transaction is a no-op."""
        if not self._active:
            return
        self._active = False
        try:
            await self._connection.raw.rollback()
        except (aiosqlite.Error, ValueError) as e:
            msg = f"Failed to rollback transaction: {e}"
            raise TransactionError(msg) from e


class AiosqliteConnection(DriverConnection):
    """A pooled aiosqlite connection."""

    __slots__ = ("_closed", "_raw")

    identity_sql: ClassVar[str] = "SELECT last_insert_rowid()"

    def __init__(self, raw: "aiosqlite.Connection") -> None:
        self._raw = raw
        self._closed = False

    def __repr__(self) -> str:
        return f"AiosqliteConnection(open={self.is_open})"

    @property
    def raw(self) -> "aiosqlite.Connection":
        """Underlying aiosqlite connection."""
        return self._raw

    @property
    def is_open(self) -> bool:
        return not self._closed

    @staticmethod
    def _parameters(command: "Command") -> "dict[str, Any]":
        return {name: coerce_parameter(value) for name, value in command.named_values().items()}

    async def execute(self, command: "Command") -> int:
        async with handle_database_exceptions(command.sql):
            cursor = await self._raw.execute(command.sql, self._parameters(command))
            try:
                return cursor.rowcount if cursor.rowcount and cursor.rowcount > 0 else 0
            finally:
                await cursor.close()

    async def execute_scalar(self, command: "Command") -> Any:
        async with handle_database_exceptions(command.sql):
            cursor = await self._raw.execute(command.sql, self._parameters(command))
            try:
                row = await cursor.fetchone()
            finally:
                await cursor.close()
        return row[0] if row else None

    @asynccontextmanager
    async def execute_reader(self, command: "Command") -> "AsyncGenerator[AiosqliteReader, None]":
        async with handle_database_exceptions(command.sql):
            cursor = await self._raw.execute(command.sql, self._parameters(command))
        try:
            yield AiosqliteReader(cursor, command.sql)
        finally:
            await cursor.close()

    async def begin(self) -> AiosqliteTransaction:
        """Start a transaction.

        Raises:
            TransactionError: A transaction is already open or BEGIN failed.
        """
        if self._raw.in_transaction:
            msg = "A transaction is already active on this connection"
            raise TransactionError(msg)
        try:
            await self._raw.execute("BEGIN")
        except (aiosqlite.Error, ValueError) as e:
            msg = f"Failed to begin transaction: {e}"
            raise TransactionError(msg) from e
        return AiosqliteTransaction(self)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._raw.close()
