"""In-memory driver used by the unit tests."""

from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from typing import Any, ClassVar, Optional

from dbmap.core.command import Command
from dbmap.driver._base import DriverConnection, DriverReader, DriverTransaction


class FakeReader(DriverReader):
    def __init__(self, columns: "list[str]", rows: "Sequence[Sequence[Any]]") -> None:
        self._columns = columns
        self._rows = iter(rows)

    @property
    def columns(self) -> "list[str]":
        return self._columns

    async def read(self) -> "Optional[Sequence[Any]]":
        return next(self._rows, None)


class FakeTransaction(DriverTransaction):
    def __init__(self, connection: "FakeConnection") -> None:
        self._connection = connection
        self._active = True

    @property
    def connection(self) -> "FakeConnection":
        return self._connection

    @property
    def is_active(self) -> bool:
        return self._active

    async def commit(self) -> None:
        self._active = False
        self._connection.log.append("COMMIT")

    async def rollback(self) -> None:
        self._active = False
        self._connection.log.append("ROLLBACK")


class FakeConnection(DriverConnection):
    """Records every command and answers from canned results.

    ``fail_on`` holds SQL fragments; a command whose text contains one raises
    ``RuntimeError`` the way a raw driver would.
    """

    identity_sql: ClassVar[str] = "SELECT IDENTITY()"

    def __init__(
        self,
        *,
        rows: "Optional[dict[str, tuple[list[str], list[tuple[Any, ...]]]]]" = None,
        scalars: "Optional[dict[str, Any]]" = None,
        fail_on: "Sequence[str]" = (),
        first_identity: int = 1,
    ) -> None:
        self.rows = rows or {}
        self.scalars = scalars or {}
        self.fail_on = list(fail_on)
        self.commands: list[Command] = []
        self.log: list[str] = []
        self.close_count = 0
        self.open_readers = 0
        self._next_identity = first_identity

    @property
    def is_open(self) -> bool:
        return self.close_count == 0

    @property
    def statements(self) -> "list[str]":
        return [command.sql for command in self.commands]

    def _record(self, command: Command) -> None:
        self.commands.append(command)
        self.log.append(command.sql)
        if any(fragment in command.sql for fragment in self.fail_on):
            msg = f"driver rejected {command.sql!r}"
            raise RuntimeError(msg)

    async def execute(self, command: Command) -> int:
        self._record(command)
        return 1

    async def execute_scalar(self, command: Command) -> Any:
        self._record(command)
        if command.sql == self.identity_sql:
            identity = self._next_identity
            self._next_identity += 1
            return identity
        return self.scalars.get(command.sql)

    @asynccontextmanager
    async def execute_reader(self, command: Command) -> AsyncGenerator[FakeReader, None]:
        self._record(command)
        columns, rows = self.rows.get(command.sql, ([], []))
        self.open_readers += 1
        try:
            yield FakeReader(columns, rows)
        finally:
            self.open_readers -= 1

    async def begin(self) -> FakeTransaction:
        self.log.append("BEGIN")
        return FakeTransaction(self)

    async def close(self) -> None:
        self.close_count += 1


class FakeFactory:
    """Connection factory counting the connections it opens."""

    def __init__(self, *, fail: bool = False) -> None:
        self.connections: list[FakeConnection] = []
        self.fail = fail

    async def __call__(self) -> FakeConnection:
        if self.fail:
            msg = "server unreachable"
            raise OSError(msg)
        connection = FakeConnection()
        self.connections.append(connection)
        return connection
