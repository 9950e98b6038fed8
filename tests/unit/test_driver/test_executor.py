"""Unit tests for the query executor functions."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import pytest

from dbmap.driver import (
    convert_scalar,
    create_command,
    execute,
    select,
    select_one_or_none,
    select_value,
)
from dbmap.exceptions import CastError, CommandError, DatabaseConnectionError, ImproperConfigurationError
from dbmap.mapping import DescriptorRegistry, Row
from tests.unit.fakes import FakeConnection

pytestmark = pytest.mark.anyio


@dataclass
class Person:
    Id: Optional[int] = None
    Name: str = ""


PEOPLE_SQL = "SELECT Id, Name FROM People"


@pytest.fixture
def people_connection() -> FakeConnection:
    return FakeConnection(rows={PEOPLE_SQL: (["Id", "Name"], [(1, "Ada"), (2, "Grace"), (3, None)])})


async def test_create_command_on_transaction_attaches_it(connection: FakeConnection) -> None:
    transaction = await connection.begin()
    command = create_command(transaction, "SELECT @0", 1)
    assert command.transaction is transaction
    assert create_command(connection, "SELECT 1").transaction is None


async def test_execute_returns_row_count(connection: FakeConnection) -> None:
    assert await execute(connection, "DELETE FROM People WHERE Id = @0", 5) == 1
    [command] = connection.commands
    assert command.sql == "DELETE FROM People WHERE Id = @0"
    assert command.named_values() == {"0": 5}


async def test_execute_wraps_driver_errors() -> None:
    connection = FakeConnection(fail_on=["DROP"])
    with pytest.raises(CommandError) as exc_info:
        await execute(connection, "DROP TABLE People")
    assert isinstance(exc_info.value.__cause__, RuntimeError)


async def test_execute_on_closed_connection(connection: FakeConnection) -> None:
    await connection.close()
    with pytest.raises(DatabaseConnectionError):
        await execute(connection, "SELECT 1")
    assert connection.commands == []


async def test_select_value(connection: FakeConnection) -> None:
    connection.scalars["SELECT COUNT(*) FROM People"] = 3
    connection.scalars["SELECT '42'"] = "42"
    assert await select_value(connection, "SELECT COUNT(*) FROM People") == 3
    assert await select_value(connection, "SELECT '42'", value_type=int) == 42
    assert await select_value(connection, "SELECT NULL", value_type=int) is None


async def test_select_value_cast_failure(connection: FakeConnection) -> None:
    connection.scalars["SELECT 'abc'"] = "abc"
    with pytest.raises(CastError):
        await select_value(connection, "SELECT 'abc'", value_type=int)


@pytest.mark.parametrize(
    ("value", "value_type", "expected"),
    [
        (5, int, 5),
        (5.0, int, 5),
        ("5", int, 5),
        (5, float, 5.0),
        (5, str, "5"),
        ("1.50", Decimal, Decimal("1.50")),
        (None, int, None),
        (7, None, 7),
    ],
)
def test_convert_scalar(value: object, value_type: Optional[type], expected: object) -> None:
    assert convert_scalar(value, value_type) == expected


def test_convert_scalar_rejects_lossy_float() -> None:
    with pytest.raises(CastError):
        convert_scalar(5.5, int)


async def test_select_maps_typed_records_in_order(people_connection: FakeConnection) -> None:
    people = await select(people_connection, PEOPLE_SQL, record_type=Person, registry=DescriptorRegistry())
    assert people == [Person(1, "Ada"), Person(2, "Grace"), Person(3, "")]
    assert people_connection.open_readers == 0


async def test_select_defaults_to_rows(people_connection: FakeConnection) -> None:
    rows = await select(people_connection, PEOPLE_SQL)
    assert all(isinstance(row, Row) for row in rows)
    assert rows[2].name is None
    assert [row.id for row in rows] == [1, 2, 3]


async def test_select_one_or_none(people_connection: FakeConnection) -> None:
    person = await select_one_or_none(people_connection, PEOPLE_SQL, record_type=Person)
    assert person == Person(1, "Ada")
    assert await select_one_or_none(people_connection, "SELECT * FROM Nobody") is None


async def test_reader_is_released_when_mapping_fails(people_connection: FakeConnection) -> None:
    class Broken:
        Id: int

        def __init__(self, required: int) -> None:
            self.Id = required

    with pytest.raises(ImproperConfigurationError):
        await select(people_connection, PEOPLE_SQL, record_type=Broken)
    assert people_connection.open_readers == 0
