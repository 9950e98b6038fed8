"""Query execution against a connection or a transaction.

Each call builds exactly one :class:`~dbmap.core.Command` from the SQL template
and the positional arguments, runs it, and shapes the outcome as an affected-row
count, a scalar, a single record or a list of records.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional, Union, overload

from dbmap.core.command import Command
from dbmap.driver._base import DriverConnection, DriverTransaction
from dbmap.exceptions import CastError, DatabaseConnectionError, wrap_exceptions
from dbmap.utils.logging import SQL_LOGGER_NAME, get_logger, log_with_context

if TYPE_CHECKING:
    from dbmap.mapping._descriptor import DescriptorRegistry
    from dbmap.mapping._row import Row
    from dbmap.mapping._shape import RecordShape
    from dbmap.typing import CommandTarget, RecordT, ValueT

__all__ = (
    "convert_scalar",
    "create_command",
    "execute",
    "execute_command",
    "scalar_command",
    "select",
    "select_one_or_none",
    "select_value",
)

logger = get_logger(SQL_LOGGER_NAME)


def _split_target(target: "CommandTarget") -> "tuple[DriverConnection, Optional[DriverTransaction]]":
    if isinstance(target, DriverTransaction):
        return target.connection, target
    return target, None


def _prepare(target: "CommandTarget", command: Command) -> DriverConnection:
    connection, transaction = _split_target(target)
    if transaction is not None:
        command.transaction = transaction
    if not connection.is_open:
        msg = "Cannot run a command on a closed connection"
        raise DatabaseConnectionError(msg)
    log_with_context(
        logger,
        logging.DEBUG,
        "sql.execute",
        sql=command.sql,
        parameter_count=len(command.parameters),
        in_transaction=command.transaction is not None,
    )
    return connection


def _resolve_shape(
    record_type: "Optional[type[Any]]", registry: "Optional[DescriptorRegistry]"
) -> "RecordShape[Any]":
    # Import here to avoid circular imports
    from dbmap.mapping._shape import shape_for

    return shape_for(record_type, registry)


def create_command(target: "CommandTarget", sql: str, *arguments: Any) -> Command:
    """Build a command for ``target`` with ``arguments`` bound as ``@0``, ``@1``, ...

    Args:
        target: Connection or transaction the command will run on.
        sql: SQL template, passed through verbatim.
        *arguments: Positional arguments.

    Returns:
        The command, attached to the transaction when ``target`` is one.
    """
    _, transaction = _split_target(target)
    return Command(sql, arguments, transaction=transaction)


def convert_scalar(value: Any, value_type: "Optional[type[ValueT]]") -> Any:
    """Convert a scalar read from the driver to ``value_type``.

    Raises:
        CastError: The value cannot be represented as ``value_type``.
    """
    if value is None or value_type is None or isinstance(value, value_type):
        return value
    if value_type is int and isinstance(value, float) and not value.is_integer():
        raise CastError(value, value_type)
    try:
        return value_type(value)  # type: ignore[call-arg]
    except (TypeError, ValueError, ArithmeticError) as e:
        raise CastError(value, value_type) from e


async def execute_command(target: "CommandTarget", command: Command) -> int:
    """Run a prepared non-query command and return the affected-row count."""
    connection = _prepare(target, command)
    with wrap_exceptions():
        return await connection.execute(command)


async def scalar_command(target: "CommandTarget", command: Command) -> Any:
    """Run a prepared command and return the first column of the first row."""
    connection = _prepare(target, command)
    with wrap_exceptions():
        return await connection.execute_scalar(command)


async def _read_records(
    target: "CommandTarget", command: Command, shape: "RecordShape[Any]", *, limit: Optional[int] = None
) -> "list[Any]":
    connection = _prepare(target, command)
    records: list[Any] = []
    with wrap_exceptions():
        async with connection.execute_reader(command) as reader:
            columns = reader.columns
            async for values in reader:
                record = shape.create(columns, values)
                if record is not None:
                    records.append(record)
                if limit is not None and len(records) >= limit:
                    break
    return records


async def execute(target: "CommandTarget", sql: str, *arguments: Any) -> int:
    """Execute a non-query statement.

    Returns:
        Number of affected rows.
    """
    return await execute_command(target, create_command(target, sql, *arguments))


@overload
async def select_value(target: "CommandTarget", sql: str, *arguments: Any, value_type: "type[ValueT]") -> "Optional[ValueT]": ...


@overload
async def select_value(target: "CommandTarget", sql: str, *arguments: Any, value_type: None = None) -> Any: ...


async def select_value(
    target: "CommandTarget", sql: str, *arguments: Any, value_type: "Optional[type[ValueT]]" = None
) -> Any:
    """Execute a statement and return the first column of the first row.

    Args:
        target: Connection or transaction.
        sql: SQL template.
        *arguments: Positional arguments.
        value_type: Optional type the value is converted to.

    Raises:
        CastError: The value cannot be converted to ``value_type``.

    Returns:
        The scalar, or None when no row was produced.
    """
    value = await scalar_command(target, create_command(target, sql, *arguments))
    return convert_scalar(value, value_type)


@overload
async def select_one_or_none(
    target: "CommandTarget",
    sql: str,
    *arguments: Any,
    record_type: "type[RecordT]",
    registry: "Optional[DescriptorRegistry]" = None,
) -> "Optional[RecordT]": ...


@overload
async def select_one_or_none(
    target: "CommandTarget",
    sql: str,
    *arguments: Any,
    record_type: None = None,
    registry: "Optional[DescriptorRegistry]" = None,
) -> "Optional[Row]": ...


async def select_one_or_none(
    target: "CommandTarget",
    sql: str,
    *arguments: Any,
    record_type: "Optional[type[RecordT]]" = None,
    registry: "Optional[DescriptorRegistry]" = None,
) -> "Optional[Union[RecordT, Row]]":
    """Execute a statement and map the first row.

    Without ``record_type`` the row is returned as a dynamic :class:`~dbmap.mapping.Row`.

    Returns:
        The mapped record, or None when no row was produced.
    """
    shape = _resolve_shape(record_type, registry)
    records = await _read_records(target, create_command(target, sql, *arguments), shape, limit=1)
    return records[0] if records else None


@overload
async def select(
    target: "CommandTarget",
    sql: str,
    *arguments: Any,
    record_type: "type[RecordT]",
    registry: "Optional[DescriptorRegistry]" = None,
) -> "list[RecordT]": ...


@overload
async def select(
    target: "CommandTarget",
    sql: str,
    *arguments: Any,
    record_type: None = None,
    registry: "Optional[DescriptorRegistry]" = None,
) -> "list[Row]": ...


async def select(
    target: "CommandTarget",
    sql: str,
    *arguments: Any,
    record_type: "Optional[type[RecordT]]" = None,
    registry: "Optional[DescriptorRegistry]" = None,
) -> "Union[list[RecordT], list[Row]]":
    """Execute a statement and map every row, in row order."""
    shape = _resolve_shape(record_type, registry)
    return await _read_records(target, create_command(target, sql, *arguments), shape)
