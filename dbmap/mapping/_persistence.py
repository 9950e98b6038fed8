"""Table-bound persistence for one record type.

:class:`Mapping` binds a record type to a table and an optional primary key and
derives every statement it runs: SELECTs from a query fragment, and INSERT,
UPDATE or DELETE from the records themselves.

Writes are collected into a command set first, then executed as one unit:

* no commands: nothing happens;
* one command: it runs directly on the connection;
* two or more: they run in generation order inside one transaction, committed
  only when every command succeeded.

When the mapping has an identity key, every INSERT is followed by a query for
the generated identity, which is written back onto the record.
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Generic, Optional

from dbmap.core.command import Command
from dbmap.driver._base import DriverTransaction
from dbmap.driver._executor import execute_command, scalar_command, select, select_one_or_none
from dbmap.exceptions import ImproperConfigurationError
from dbmap.mapping._compose import compose_delete, compose_insert, compose_select, compose_update
from dbmap.mapping._descriptor import DescriptorRegistry
from dbmap.mapping._row import Row
from dbmap.mapping._shape import DynamicShape, shape_for
from dbmap.typing import RecordT
from dbmap.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Iterable

    from dbmap.driver._base import DriverConnection
    from dbmap.mapping._shape import RecordShape
    from dbmap.pool import ConnectionPool
    from dbmap.typing import CommandTarget

__all__ = ("CommandSet", "Mapping")

logger = get_logger("mapping")

CommandSet = list[tuple[Command, Optional[Any]]]
"""Ordered commands, each paired with the record awaiting an identity (or None)."""


class Mapping(Generic[RecordT]):
    """Reads and writes records of one type against one table.

    Example::

        people = Mapping(Person, pool, table_name="People", primary_key="Id", identity=True)
        await people.save(Person(name="Ada"))
        adults = await people.select("WHERE Age >= @0", 18)
    """

    __slots__ = ("_identity", "_pool", "_primary_key", "_record_type", "_registry", "_shape", "_table_name")

    def __init__(
        self,
        record_type: "type[RecordT]" = Row,  # type: ignore[assignment]
        pool: "Optional[ConnectionPool]" = None,
        *,
        table_name: Optional[str] = None,
        primary_key: Optional[str] = None,
        identity: bool = False,
        registry: "Optional[DescriptorRegistry]" = None,
    ) -> None:
        """Bind a record type to a table.

        Args:
            record_type: Record class; :class:`Row` (the default) for dynamic records.
            pool: Pool used when a call supplies neither a connection nor a transaction.
            table_name: Table name. Defaults to the record type's name.
            primary_key: Name of the primary key field, if any.
            identity: Whether the database generates the primary key on insert.
            registry: Descriptor cache shared with other mappings.

        Raises:
            ImproperConfigurationError: The combination of settings cannot work.
        """
        self._registry = registry if registry is not None else DescriptorRegistry()
        self._shape: RecordShape[Any] = shape_for(record_type, self._registry)
        self._record_type = record_type
        self._pool = pool

        if table_name is None:
            if isinstance(self._shape, DynamicShape):
                msg = "A table name is required for dynamic records"
                raise ImproperConfigurationError(msg)
            table_name = self._shape.default_table_name
        if not table_name.strip():
            msg = "Table name must not be blank"
            raise ImproperConfigurationError(msg)
        self._table_name = table_name.strip()

        if identity and not primary_key:
            msg = f"Mapping for {self._table_name} is marked identity but has no primary key"
            raise ImproperConfigurationError(msg)
        self._primary_key = self._shape.resolve_key(primary_key) if primary_key else None
        self._identity = identity

    def __repr__(self) -> str:
        return (
            f"Mapping({self._record_type.__name__}, table_name={self._table_name!r}, "
            f"primary_key={self._primary_key!r}, identity={self._identity!r})"
        )

    @property
    def record_type(self) -> "type[RecordT]":
        return self._record_type

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def primary_key(self) -> Optional[str]:
        return self._primary_key

    @property
    def identity(self) -> bool:
        return self._identity

    @property
    def pool(self) -> "Optional[ConnectionPool]":
        return self._pool

    @property
    def registry(self) -> DescriptorRegistry:
        return self._registry

    @property
    def _executor_type(self) -> "Optional[type[Any]]":
        return None if isinstance(self._shape, DynamicShape) else self._record_type

    # Statement generation

    def compose_select(self, query: str = "", *, single: bool = False) -> str:
        """SQL a :meth:`select` (or, with ``single``, :meth:`select_one_or_none`) call runs."""
        return compose_select(query, self._shape.select_columns, self._table_name, single=single)

    def _insert_command(self, record: Any) -> "Optional[tuple[Command, Optional[Any]]]":
        command = Command()
        columns: list[str] = []
        placeholders: list[str] = []
        key = self._primary_key.lower() if self._primary_key else None
        for name, value in self._shape.iter_fields(record):
            if self._identity and name.lower() == key:
                continue
            columns.append(name)
            placeholders.append(command.add(value).name)
        if not columns:
            return None
        command.sql = compose_insert(self._table_name, columns, placeholders)
        return command, (record if self._identity else None)

    def _update_command(self, record: Any, key: str) -> "Optional[tuple[Command, Optional[Any]]]":
        command = Command()
        assignments = [
            f"{name} = {command.add(value).name}"
            for name, value in self._shape.iter_fields(record)
            if name.lower() != key.lower()
        ]
        if not assignments:
            return None
        key_placeholder = command.add(self._shape.get_key(record, key)).name
        command.sql = compose_update(self._table_name, assignments, key, key_placeholder)
        return command, None

    def build_save_commands(self, records: "Iterable[Optional[RecordT]]") -> CommandSet:
        """Derive the command set :meth:`save` would run for ``records``.

        Records with a valid key become UPDATEs, all others INSERTs. None records and
        records with nothing to write are skipped.
        """
        commands: CommandSet = []
        for record in records:
            if record is None:
                continue
            key = self._primary_key
            if key is not None and self._shape.has_valid_key(record, key):
                entry = self._update_command(record, key)
            else:
                entry = self._insert_command(record)
            if entry is not None:
                commands.append(entry)
        return commands

    def build_delete_commands(self, records: "Iterable[Optional[RecordT]]") -> CommandSet:
        """Derive the command set :meth:`delete` would run for ``records``.

        Without a primary key no record has a valid key, so the set is empty.
        """
        key = self._primary_key
        commands: CommandSet = []
        if key is None:
            return commands
        for record in records:
            if record is None or not self._shape.has_valid_key(record, key):
                continue
            commands.append((Command(compose_delete(self._table_name, key), (self._shape.get_key(record, key),)), None))
        return commands

    # Execution

    @asynccontextmanager
    async def _provide_target(
        self, connection: "Optional[DriverConnection]", transaction: "Optional[DriverTransaction]"
    ) -> "AsyncGenerator[CommandTarget, None]":
        if transaction is not None:
            yield transaction
        elif connection is not None:
            yield connection
        elif self._pool is not None:
            async with self._pool.provide_connection() as pooled:
                yield pooled
        else:
            msg = f"Mapping for {self._table_name} has no pool; pass a connection or a transaction"
            raise ImproperConfigurationError(msg)

    async def _run_commands(self, target: "CommandTarget", commands: CommandSet) -> None:
        connection = target.connection if isinstance(target, DriverTransaction) else target
        for command, record in commands:
            await execute_command(target, command)
            if record is not None and self._primary_key is not None:
                identity = await scalar_command(target, Command(connection.identity_sql))
                self._shape.set_key(record, self._primary_key, identity)

    async def _run_batch(
        self,
        operation: str,
        commands: CommandSet,
        connection: "Optional[DriverConnection]",
        transaction: "Optional[DriverTransaction]",
    ) -> int:
        if not commands:
            return 0
        key = self._primary_key
        snapshots = [(record, self._shape.get_key(record, key)) for _, record in commands if record is not None and key]
        log_with_context(
            logger,
            logging.DEBUG,
            f"mapping.{operation}",
            table=self._table_name,
            command_count=len(commands),
            caller_transaction=transaction is not None,
        )
        try:
            async with self._provide_target(connection, transaction) as target:
                if isinstance(target, DriverTransaction) or len(commands) == 1:
                    await self._run_commands(target, commands)
                else:
                    txn = await target.begin()
                    async with txn:
                        await self._run_commands(txn, commands)
                        await txn.commit()
        except BaseException:
            if transaction is not None:
                # The caller decides whether earlier statements commit
                raise
            for record, snapshot in reversed(snapshots):
                self._shape.restore_key(record, key, snapshot)  # type: ignore[arg-type]
            raise
        return len(commands)

    async def select(
        self,
        query: str = "",
        *arguments: Any,
        connection: "Optional[DriverConnection]" = None,
        transaction: "Optional[DriverTransaction]" = None,
    ) -> "list[RecordT]":
        """Retrieve every matching record.

        Args:
            query: Empty for the whole table, a clause such as ``"WHERE Age > @0"``, or a full SELECT.
            *arguments: Values for ``@0``, ``@1``, ...
            connection: Connection to run on instead of one from the pool.
            transaction: Transaction to run in.

        Returns:
            The records in row order.
        """
        sql = self.compose_select(query)
        async with self._provide_target(connection, transaction) as target:
            return await select(target, sql, *arguments, record_type=self._executor_type, registry=self._registry)  # type: ignore[return-value]

    async def select_one_or_none(
        self,
        query: str = "",
        *arguments: Any,
        connection: "Optional[DriverConnection]" = None,
        transaction: "Optional[DriverTransaction]" = None,
    ) -> "Optional[RecordT]":
        """Retrieve the first matching record, or None.

        ``LIMIT 1`` is appended unless the query already ends with a limit clause.
        """
        sql = self.compose_select(query, single=True)
        async with self._provide_target(connection, transaction) as target:
            return await select_one_or_none(  # type: ignore[return-value]
                target, sql, *arguments, record_type=self._executor_type, registry=self._registry
            )

    async def save(
        self,
        *records: "Optional[RecordT]",
        connection: "Optional[DriverConnection]" = None,
        transaction: "Optional[DriverTransaction]" = None,
    ) -> int:
        """Insert or update ``records``.

        Records whose primary key is set are updated, all others inserted. Generated
        identities are written back onto the inserted records. If the call fails they
        are restored to their previous values, unless the call joined ``transaction``:
        the caller then owns the outcome and the assigned identities are left in place.

        Args:
            *records: Records to persist. None entries are ignored.
            connection: Connection to run on instead of one from the pool.
            transaction: Transaction to join. No nested transaction is opened and
                nothing is committed.

        Raises:
            CommandError: A statement failed. Earlier statements of the call are rolled back.

        Returns:
            Number of statements executed, identity queries excluded.
        """
        return await self._run_batch("save", self.build_save_commands(records), connection, transaction)

    async def save_all(
        self,
        records: "Iterable[Optional[RecordT]]",
        *,
        connection: "Optional[DriverConnection]" = None,
        transaction: "Optional[DriverTransaction]" = None,
    ) -> int:
        return await self._run_batch("save", self.build_save_commands(records), connection, transaction)

    async def delete(
        self,
        *records: "Optional[RecordT]",
        connection: "Optional[DriverConnection]" = None,
        transaction: "Optional[DriverTransaction]" = None,
    ) -> int:
        """Delete ``records`` by primary key.

        Records without a valid key are skipped.

        Returns:
            Number of DELETE statements executed.
        """
        return await self._run_batch("delete", self.build_delete_commands(records), connection, transaction)

    async def delete_all(
        self,
        records: "Iterable[Optional[RecordT]]",
        *,
        connection: "Optional[DriverConnection]" = None,
        transaction: "Optional[DriverTransaction]" = None,
    ) -> int:
        return await self._run_batch("delete", self.build_delete_commands(records), connection, transaction)

