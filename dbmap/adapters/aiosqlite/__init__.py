from dbmap.adapters.aiosqlite.driver import (
    AiosqliteConnection,
    AiosqliteReader,
    AiosqliteTransaction,
    coerce_parameter,
    handle_database_exceptions,
)
from dbmap.adapters.aiosqlite.provider import AiosqliteConnectionParams, AiosqliteProvider, parse_connection_string

__all__ = (
    "AiosqliteConnection",
    "AiosqliteConnectionParams",
    "AiosqliteProvider",
    "AiosqliteReader",
    "AiosqliteTransaction",
    "coerce_parameter",
    "handle_database_exceptions",
    "parse_connection_string",
)
