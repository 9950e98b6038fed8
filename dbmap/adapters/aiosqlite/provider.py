"""Connection provider for aiosqlite."""

from typing import Any, Final, Optional, TypedDict

import aiosqlite
from typing_extensions import NotRequired

from dbmap.adapters.aiosqlite.driver import AiosqliteConnection
from dbmap.exceptions import DatabaseConnectionError, ImproperConfigurationError
from dbmap.utils.logging import get_logger

__all__ = ("AiosqliteConnectionParams", "AiosqliteProvider", "parse_connection_string")

logger = get_logger("adapters.aiosqlite")

MEMORY_DATABASE: Final[str] = "file::memory:?cache=shared"
FOREIGN_KEYS_SQL: Final[str] = "PRAGMA foreign_keys = ON"
BUSY_TIMEOUT_SQL: Final[str] = "PRAGMA busy_timeout = {timeout_ms}"

_DATABASE_KEYS: Final = frozenset({"data source", "datasource", "database", "filename"})
_TIMEOUT_KEYS: Final = frozenset({"timeout", "default timeout", "busy timeout"})


class AiosqliteConnectionParams(TypedDict, total=False):
    """TypedDict for aiosqlite connection parameters."""

    database: str
    timeout: NotRequired[float]
    uri: NotRequired[bool]


def _normalize_database(database: str, params: AiosqliteConnectionParams) -> None:
    if not database or database == ":memory:":
        params["database"] = MEMORY_DATABASE
        params["uri"] = True
    else:
        params["database"] = database
        if database.startswith("file:"):
            params["uri"] = True


def parse_connection_string(connection_string: str) -> AiosqliteConnectionParams:
    """Translate a connection string into ``aiosqlite.connect`` arguments.

    Accepted forms are a file path, a ``file:`` URI, ``:memory:`` (or an empty
    string) for a shared in-memory database, and ``Key=Value;...`` pairs using
    ``Data Source`` and ``Timeout`` (seconds).

    Raises:
        ImproperConfigurationError: A key is not recognized or a timeout is not a number.
    """
    params: AiosqliteConnectionParams = {}
    text = connection_string.strip()
    if "=" not in text or text.startswith("file:"):
        _normalize_database(text, params)
        return params

    database = ""
    for part in text.split(";"):
        if not part.strip():
            continue
        key, _, value = part.partition("=")
        key, value = key.strip().lower(), value.strip()
        if key in _DATABASE_KEYS:
            database = value
        elif key in _TIMEOUT_KEYS:
            try:
                params["timeout"] = float(value)
            except ValueError as e:
                msg = f"Invalid timeout {value!r} in connection string"
                raise ImproperConfigurationError(msg) from e
        else:
            msg = f"Unsupported connection string key {key!r}"
            raise ImproperConfigurationError(msg)
    _normalize_database(database, params)
    return params


class AiosqliteProvider:
    """Opens :class:`AiosqliteConnection` instances from connection strings."""

    __slots__ = ("_foreign_keys", "_options")

    def __init__(self, *, foreign_keys: bool = True, **options: Any) -> None:
        """Initialize the provider.

        Args:
            foreign_keys: Enable foreign key enforcement on every new connection.
            **options: Extra keyword arguments passed to ``aiosqlite.connect``.
        """
        self._foreign_keys = foreign_keys
        self._options = options

    def __repr__(self) -> str:
        return "AiosqliteProvider()"

    async def connect(self, connection_string: str) -> AiosqliteConnection:
        """Open a new autocommit connection.

        Raises:
            ImproperConfigurationError: The connection string cannot be parsed.
            DatabaseConnectionError: SQLite could not open the database.
        """
        params = parse_connection_string(connection_string)
        timeout: Optional[float] = params.get("timeout")
        try:
            raw = await aiosqlite.connect(**params, **self._options, isolation_level=None)
        except (aiosqlite.Error, OSError) as e:
            msg = f"Could not open SQLite database {params.get('database')!r}: {e}"
            raise DatabaseConnectionError(msg) from e

        try:
            if self._foreign_keys:
                await raw.execute(FOREIGN_KEYS_SQL)
            if timeout is not None:
                await raw.execute(BUSY_TIMEOUT_SQL.format(timeout_ms=int(timeout * 1000)))
        except aiosqlite.Error as e:
            await raw.close()
            msg = f"Could not configure SQLite connection: {e}"
            raise DatabaseConnectionError(msg) from e

        logger.debug("Opened SQLite connection to %s", params.get("database"))
        return AiosqliteConnection(raw)
