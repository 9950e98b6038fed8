"""Unit tests for configuration, provider resolution and the DbMap registry."""

from dataclasses import dataclass
from typing import Optional

import pytest

from dbmap import DatabaseConfig, DbMap
from dbmap.adapters import resolve_provider
from dbmap.adapters.aiosqlite import AiosqliteProvider
from dbmap.driver._base import DriverConnection
from dbmap.exceptions import ImproperConfigurationError, MissingDependencyError
from dbmap.pool import ConnectionPool
from tests.unit.fakes import FakeConnection

pytestmark = pytest.mark.anyio


class FakeProvider:
    def __init__(self) -> None:
        self.connection_strings: list[str] = []

    async def connect(self, connection_string: str) -> FakeConnection:
        self.connection_strings.append(connection_string)
        return FakeConnection()


class NeedsArguments:
    def __init__(self, url: str) -> None:
        self.url = url

    async def connect(self, connection_string: str) -> FakeConnection:
        return FakeConnection()


@dataclass
class Person:
    Id: Optional[int] = None
    Name: str = ""


# Provider resolution


@pytest.mark.parametrize("name", ["aiosqlite", "sqlite", "SQLite"])
def test_resolve_builtin_providers(name: str) -> None:
    assert isinstance(resolve_provider(name), AiosqliteProvider)


def test_resolve_import_path_class_and_instance() -> None:
    assert isinstance(resolve_provider("tests.unit.test_config:FakeProvider"), FakeProvider)
    assert isinstance(resolve_provider(FakeProvider), FakeProvider)
    provider = FakeProvider()
    assert resolve_provider(provider) is provider


@pytest.mark.parametrize("identity", ["no_such_provider", "pathlib:Path", NeedsArguments, object()])
def test_resolve_provider_rejects_invalid_identities(identity: object) -> None:
    with pytest.raises(ImproperConfigurationError):
        resolve_provider(identity)  # type: ignore[arg-type]


def test_resolve_builtin_provider_without_driver(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("dbmap.adapters._INSTALLED", {"aiosqlite": False})
    with pytest.raises(MissingDependencyError):
        resolve_provider("aiosqlite")


# DatabaseConfig


async def test_config_creates_pool_lazily_and_reuses_it() -> None:
    provider = FakeProvider()
    config = DatabaseConfig("Data Source=app.db", provider=provider, max_idle=2)
    assert config.pool_instance is None
    pool = config.create_pool()
    assert isinstance(pool, ConnectionPool)
    assert config.provide_pool() is pool
    assert pool.max_idle == 2

    async with config.provide_connection() as connection:
        assert isinstance(connection, FakeConnection)
    assert provider.connection_strings == ["Data Source=app.db"]

    await config.close_pool()
    assert pool.is_closed
    assert config.pool_instance is None
    assert config.create_pool() is not pool


async def test_on_connection_create_hook() -> None:
    seen: list[DriverConnection] = []

    async def hook(connection: DriverConnection) -> None:
        seen.append(connection)

    config = DatabaseConfig(provider=FakeProvider, on_connection_create=hook)
    connection = await config.create_connection()
    assert seen == [connection]


async def test_failing_hook_closes_connection() -> None:
    opened: list[FakeConnection] = []

    class RecordingProvider(FakeProvider):
        async def connect(self, connection_string: str) -> FakeConnection:
            connection = await super().connect(connection_string)
            opened.append(connection)
            return connection

    async def hook(connection: DriverConnection) -> None:
        raise RuntimeError("setup failed")

    config = DatabaseConfig(provider=RecordingProvider(), on_connection_create=hook)
    with pytest.raises(RuntimeError):
        await config.create_connection()
    assert opened[0].close_count == 1


def test_config_repr_and_hash() -> None:
    config = DatabaseConfig("app.db")
    assert "connection_string='app.db'" in repr(config)
    assert hash(config) == id(config)


# DbMap


async def test_dbmap_registry_and_mappings() -> None:
    db = DbMap()
    config = DatabaseConfig(provider=FakeProvider())
    assert db.add_config(config) == "default"
    assert db.get_config() is config
    assert db.get_config(config) is config
    with pytest.raises(KeyError):
        db.get_config("missing")

    people = db.mapping(Person, table_name="People", primary_key="Id", identity=True)
    others = db.mapping(Person)
    assert people.pool is config.provide_pool()
    assert people.registry is others.registry is db.registry
    assert others.table_name == "Person"

    await people.save(Person(Name="Ada"))
    async with db.provide_connection() as connection:
        assert isinstance(connection, FakeConnection)
        assert connection.log[0] == "INSERT INTO People (Name) VALUES (@0)"


async def test_dbmap_context_manager_closes_pools() -> None:
    async with DbMap() as db:
        db.add_config(DatabaseConfig(provider=FakeProvider()), name="primary")
        db.add_config(DatabaseConfig(provider=FakeProvider()), name="replica")
        pools = [db.get_pool("primary"), db.get_pool("replica")]
    assert all(pool.is_closed for pool in pools)
