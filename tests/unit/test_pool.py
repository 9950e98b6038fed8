"""Unit tests for the connection pool."""

import asyncio
import logging

import pytest

from dbmap.exceptions import DatabaseConnectionError, ImproperConfigurationError, PoolClosedError
from dbmap.pool import ConnectionPool
from tests.unit.fakes import FakeConnection, FakeFactory

pytestmark = pytest.mark.anyio


async def test_release_then_acquire_reuses_connection(pool: ConnectionPool, factory: FakeFactory) -> None:
    first = await pool.acquire()
    assert first is not None
    await pool.release(first)
    assert pool.size() == 1
    second = await pool.acquire()
    assert second is first
    assert pool.created == 1
    assert len(factory.connections) == 1


async def test_connections_created_only_when_cache_empty(pool: ConnectionPool) -> None:
    held = [await pool.acquire() for _ in range(3)]
    assert pool.created == 3
    for connection in held:
        await pool.release(connection)
    again = [await pool.acquire() for _ in range(3)]
    assert pool.created == 3
    assert {id(c) for c in again} == {id(c) for c in held}


async def test_concurrent_acquires_never_share_a_connection(pool: ConnectionPool) -> None:
    async def borrow() -> object:
        async with pool.provide_connection() as connection:
            await asyncio.sleep(0)
            return connection

    warm = [await pool.acquire() for _ in range(2)]
    for connection in warm:
        await pool.release(connection)

    results = await asyncio.gather(*(borrow() for _ in range(10)))
    assert len(results) == 10
    assert pool.created <= 10
    assert pool.size() == pool.created


async def test_shutdown_twice_closes_each_idle_connection_once(pool: ConnectionPool, factory: FakeFactory) -> None:
    connections = [await pool.acquire() for _ in range(2)]
    for connection in connections:
        await pool.release(connection)
    await pool.shutdown()
    await pool.shutdown()
    assert pool.is_closed
    assert pool.size() == 0
    assert [c.close_count for c in factory.connections] == [1, 1]


async def test_acquire_after_shutdown_returns_none(pool: ConnectionPool) -> None:
    await pool.shutdown()
    assert await pool.acquire() is None
    with pytest.raises(PoolClosedError):
        async with pool.provide_connection():
            pass


async def test_release_after_shutdown_closes_connection(pool: ConnectionPool) -> None:
    connection = await pool.acquire()
    await pool.shutdown()
    await pool.release(connection)
    assert isinstance(connection, FakeConnection)
    assert connection.close_count == 1
    assert pool.size() == 0


async def test_concurrent_shutdown_and_release(factory: FakeFactory) -> None:
    for _ in range(20):
        pool = ConnectionPool(factory)
        held = [await pool.acquire() for _ in range(5)]
        await asyncio.gather(pool.shutdown(), *(pool.release(c) for c in held))
        assert pool.size() == 0
        for connection in held:
            assert isinstance(connection, FakeConnection)
            assert connection.close_count == 1


async def test_release_ignores_none_closed_and_duplicates(pool: ConnectionPool) -> None:
    await pool.release(None)
    closed = FakeConnection()
    await closed.close()
    await pool.release(closed)
    assert pool.size() == 0

    connection = await pool.acquire()
    await pool.release(connection)
    await pool.release(connection)
    assert pool.size() == 1


async def test_closed_idle_connections_are_discarded(pool: ConnectionPool) -> None:
    connection = await pool.acquire()
    assert connection is not None
    await pool.release(connection)
    await connection.close()
    fresh = await pool.acquire()
    assert fresh is not connection
    assert pool.created == 2


async def test_max_idle_closes_surplus_connections(factory: FakeFactory) -> None:
    pool = ConnectionPool(factory, max_idle=1)
    first, second = await pool.acquire(), await pool.acquire()
    await pool.release(first)
    await pool.release(second)
    assert pool.size() == 1
    assert isinstance(second, FakeConnection)
    assert second.close_count == 1


def test_negative_max_idle_is_rejected(factory: FakeFactory) -> None:
    with pytest.raises(ImproperConfigurationError):
        ConnectionPool(factory, max_idle=-1)


async def test_factory_failure_is_wrapped_and_pool_stays_usable() -> None:
    factory = FakeFactory(fail=True)
    pool = ConnectionPool(factory)
    with pytest.raises(DatabaseConnectionError) as exc_info:
        await pool.acquire()
    assert isinstance(exc_info.value.__cause__, OSError)
    assert pool.created == 0

    factory.fail = False
    assert await pool.acquire() is not None


async def test_provide_connection_releases_on_error(pool: ConnectionPool) -> None:
    with pytest.raises(RuntimeError):
        async with pool.provide_connection():
            raise RuntimeError("boom")
    assert pool.size() == 1


async def test_pool_context_manager_shuts_down(factory: FakeFactory) -> None:
    async with ConnectionPool(factory) as pool:
        async with pool.provide_connection():
            pass
    assert pool.is_closed
    assert factory.connections[0].close_count == 1


async def test_close_errors_are_logged(pool: ConnectionPool, caplog: pytest.LogCaptureFixture) -> None:
    class BrokenConnection(FakeConnection):
        async def close(self) -> None:
            raise OSError("socket gone")

    await pool.release(BrokenConnection())
    with caplog.at_level(logging.DEBUG, logger="dbmap.pool"):
        await pool.shutdown()
    assert any(record.getMessage() == "pool.connection.close.error" for record in caplog.records)
