import pytest

from dbmap.mapping import DescriptorRegistry
from dbmap.pool import ConnectionPool
from tests.unit.fakes import FakeConnection, FakeFactory


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def factory() -> FakeFactory:
    return FakeFactory()


@pytest.fixture
def pool(factory: FakeFactory) -> ConnectionPool:
    return ConnectionPool(factory)


@pytest.fixture
def registry() -> DescriptorRegistry:
    return DescriptorRegistry()
