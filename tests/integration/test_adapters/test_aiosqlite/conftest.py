from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from dbmap import DatabaseConfig, DbMap
from dbmap.driver import execute

PEOPLE_DDL = "CREATE TABLE People (Id INTEGER PRIMARY KEY AUTOINCREMENT, Name TEXT NOT NULL, Age INTEGER NOT NULL)"


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    return tmp_path / "people.db"


@pytest.fixture
async def db(database_path: Path) -> AsyncGenerator[DbMap, None]:
    async with DbMap() as db:
        db.add_config(DatabaseConfig(f"Data Source={database_path};Timeout=5", provider="aiosqlite"))
        async with db.provide_connection() as connection:
            await execute(connection, PEOPLE_DDL)
        yield db
