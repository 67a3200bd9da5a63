"""
Tests for the database manager: URL preparation, lifecycle and health checks
"""

import pytest
from sqlalchemy import inspect, text

from booking_ledger.core.settings import Settings
from booking_ledger.db.session import DatabaseManager


def test_database_manager_initial_state(settings):
    manager = DatabaseManager(settings)

    assert manager.engine is None
    assert manager.async_session is None
    stats = manager.get_connection_stats()
    assert stats["total_connections"] == 0
    assert stats["failed_connections"] == 0
    assert stats["health_status"] == "unknown"


@pytest.mark.parametrize("url, expected", [
    ("postgres://u:p@db:5432/ledger", "postgresql+asyncpg://u:p@db:5432/ledger"),
    ("postgresql://u:p@db:5432/ledger", "postgresql+asyncpg://u:p@db:5432/ledger"),
    ("sqlite:///./ledger.db", "sqlite+aiosqlite:///./ledger.db"),
    ("postgresql+asyncpg://u:p@db/ledger", "postgresql+asyncpg://u:p@db/ledger"),
])
def test_database_url_preparation(url, expected):
    """Plain URLs are switched to their async drivers"""
    print("\n=== Testing Database URL Preparation ===")
    manager = DatabaseManager(Settings(DB_URL=url))
    assert manager._prepare_database_url() == expected


@pytest.mark.parametrize("url", ["", "not a url"])
def test_database_url_rejected(url):
    with pytest.raises(ValueError):
        DatabaseManager(Settings(DB_URL=url))._prepare_database_url()


@pytest.mark.asyncio
async def test_session_requires_initialization(settings):
    manager = DatabaseManager(settings)
    with pytest.raises(RuntimeError):
        async with manager.get_session():
            pass


@pytest.mark.asyncio
async def test_init_db_creates_tables(db_manager):
    async with db_manager.engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        result = await conn.execute(
            text("SELECT sql FROM sqlite_master WHERE type = 'index' AND name = 'uq_bookings_owner_trip'")
        )
        trip_index_sql = result.scalar_one()

    assert {"users", "bookings", "auth_sessions"} <= set(tables)
    assert trip_index_sql.startswith("CREATE UNIQUE INDEX")
    assert "coalesce(" in trip_index_sql.lower()


@pytest.mark.asyncio
async def test_health_check(db_manager):
    health = await db_manager.health_check()
    assert health["status"] == "healthy"
    assert health["checks"]["connectivity"]["status"] == "pass"
    assert db_manager.get_connection_stats()["health_status"] == "healthy"


@pytest.mark.asyncio
async def test_close_resets_manager(settings):
    manager = DatabaseManager(settings)
    await manager.initialize()
    await manager.close()

    assert manager.engine is None
    assert manager.async_session is None
