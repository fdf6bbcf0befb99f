from datetime import datetime, timedelta

import pytest
from sqlalchemy import text

from app.database import build_engine
from app.migrations import column_exists, has_migration, run_migrations


@pytest.mark.asyncio
async def test_service_kind_backfilled_on_old_database(tmp_path):
    engine = build_engine(str(tmp_path / "old.db"))
    try:
        async with engine.begin() as conn:
            await conn.execute(text(
                "CREATE TABLE services (id INTEGER PRIMARY KEY, name VARCHAR NOT NULL, "
                "description TEXT NOT NULL, price NUMERIC(10, 2) NOT NULL, icon VARCHAR NOT NULL, "
                "available BOOLEAN NOT NULL)"
            ))
            await conn.execute(text(
                "INSERT INTO services (name, description, price, icon, available) VALUES "
                "('Проверка IP адреса', 'ip', 0.2, 'public', 1), "
                "('Проверка номера телефона', 'phone', 0.25, 'phone', 1), "
                "('Консультация', 'other', 5, 'chat', 1)"
            ))

        async with engine.begin() as conn:
            await run_migrations(conn)

        async with engine.begin() as conn:
            assert await column_exists(conn, "services", "kind")
            assert await has_migration(conn, "202504_add_service_kind")
            rows = (await conn.execute(text("SELECT name, kind FROM services ORDER BY id"))).all()
        assert [kind for _, kind in rows] == ["ip_check", "phone_check", "generic"]
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_migrations_run_once(tmp_path):
    engine = build_engine(str(tmp_path / "fresh.db"))
    try:
        async with engine.begin() as conn:
            await conn.execute(text(
                "CREATE TABLE services (id INTEGER PRIMARY KEY, name VARCHAR, description TEXT, "
                "price NUMERIC, icon VARCHAR, available BOOLEAN, kind VARCHAR NOT NULL DEFAULT 'generic')"
            ))
            await run_migrations(conn)
            await run_migrations(conn)
            count = (await conn.execute(text("SELECT COUNT(*) FROM schema_migrations"))).scalar_one()
        assert count == 1
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_migration_timestamp_is_utc(tmp_path):
    engine = build_engine(str(tmp_path / "stamp.db"))
    try:
        async with engine.begin() as conn:
            await conn.execute(text("CREATE TABLE services (id INTEGER PRIMARY KEY, name VARCHAR, icon VARCHAR)"))
            await run_migrations(conn)
            applied_at = (await conn.execute(text("SELECT applied_at FROM schema_migrations"))).scalar_one()
        assert datetime.fromisoformat(applied_at).utcoffset() == timedelta(0)
    finally:
        await engine.dispose()
