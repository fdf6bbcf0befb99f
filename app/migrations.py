from datetime import datetime, timezone
from sqlalchemy import text


async def ensure_migrations_table(conn):
    await conn.execute(text(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            name TEXT PRIMARY KEY,
            applied_at TEXT DEFAULT (datetime('now'))
        )
        """
    ))


async def has_migration(conn, name: str) -> bool:
    result = await conn.execute(text("SELECT 1 FROM schema_migrations WHERE name = :name"), {"name": name})
    return result.first() is not None


async def mark_migration(conn, name: str):
    await conn.execute(text("INSERT INTO schema_migrations(name, applied_at) VALUES (:name, :applied_at)"), {
        "name": name,
        "applied_at": datetime.now(timezone.utc).isoformat()
    })


async def column_exists(conn, table: str, column: str) -> bool:
    result = await conn.execute(text(f"PRAGMA table_info({table})"))
    for row in result.mappings():
        if row.get("name") == column:
            return True
    return False


async def add_kind_to_services(conn):
    # 旧版本按名称匹配服务类型，这里补齐 kind 字段并按旧规则回填
    if not await column_exists(conn, "services", "kind"):
        await conn.execute(text("ALTER TABLE services ADD COLUMN kind VARCHAR DEFAULT 'generic' NOT NULL"))
    await conn.execute(text("UPDATE services SET kind = 'ip_check' WHERE kind = 'generic' AND instr(name, 'IP') > 0"))
    await conn.execute(text(
        "UPDATE services SET kind = 'phone_check' WHERE kind = 'generic' AND icon = 'phone'"
    ))


MIGRATIONS = [
    ("202504_add_service_kind", add_kind_to_services),
]


async def run_migrations(conn):
    await ensure_migrations_table(conn)
    for name, handler in MIGRATIONS:
        if await has_migration(conn, name):
            continue
        await handler(conn)
        await mark_migration(conn, name)
