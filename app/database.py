from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from app.migrations import run_migrations

Base = declarative_base()


def database_url(path: str) -> str:
    return f"sqlite+aiosqlite:///{path}"


def build_engine(path: str, *, echo: bool = False) -> AsyncEngine:
    if path == ":memory:":
        # 内存库只存在于单个连接上，所有会话必须共用它
        return create_async_engine(
            database_url(path),
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(database_url(path), echo=echo)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine):
    # 导入模型以注册所有表
    import models.user  # noqa: F401
    import models.service  # noqa: F401
    import models.transaction  # noqa: F401
    import models.checks  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await run_migrations(conn)
