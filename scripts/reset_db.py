import argparse
import asyncio
import sys
from pathlib import Path


async def recreate_db(db_path: Path, *, demo: bool):
    # 删除旧的 SQLite 文件后重新建表
    if db_path.exists():
        db_path.unlink()

    backend_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(backend_root))

    from app.database import build_engine, build_sessionmaker, create_tables  # type: ignore
    from app.storage.ledger import LedgerStorage  # type: ignore

    engine = build_engine(str(db_path))
    try:
        await create_tables(engine)
        storage = LedgerStorage(build_sessionmaker(engine))
        await storage.seed_catalog()
        if demo:
            await storage.seed_demo_data()
    finally:
        await engine.dispose()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Recreate the wallet SQLite database.")
    parser.add_argument("path", nargs="?", default="wallet.db")
    parser.add_argument("--demo", action="store_true", help="also create the demo user and its history")
    args = parser.parse_args()
    asyncio.run(recreate_db(Path(args.path).resolve(), demo=args.demo))
    print(f'Database recreated at {args.path}.')
