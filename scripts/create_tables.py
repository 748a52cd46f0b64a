"""One-off helper to create database tables from the SQLAlchemy models.

Usage (locally):

    # POSTGRES_* come from your .env or the environment
    python scripts/create_tables.py            # create missing tables
    python scripts/create_tables.py --reset    # drop the core tables first

Notes:
- Uses the same asyncpg connection settings as the application.
- Collaborator tables (hotels, rooms, service_types, local_recommendations,
  chat_sessions) are created when missing but never dropped.
"""

import asyncio
import sys
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Add project root to Python path so we can import pkg and app modules
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.config import settings  # noqa: E402
from app.core.logger import get_logger  # noqa: E402
from app.core.schema import CORE_TABLES, metadata  # noqa: E402
from pkg.db_util.postgres_conn import PostgresConnection, close_all_engines  # noqa: E402
from pkg.db_util.types import PostgresConfig  # noqa: E402

logger = get_logger("create_tables")


async def main(reset: bool = False):
    if not settings.POSTGRES_HOST:
        print("❌ ERROR: Please set POSTGRES_HOST, POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB and re-run.")
        sys.exit(2)

    postgres_conn = PostgresConnection(
        PostgresConfig(
            host=settings.POSTGRES_HOST,
            port=settings.POSTGRES_PORT,
            username=settings.POSTGRES_USER,
            password=settings.POSTGRES_PASSWORD,
            database=settings.POSTGRES_DB,
        ),
        logger,
    )
    print(f"🔗 Using database at {settings.POSTGRES_HOST}:{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}")

    try:
        engine = await postgres_conn.get_engine()

        if reset:
            print("\n🗑️  Dropping core tables (if any)...")
            async with engine.begin() as conn:
                for table in reversed(CORE_TABLES):
                    await conn.execute(text(f"DROP TABLE IF EXISTS {table} CASCADE"))
            print("✅ Core tables dropped")

        print("\n🔨 Creating tables from SQLAlchemy metadata...")
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        print("✅ Tables created successfully!")

        print("\n📊 Verifying tables exist...")
        async with engine.connect() as conn:
            result = await conn.execute(text("""
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = 'public'
                ORDER BY table_name
            """))
            tables = [row[0] for row in result]
            print(f"✅ Tables in database: {', '.join(tables)}")

        print("\n🎉 SUCCESS! Database tables are ready.")

    except SQLAlchemyError as e:
        print(f"\n❌ SQLAlchemy error: {e}")
        raise
    finally:
        await close_all_engines()


if __name__ == '__main__':
    asyncio.run(main(reset="--reset" in sys.argv[1:]))
