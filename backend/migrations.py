"""
Database migration script for Campaign Mail

Creates the templates, sent_emails, email_opens and email_clicks tables
when they are missing, then seeds demo data into an empty database.

Run: python migrations.py
"""
import asyncio
import logging

from dotenv import load_dotenv
from sqlalchemy import inspect

from config import Settings
from database import Database
from seed import seed_if_empty

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("templates", "sent_emails", "email_opens", "email_clicks")


async def verify_tables(database: Database) -> list:
    """Return the required tables that are still missing."""
    async with database.engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    missing = [t for t in REQUIRED_TABLES if t not in existing]
    for table in REQUIRED_TABLES:
        logger.info(f"  {'✓' if table not in missing else '✗'} {table}")
    return missing


async def initialize_database(database: Database, settings: Settings) -> None:
    """Apply the schema if absent and seed an empty database."""
    missing = await verify_tables(database)
    if missing:
        logger.info(f"Tables do not exist ({', '.join(missing)}), running migrations...")
    await database.create_schema()

    if settings.SEED_ON_STARTUP:
        await seed_if_empty(
            database,
            email_count=settings.SEED_EMAIL_COUNT,
            recipient_count=settings.SEED_RECIPIENT_COUNT,
        )


async def main():
    """Run migrations"""
    from config import get_settings

    settings = get_settings()
    database = Database(settings.get_database_url(), pool_size=settings.DB_POOL_SIZE)

    logger.info("=" * 50)
    logger.info("Campaign Mail - Database Migration")
    logger.info("=" * 50)

    try:
        await database.create_schema()
        missing = await verify_tables(database)
        if missing:
            raise RuntimeError(f"Tables still missing after migration: {missing}")
    finally:
        await database.dispose()

    logger.info("Migration complete!")


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
