#!/usr/bin/env python3
"""
Initialize the Bookshelf database tables.

Creates the ``books`` and ``documents`` tables. In development the API does
this on startup; run this script as part of deployment elsewhere.

Usage:
    python scripts/init_database.py            # create tables
    python scripts/init_database.py status     # show tables and row counts
    python scripts/init_database.py drop       # drop all tables (asks first)

    # With environment file
    ENV_FILE=.env.production python scripts/init_database.py

Environment Variables:
    DATABASE_URL - Full async connection string
    DATABASE_HOST, DATABASE_PORT, DATABASE_NAME, DATABASE_USER, DATABASE_PASSWORD - Used when DATABASE_URL is unset
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

# Configure logging for CLI output
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
from dotenv import load_dotenv

env_file = os.environ.get("ENV_FILE", ".env")
env_path = project_root / env_file
if env_path.exists():
    load_dotenv(env_path)
    logger.info(f"Loaded environment from: {env_path}")
else:
    logger.warning(f"No environment file found at: {env_path}")
    logger.info("Using system environment variables")


async def init_tables():
    """Create all database tables."""
    from bookshelf.core.db_client import db

    logger.info("=== Database Initialization ===")

    logger.info("Testing database connection...")
    if not await db.test_connection():
        logger.error("Could not connect to database")
        logger.error("Please check DATABASE_URL or the DATABASE_* settings")
        sys.exit(1)

    logger.info("Creating tables...")
    try:
        await db.create_tables()
        logger.info("Tables created successfully!")
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        sys.exit(1)

    await db.close()
    logger.info("=== Initialization Complete ===")


async def drop_tables():
    """Drop all tables (use with caution!)."""
    from bookshelf.core.db_client import db

    logger.warning("=== WARNING: Dropping All Tables ===")

    confirm = input("Are you sure you want to drop all tables? (type 'yes' to confirm): ")
    if confirm.lower() != "yes":
        logger.info("Aborted.")
        return

    await db.drop_tables()
    logger.info("All tables dropped.")
    await db.close()


async def show_status():
    """Show row counts per table and documents per status."""
    from sqlalchemy import func, select

    from bookshelf.core.db_client import db
    from bookshelf.models.orm import BookModel, DocumentModel

    logger.info("=== Database Status ===")

    if not await db.test_connection():
        logger.error("Could not connect to database")
        sys.exit(1)

    async with db.session() as session:
        books = await session.scalar(select(func.count()).select_from(BookModel))
        logger.info(f"  - books: {books} rows")

        result = await session.execute(
            select(DocumentModel.status, func.count()).group_by(DocumentModel.status)
        )
        for status, count in result.all():
            logger.info(f"  - documents ({status}): {count} rows")

    await db.close()


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Initialize the database for the Bookshelf API"
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="init",
        choices=["init", "drop", "status"],
        help="Command to run (default: init)"
    )

    args = parser.parse_args()

    if args.command == "init":
        asyncio.run(init_tables())
    elif args.command == "drop":
        asyncio.run(drop_tables())
    elif args.command == "status":
        asyncio.run(show_status())


if __name__ == "__main__":
    main()
