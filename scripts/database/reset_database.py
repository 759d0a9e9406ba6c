#!/usr/bin/env python3
"""
Database Reset Script

This script drops the trails collection and recreates it empty. Use this
when you want to start fresh, for example before reloading trail documents.

Usage:
    python scripts/database/reset_database.py [--collection NAME]

This will:
1. Drop the trails collection table if it exists
2. Create the collection table (id, partition_key, doc JSONB)
3. Log the entire process for verification
"""

import argparse
import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), "..", ".."))

from sqlalchemy import text

from api.database import get_db_engine
from api.store import DocumentStore
from config.settings import config
from utils.logging import setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Drop and recreate the trails collection")
    parser.add_argument(
        "--collection",
        default=config.TRAILS_COLLECTION,
        help=f"Collection (table) name (default: {config.TRAILS_COLLECTION})",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main function to reset the trails collection."""
    args = parse_args(argv)
    logger = setup_logging(
        log_level="INFO",
        log_file="logs/database_reset.log",
        logger_name="database_reset",
    )

    try:
        logger.info(f"Starting reset of collection '{args.collection}'...")

        engine = get_db_engine()
        store = DocumentStore(engine, args.collection, logger)

        logger.info("Step 1: Dropping existing collection...")
        store.drop_collection()

        logger.info("Step 2: Creating collection...")
        store.create_collection()

        # Verify the table was created
        with engine.connect() as conn:
            exists = conn.execute(
                text(
                    "SELECT EXISTS (SELECT 1 FROM pg_tables "
                    "WHERE schemaname = 'public' AND tablename = :name)"
                ),
                {"name": args.collection},
            ).scalar()

        if exists:
            logger.info(f"✅ Collection '{args.collection}' reset successfully!")
        else:
            logger.warning(f"⚠️  Collection '{args.collection}' was not found after reset")

    except Exception as e:
        logger.error(f"❌ Database reset failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
