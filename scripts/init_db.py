#!/usr/bin/env python3
"""
Create the hash catalog schema.

Creates every catalog table and seeds the shared hash id sequence. Safe to
run again on an existing catalog: existing tables and the sequence value are
left alone.

Usage:
    python scripts/init_db.py [--drop] [--database-url URL]
"""

import sys
import argparse
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from sqlalchemy import inspect, select

from hashcatalog.database import (
    HASH_ID_SEQUENCE,
    HashIdSequence,
    create_all_tables,
    create_db_engine,
    drop_all_tables,
    make_session_factory,
    session_scope,
)


def main():
    parser = argparse.ArgumentParser(description="Create the hash catalog schema")
    parser.add_argument("--drop", action="store_true", help="Drop the catalog first (deletes every hash!)")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy database URL (defaults to settings)")
    args = parser.parse_args()

    engine = create_db_engine(args.database_url)
    logger.info(f"Initializing hash catalog on {engine.url.render_as_string(hide_password=True)}")

    try:
        if args.drop:
            confirm = input("Drop every catalog table, including all hashes? (yes/no): ")
            if confirm.lower() != "yes":
                logger.info("Drop cancelled.")
                sys.exit(0)
            drop_all_tables(engine)
            logger.warning("Catalog tables dropped")

        create_all_tables(engine)
        logger.info(f"Tables: {', '.join(sorted(inspect(engine).get_table_names()))}")

        with session_scope(make_session_factory(engine)) as session:
            last_value = session.scalar(
                select(HashIdSequence.last_value).where(HashIdSequence.name == HASH_ID_SEQUENCE)
            )
        logger.info(f"Hash id sequence at {last_value}")

    except Exception as e:
        logger.error(f"Error during initialization: {e}")
        raise
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
