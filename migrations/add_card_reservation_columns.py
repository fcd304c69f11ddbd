#!/usr/bin/env python3
"""
Migration: Add reservation columns to cards and quantity to orders

This migration:
1. Creates tables that are missing entirely (login_users, daily_checkins, settings, ...)
2. Adds cards.reserved_order_id, cards.reserved_at, cards.used_at
3. Adds orders.quantity and the other order columns introduced with reservations
4. Records the schema version so startup does not repeat the upgrade

The same upgrade also runs automatically at startup and whenever a query
hits a missing column; this script is for upgrading a database offline.
Safe to run more than once.

Usage:
    python migrations/add_card_reservation_columns.py
"""

import sys
import os
import asyncio
import logging

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sqlalchemy import text
from db import get_db_session
from repositories.schema import SchemaRepository, EXPECTED_COLUMNS

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def run_migration():
    """Execute the card reservation migration."""
    logger.info("=" * 60)
    logger.info("CARD RESERVATION MIGRATION")
    logger.info("=" * 60)
    logger.info("")

    async with get_db_session() as session:
        try:
            # Step 1: Create missing tables and columns
            logger.info("Step 1: Adding missing tables and columns...")
            added = await SchemaRepository.upgrade(session)
            if added:
                for column in added:
                    logger.info(f"✓ Added {column}")
            else:
                logger.info("✓ Nothing to add, schema already up to date")
            logger.info("")

            # Step 2: Verification
            logger.info("Step 2: Verifying schema changes...")
            for table_name, columns in EXPECTED_COLUMNS.items():
                result = await session.execute(text(f"PRAGMA table_info({table_name})"))
                existing = {col[1] for col in result.fetchall()}
                missing = [name for name, _ in columns if name not in existing]
                if missing:
                    raise Exception(f"Schema verification failed: {table_name} is missing {', '.join(missing)}")
            logger.info("✓ Schema verification passed")
            logger.info("")

            logger.info("=" * 60)
            logger.info("MIGRATION COMPLETED SUCCESSFULLY")
            logger.info("=" * 60)
            logger.info("")
            logger.info("Note: Existing cards start unreserved (reserved_at NULL) and count as available.")
            logger.info("")

        except Exception as e:
            logger.error(f"❌ Migration failed: {e}")
            raise


if __name__ == "__main__":
    asyncio.run(run_migration())
