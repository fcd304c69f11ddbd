import logging

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit, session_run_sync
from enums.setting_key import SettingKey
from models.base import Base

logger = logging.getLogger(__name__)

# Bump when EXPECTED_COLUMNS changes so startup re-runs the upgrade
SCHEMA_VERSION = 3

# Columns added after the first release. Tables created from scratch get them
# from the models; older databases get them through ALTER TABLE.
EXPECTED_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "products": [
        ("compare_at_price", "FLOAT"),
        ("is_hot", "BOOLEAN NOT NULL DEFAULT 0"),
        ("purchase_limit", "INTEGER"),
        ("purchase_warning", "TEXT"),
    ],
    "cards": [
        ("reserved_order_id", "VARCHAR(64)"),
        ("reserved_at", "DATETIME"),
        ("used_at", "DATETIME"),
    ],
    "orders": [
        ("quantity", "INTEGER NOT NULL DEFAULT 1"),
        ("user_id", "VARCHAR(64)"),
        ("username", "VARCHAR"),
        ("trade_no", "VARCHAR"),
        ("card_key", "TEXT"),
        ("paid_at", "DATETIME"),
        ("delivered_at", "DATETIME"),
    ],
    "login_users": [
        ("points", "INTEGER NOT NULL DEFAULT 0"),
        ("is_blocked", "BOOLEAN NOT NULL DEFAULT 0"),
    ],
    "daily_checkins": [
        ("checkin_date", "DATE"),
    ],
}


def _create_missing_schema(sync_session: Session) -> list[str]:
    connection = sync_session.connection()
    Base.metadata.create_all(bind=connection, checkfirst=True)

    inspector = inspect(connection)
    added = []
    for table_name, columns in EXPECTED_COLUMNS.items():
        existing = {column["name"] for column in inspector.get_columns(table_name)}
        for column_name, ddl in columns:
            if column_name in existing:
                continue
            connection.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {ddl}"))
            added.append(f"{table_name}.{column_name}")
    return added


class SchemaRepository:
    """
    Brings an existing database up to the current model definitions.

    ensure_stock_schema() is idempotent and is used both by the startup
    upgrade and by StoreGuard when a statement hits a missing table or column.
    """

    @staticmethod
    async def ensure_stock_schema(session: AsyncSession | Session) -> list[str]:
        """
        Create missing tables and add missing columns.

        Returns:
            List of "table.column" entries that were added
        """
        added = await session_run_sync(session, _create_missing_schema)
        await session_commit(session)
        if added:
            logger.info(f"Added missing columns: {', '.join(added)}")
        return added

    @staticmethod
    async def get_version(session: AsyncSession | Session) -> int:
        from repositories.settings import SettingsRepository

        value = await SettingsRepository.get(SettingKey.SCHEMA_VERSION.value, session)
        try:
            return int(value) if value is not None else 0
        except ValueError:
            return 0

    @staticmethod
    async def upgrade(session: AsyncSession | Session) -> list[str]:
        """
        Run ensure_stock_schema() once per SCHEMA_VERSION.

        Intended to be called at startup, before serving requests.
        """
        from repositories.settings import SettingsRepository

        # The settings table itself may be missing on very old databases
        await session_run_sync(session, lambda s: Base.metadata.create_all(bind=s.connection(), checkfirst=True))
        await session_commit(session)

        current = await SchemaRepository.get_version(session)
        if current >= SCHEMA_VERSION:
            return []

        logger.info(f"Upgrading schema from version {current} to {SCHEMA_VERSION}")
        added = await SchemaRepository.ensure_stock_schema(session)
        await SettingsRepository.set(SettingKey.SCHEMA_VERSION.value, str(SCHEMA_VERSION), session)
        await session_commit(session)
        return added
