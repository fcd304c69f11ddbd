from datetime import datetime

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.setting import Setting


class SettingsRepository:
    """
    Repository for the shop's key-value settings.

    Values are stored as strings; typed access lives in ShopSettingsService.
    """

    @staticmethod
    async def get(key: str, session: AsyncSession | Session) -> str | None:
        """
        Get a setting value by key.

        Args:
            key: Setting key (e.g., "shop_name")
            session: Database session (async or sync)

        Returns:
            Setting value as string, or None if not found
        """
        stmt = select(Setting.value).where(Setting.key == key)
        result = await session_execute(stmt, session)
        return result.scalar()

    @staticmethod
    async def set(key: str, value: str, session: AsyncSession | Session) -> None:
        """
        Set a setting value (insert or update).

        Args:
            key: Setting key
            value: Setting value (stored as string)
            session: Database session (async or sync)
        """
        exists_stmt = select(Setting.key).where(Setting.key == key)
        existing = (await session_execute(exists_stmt, session)).scalar()

        if existing is not None:
            stmt = update(Setting).where(Setting.key == key).values(value=value, updated_at=datetime.now())
            await session_execute(stmt, session)
        else:
            session.add(Setting(key=key, value=value, updated_at=datetime.now()))
            await session_flush(session)

    @staticmethod
    async def delete(key: str, session: AsyncSession | Session) -> None:
        stmt = delete(Setting).where(Setting.key == key)
        await session_execute(stmt, session)

    @staticmethod
    async def get_many(keys: list[str], session: AsyncSession | Session) -> dict[str, str | None]:
        """
        Get several settings in one query.

        Returns:
            Dictionary with an entry for every requested key (None when unset)
        """
        stmt = select(Setting.key, Setting.value).where(Setting.key.in_(keys))
        result = await session_execute(stmt, session)
        found = {row.key: row.value for row in result.all()}
        return {key: found.get(key) for key in keys}

    @staticmethod
    async def get_all(session: AsyncSession | Session) -> dict[str, str]:
        stmt = select(Setting)
        result = await session_execute(stmt, session)
        settings = result.scalars().all()
        return {setting.key: setting.value for setting in settings}
