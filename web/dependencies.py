from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from db import get_db_session


async def get_session() -> AsyncIterator[AsyncSession]:
    """One session per request; overridden in tests."""
    async with get_db_session() as session:
        yield session
