from datetime import date, datetime

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.daily_checkin import DailyCheckin


class DailyCheckinRepository:

    @staticmethod
    async def exists_on(user_id: str, checkin_date: date, session: AsyncSession | Session) -> bool:
        stmt = (select(func.count(DailyCheckin.id))
                .where(DailyCheckin.user_id == user_id,
                       DailyCheckin.checkin_date == checkin_date))
        result = await session_execute(stmt, session)
        return result.scalar_one() > 0

    @staticmethod
    async def create(user_id: str, now: datetime, session: AsyncSession | Session) -> int:
        """Insert today's check-in; a second one for the same day violates uq_daily_checkins_user_date."""
        checkin = DailyCheckin(user_id=user_id, checkin_date=now.date(), created_at=now)
        session.add(checkin)
        await session_flush(session)
        return checkin.id
