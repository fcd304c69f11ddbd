from datetime import datetime
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit, session_rollback
from exceptions.checkin import CheckinDisabledException, AlreadyCheckedInException
from exceptions.user import UserNotFoundException, UserBlockedException
from models.daily_checkin import CheckinResultDTO, CheckinStatusDTO
from repositories.daily_checkin import DailyCheckinRepository
from repositories.login_user import LoginUserRepository
from services.settings import ShopSettingsService
from utils.freshness import current_time


class CheckinService:

    @staticmethod
    async def check_in(user_id: str, session: AsyncSession | Session, now: datetime | None = None) -> CheckinResultDTO:
        """
        Daily check-in: credit the configured reward once per calendar day.

        The check-in row and the points credit are committed together; the
        unique (user_id, checkin_date) constraint rejects a concurrent second
        check-in for the same day.

        Raises:
            CheckinDisabledException: Check-in switched off in shop settings
            UserNotFoundException: User never logged in
            UserBlockedException: User is blocked
            AlreadyCheckedInException: User already checked in today
        """
        now = current_time(now)
        settings = await ShopSettingsService.get_shop_settings(session)
        if not settings.checkin_enabled:
            raise CheckinDisabledException()

        user = await LoginUserRepository.get_by_id(user_id, session)
        if user is None:
            raise UserNotFoundException(user_id)
        if user.is_blocked:
            raise UserBlockedException(user_id)

        if await DailyCheckinRepository.exists_on(user_id, now.date(), session):
            raise AlreadyCheckedInException(user_id)

        try:
            await DailyCheckinRepository.create(user_id, now, session)
            points = await LoginUserRepository.add_points(user_id, settings.checkin_reward, session)
            await session_commit(session)
        except IntegrityError:
            await session_rollback(session)
            raise AlreadyCheckedInException(user_id)

        logging.info(f"🎁 User {user_id} checked in (+{settings.checkin_reward} points, balance {points})")
        return CheckinResultDTO(user_id=user_id, reward=settings.checkin_reward, points=points, checked_in_at=now)

    @staticmethod
    async def get_status(user_id: str, session: AsyncSession | Session, now: datetime | None = None) -> CheckinStatusDTO:
        now = current_time(now)
        user = await LoginUserRepository.get_by_id(user_id, session)
        if user is None:
            raise UserNotFoundException(user_id)
        checked_in = await DailyCheckinRepository.exists_on(user_id, now.date(), session)
        return CheckinStatusDTO(user_id=user_id, checked_in_today=checked_in, checkin_date=now.date(),
                                points=user.points or 0)
