from datetime import datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

import config
from db import session_commit
from enums.setting_key import SettingKey
from exceptions.user import UserNotFoundException, InvalidPointsException
from models.login_user import CustomerPageDTO, LoginUserDTO
from repositories.login_user import LoginUserRepository
from repositories.order import OrderRepository
from repositories.settings import SettingsRepository
from utils.freshness import current_time


class CustomerService:

    @staticmethod
    async def record_login(
        user_id: str,
        username: str | None,
        session: AsyncSession | Session,
        now: datetime | None = None
    ) -> LoginUserDTO:
        """Create the user on first login, otherwise refresh username and last-login time."""
        now = current_time(now)
        await LoginUserRepository.upsert_login(user_id, username, now, session)
        await session_commit(session)
        return await LoginUserRepository.get_by_id(user_id, session)

    @staticmethod
    async def get_visitor_count(session: AsyncSession | Session, now: datetime | None = None) -> int:
        """
        Number of known users.

        The first call imports customers that only appear on historical orders
        (before login tracking existed); a settings flag keeps it one-time.
        """
        backfilled = await SettingsRepository.get(SettingKey.LOGIN_USERS_BACKFILLED.value, session)
        if backfilled != "true":
            customers = await OrderRepository.get_distinct_customers(session)
            added = await LoginUserRepository.add_missing(customers, current_time(now), session)
            await SettingsRepository.set(SettingKey.LOGIN_USERS_BACKFILLED.value, "true", session)
            await session_commit(session)
            logging.info(f"Backfilled {added} login user(s) from order history")
        return await LoginUserRepository.count(session)

    @staticmethod
    async def get_users(
        session: AsyncSession | Session,
        page: int = 1,
        page_size: int | None = None,
        query: str | None = None
    ) -> CustomerPageDTO:
        page = max(page, 1)
        page_size = page_size or config.PAGE_ENTRIES
        items, total = await LoginUserRepository.get_page(page, page_size, query.strip() if query else None, session)
        return CustomerPageDTO(items=items, total=total, page=page, page_size=page_size)

    @staticmethod
    async def update_points(user_id: str, points: int, session: AsyncSession | Session) -> LoginUserDTO:
        if points < 0:
            raise InvalidPointsException(user_id, points)
        if not await LoginUserRepository.set_points(user_id, points, session):
            raise UserNotFoundException(user_id)
        await session_commit(session)
        logging.info(f"Points of user {user_id} set to {points}")
        return await LoginUserRepository.get_by_id(user_id, session)

    @staticmethod
    async def set_blocked(user_id: str, is_blocked: bool, session: AsyncSession | Session) -> LoginUserDTO:
        if not await LoginUserRepository.set_blocked(user_id, is_blocked, session):
            raise UserNotFoundException(user_id)
        await session_commit(session)
        logging.info(f"User {user_id} {'blocked' if is_blocked else 'unblocked'}")
        return await LoginUserRepository.get_by_id(user_id, session)
