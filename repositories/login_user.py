from datetime import datetime

from sqlalchemy import select, update, func, case, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from enums.order_status import OrderStatus
from models.login_user import LoginUser, LoginUserDTO, CustomerDTO
from models.order import Order

# Orders that count towards a customer's purchase history
COUNTED_ORDER_STATUSES = [OrderStatus.PAID, OrderStatus.DELIVERED, OrderStatus.REFUNDED]


class LoginUserRepository:

    @staticmethod
    async def get_by_id(user_id: str, session: AsyncSession | Session) -> LoginUserDTO | None:
        stmt = select(LoginUser).where(LoginUser.user_id == user_id).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        user = result.scalar()
        if user is None:
            return None
        return LoginUserDTO.model_validate(user, from_attributes=True)

    @staticmethod
    async def upsert_login(user_id: str, username: str | None, now: datetime, session: AsyncSession | Session) -> None:
        stmt = (update(LoginUser)
                .where(LoginUser.user_id == user_id)
                .values(username=username, last_login_at=now))
        result = await session_execute(stmt, session)
        if result.rowcount == 0:
            session.add(LoginUser(user_id=user_id, username=username, points=0, is_blocked=False,
                                  created_at=now, last_login_at=now))
            await session_flush(session)

    @staticmethod
    async def add_missing(users: list[tuple[str, str | None]], now: datetime, session: AsyncSession | Session) -> int:
        """Insert users that do not exist yet; existing rows are left untouched."""
        if not users:
            return 0
        existing_stmt = select(LoginUser.user_id).where(LoginUser.user_id.in_([user_id for user_id, _ in users]))
        existing = set((await session_execute(existing_stmt, session)).scalars().all())
        missing = [(user_id, username) for user_id, username in users if user_id not in existing]
        session.add_all([
            LoginUser(user_id=user_id, username=username, points=0, is_blocked=False,
                      created_at=now, last_login_at=now)
            for user_id, username in missing
        ])
        await session_flush(session)
        return len(missing)

    @staticmethod
    async def count(session: AsyncSession | Session) -> int:
        stmt = select(func.count(LoginUser.user_id))
        result = await session_execute(stmt, session)
        return result.scalar_one()

    @staticmethod
    async def get_page(
        page: int,
        page_size: int,
        query: str | None,
        session: AsyncSession | Session
    ) -> tuple[list[CustomerDTO], int]:
        """
        Customers ordered by last login, with their paid/delivered/refunded order count.

        Returns:
            Tuple of (customers on this page, total matching customers)
        """
        conditions = []
        if query:
            like = f"%{query}%"
            conditions.append(or_(LoginUser.username.like(like), LoginUser.user_id.like(like)))

        order_count = func.count(case((Order.status.in_(COUNTED_ORDER_STATUSES), 1))).label("order_count")
        stmt = (
            select(LoginUser, order_count)
            .outerjoin(Order, Order.user_id == LoginUser.user_id)
            .where(*conditions)
            .group_by(LoginUser.user_id)
            .order_by(LoginUser.last_login_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        rows = (await session_execute(stmt, session)).all()
        items = [
            CustomerDTO(**LoginUserDTO.model_validate(user, from_attributes=True).model_dump(), order_count=count)
            for user, count in rows
        ]

        total_stmt = select(func.count(LoginUser.user_id)).where(*conditions)
        total = (await session_execute(total_stmt, session)).scalar_one()
        return items, total

    @staticmethod
    async def set_points(user_id: str, points: int, session: AsyncSession | Session) -> bool:
        stmt = update(LoginUser).where(LoginUser.user_id == user_id).values(points=points)
        result = await session_execute(stmt, session)
        return result.rowcount > 0

    @staticmethod
    async def add_points(user_id: str, delta: int, session: AsyncSession | Session) -> int | None:
        """
        Atomically add `delta` points.

        Returns:
            New balance, or None if the user does not exist
        """
        stmt = (update(LoginUser)
                .where(LoginUser.user_id == user_id)
                .values(points=LoginUser.points + delta)
                .returning(LoginUser.points)
                .execution_options(synchronize_session=False))
        result = await session_execute(stmt, session)
        return result.scalar()

    @staticmethod
    async def set_blocked(user_id: str, is_blocked: bool, session: AsyncSession | Session) -> bool:
        stmt = update(LoginUser).where(LoginUser.user_id == user_id).values(is_blocked=is_blocked)
        result = await session_execute(stmt, session)
        return result.rowcount > 0
