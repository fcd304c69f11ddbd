from datetime import datetime
import logging

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from enums.order_status import OrderStatus
from models.order import Order, OrderDTO

logger = logging.getLogger(__name__)


class OrderRepository:
    @staticmethod
    async def create(order_dto: OrderDTO, session: AsyncSession | Session) -> str:
        order = Order(**order_dto.model_dump(exclude_none=True))
        session.add(order)
        await session_flush(session)
        return order.order_id

    @staticmethod
    async def get_by_id(order_id: str, session: AsyncSession | Session) -> OrderDTO | None:
        stmt = select(Order).where(Order.order_id == order_id).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        order = result.scalar()
        if order is None:
            return None
        return OrderDTO.model_validate(order, from_attributes=True)

    @staticmethod
    async def cancel_expired(
        cutoff: datetime,
        session: AsyncSession | Session,
        product_id: str | None = None,
        user_id: str | None = None,
        order_id: str | None = None
    ) -> list[str]:
        """
        Cancel pending orders created before `cutoff` in one statement.

        Filters narrow the scope; None means "any".

        Returns:
            IDs of the orders this statement cancelled
        """
        stmt = (
            update(Order)
            .where(Order.status == OrderStatus.PENDING,
                   Order.created_at < cutoff)
            .values(status=OrderStatus.CANCELLED)
            .returning(Order.order_id)
            .execution_options(synchronize_session=False)
        )
        if product_id is not None:
            stmt = stmt.where(Order.product_id == product_id)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if order_id is not None:
            stmt = stmt.where(Order.order_id == order_id)

        result = await session_execute(stmt, session)
        return sorted(cancelled_id for cancelled_id in result.scalars().all() if cancelled_id)

    @staticmethod
    async def transition_status(
        order_id: str,
        from_statuses: list[OrderStatus],
        to_status: OrderStatus,
        session: AsyncSession | Session,
        **values
    ) -> bool:
        """
        Conditional status change: only applies while the order is in one of `from_statuses`.

        Returns:
            True if the order was updated
        """
        stmt = (
            update(Order)
            .where(Order.order_id == order_id,
                   Order.status.in_(from_statuses))
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        result = await session_execute(stmt, session)
        return result.rowcount > 0

    @staticmethod
    async def get_recent(limit: int, session: AsyncSession | Session) -> list[OrderDTO]:
        stmt = select(Order).order_by(Order.created_at.desc()).limit(limit)
        result = await session_execute(stmt, session)
        return [OrderDTO.model_validate(order, from_attributes=True) for order in result.scalars().all()]

    @staticmethod
    async def get_pending_by_user_id(user_id: str, session: AsyncSession | Session) -> list[OrderDTO]:
        stmt = (select(Order)
                .where(Order.user_id == user_id,
                       Order.status == OrderStatus.PENDING)
                .order_by(Order.created_at.desc())
                .execution_options(populate_existing=True))
        result = await session_execute(stmt, session)
        return [OrderDTO.model_validate(order, from_attributes=True) for order in result.scalars().all()]

    @staticmethod
    async def get_delivered_stats_since(since: datetime | None, session: AsyncSession | Session) -> tuple[int, float]:
        """
        Count and revenue of delivered orders paid at or after `since` (all time when None).
        """
        stmt = (select(func.count(Order.order_id), func.coalesce(func.sum(Order.amount), 0.0))
                .where(Order.status == OrderStatus.DELIVERED))
        if since is not None:
            stmt = stmt.where(Order.paid_at != None, Order.paid_at >= since)
        row = (await session_execute(stmt, session)).one()
        return row[0], float(row[1])

    @staticmethod
    async def get_distinct_customers(session: AsyncSession | Session) -> list[tuple[str, str | None]]:
        """(user_id, username) pairs seen on orders, used to backfill login users."""
        stmt = (select(Order.user_id, func.max(Order.username))
                .where(Order.user_id != None, Order.user_id != '')
                .group_by(Order.user_id))
        result = await session_execute(stmt, session)
        return [(row[0], row[1]) for row in result.all()]
