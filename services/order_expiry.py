from datetime import datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit
from repositories.card import CardRepository
from repositories.order import OrderRepository
from utils.freshness import current_time, reservation_cutoff
from utils.store_guard import StoreGuard


class OrderExpiryService:
    """
    Cancels pending orders whose reservation window elapsed and returns their cards to stock.

    There is no background worker: callers run this lazily right before
    reading stock or reserving cards, scoped to what they are about to touch.
    """

    @staticmethod
    async def cancel_expired_orders(
        session: AsyncSession | Session,
        product_id: str | None = None,
        user_id: str | None = None,
        order_id: str | None = None,
        now: datetime | None = None
    ) -> list[str]:
        """
        Cancel expired pending orders and release their unused cards.

        Two statements, each committed on its own:
        1. pending -> cancelled for orders created before the cutoff
        2. clear the reservation of every unused card of those orders

        Both are predicate-scoped, so running this again (or concurrently)
        is harmless: an order already cancelled is not matched again and a
        card already released has nothing left to clear. Sold cards are never
        touched.

        Args:
            session: Database session
            product_id: Only orders for this product
            user_id: Only orders of this user
            order_id: Only this order
            now: Reference time (defaults to the wall clock)

        Returns:
            IDs of the orders cancelled by this call (empty when nothing expired)

        Raises:
            SchemaDriftException: Stock columns missing even after repair
            StoreUnavailableException: Database unreachable
        """
        cutoff = reservation_cutoff(current_time(now))

        async def cancel():
            cancelled = await OrderRepository.cancel_expired(
                cutoff, session, product_id=product_id, user_id=user_id, order_id=order_id
            )
            await session_commit(session)
            return cancelled

        cancelled_ids = await StoreGuard.with_schema_fallback(cancel, session)
        if not cancelled_ids:
            return []

        async def release():
            released = 0
            for cancelled_id in cancelled_ids:
                released += await CardRepository.release_by_order_id(cancelled_id, session)
            await session_commit(session)
            return released

        released = await StoreGuard.with_schema_fallback(release, session)
        logging.info(f"⏰ Cancelled {len(cancelled_ids)} expired order(s), released {released} card(s): "
                     f"{', '.join(cancelled_ids)}")
        return cancelled_ids
