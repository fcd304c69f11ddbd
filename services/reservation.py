from datetime import datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit
from exceptions.order import InvalidQuantityException, OutOfStockException
from models.card import ReservationDTO
from repositories.card import CardRepository
from services.order_expiry import OrderExpiryService
from utils.freshness import current_time, reservation_cutoff
from utils.store_guard import StoreGuard


class ReservationService:

    @staticmethod
    async def reserve_units(
        product_id: str,
        order_id: str,
        quantity: int,
        session: AsyncSession | Session,
        now: datetime | None = None
    ) -> ReservationDTO:
        """
        Hold `quantity` available cards of a product for a pending order.

        Expired orders of the product are reconciled first so their cards are
        back in the pool. Cards are claimed lowest id first by one conditional
        UPDATE; a card taken by a concurrent request in the meantime no longer
        matches the availability predicate and is skipped.

        The claim is committed before a shortfall is detected, so the
        compensating release is retried on its own and never re-runs the claim.

        Args:
            product_id: Product to reserve from
            order_id: Pending order that will hold the cards
            quantity: Number of cards, at least 1
            session: Database session
            now: Reservation timestamp (defaults to the wall clock)

        Returns:
            ReservationDTO with the claimed card ids in ascending order

        Raises:
            InvalidQuantityException: quantity < 1
            OutOfStockException: Fewer than `quantity` cards available; no card is left reserved
        """
        if quantity < 1:
            raise InvalidQuantityException(quantity)

        now = current_time(now)
        card_ids = await ReservationService._claim_units(product_id, order_id, quantity, session, now)

        if len(card_ids) < quantity:
            # Lost a race for some of the cards: give back the partial claim
            await ReservationService._release_claim(card_ids, order_id, session)
            logging.warning(f"Reservation race for product {product_id}, order {order_id}: "
                            f"claimed {len(card_ids)} of {quantity}, released")
            raise OutOfStockException(product_id, quantity, len(card_ids))

        logging.info(f"🔒 Reserved {quantity} card(s) of product {product_id} for order {order_id}")
        return ReservationDTO(order_id=order_id, product_id=product_id, card_ids=card_ids, reserved_at=now)

    @staticmethod
    @StoreGuard.with_retry()
    async def _claim_units(
        product_id: str,
        order_id: str,
        quantity: int,
        session: AsyncSession | Session,
        now: datetime
    ) -> list[int]:
        await OrderExpiryService.cancel_expired_orders(session, product_id=product_id, now=now)
        cutoff = reservation_cutoff(now)

        available = await StoreGuard.with_schema_fallback(
            lambda: CardRepository.count_available(product_id, cutoff, session),
            session
        )
        if available < quantity:
            logging.info(f"Product {product_id} sold out for order {order_id}: "
                         f"requested {quantity}, available {available}")
            raise OutOfStockException(product_id, quantity, available)

        async def claim():
            claimed = await CardRepository.reserve_for_order(product_id, order_id, quantity, now, cutoff, session)
            await session_commit(session)
            return claimed

        return await StoreGuard.with_schema_fallback(claim, session)

    @staticmethod
    @StoreGuard.with_retry()
    async def _release_claim(card_ids: list[int], order_id: str, session: AsyncSession | Session) -> int:
        released = await CardRepository.release_cards(card_ids, order_id, session)
        await session_commit(session)
        return released

    @staticmethod
    async def release_reservation(order_id: str, session: AsyncSession | Session) -> int:
        """
        Return the order's unused cards to stock.

        Returns:
            Number of cards released
        """
        released = await StoreGuard.with_schema_fallback(
            lambda: CardRepository.release_by_order_id(order_id, session),
            session
        )
        await session_commit(session)
        if released:
            logging.info(f"🔓 Released {released} card(s) of order {order_id}")
        return released
