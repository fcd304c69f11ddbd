from datetime import datetime

from sqlalchemy import select, update, delete, func, case, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, aliased

from db import session_execute, session_flush
from models.card import Card, CardDTO, StockCountsDTO


class CardRepository:
    """
    Stock ledger queries.

    A card is Sold (is_used), Reserved (unused, reserved_at >= cutoff) or
    Available (unused, reserved_at NULL or older than cutoff). The three
    conditions below are the only definition of those states; counting,
    reservation and deletion all go through them.
    """

    @staticmethod
    def unused_condition(card=Card):
        return func.coalesce(card.is_used, False) == False

    @staticmethod
    def sold_condition(card=Card):
        return func.coalesce(card.is_used, False) == True

    @staticmethod
    def available_condition(cutoff: datetime, card=Card):
        return and_(
            CardRepository.unused_condition(card),
            or_(card.reserved_at == None, card.reserved_at < cutoff)
        )

    @staticmethod
    def reserved_condition(cutoff: datetime, card=Card):
        return and_(
            CardRepository.unused_condition(card),
            card.reserved_at >= cutoff
        )

    @staticmethod
    def _count_columns(cutoff: datetime):
        return (
            func.count(case((CardRepository.available_condition(cutoff), 1))).label("available"),
            func.count(case((CardRepository.reserved_condition(cutoff), 1))).label("reserved"),
            func.count(case((CardRepository.sold_condition(), 1))).label("sold"),
        )

    @staticmethod
    async def count_by_state(product_id: str, cutoff: datetime, session: AsyncSession | Session) -> StockCountsDTO:
        """Available / reserved / sold counts for one product, all against the same cutoff."""
        stmt = select(*CardRepository._count_columns(cutoff)).where(Card.product_id == product_id)
        row = (await session_execute(stmt, session)).one()
        return StockCountsDTO(available=row.available, reserved=row.reserved, sold=row.sold)

    @staticmethod
    async def count_by_product(
        cutoff: datetime,
        session: AsyncSession | Session,
        product_ids: list[str] | None = None
    ) -> dict[str, StockCountsDTO]:
        """
        Batch version of count_by_state() for catalog listings.

        Products without any card are absent from the result.
        """
        stmt = select(Card.product_id, *CardRepository._count_columns(cutoff)).group_by(Card.product_id)
        if product_ids is not None:
            if not product_ids:
                return {}
            stmt = stmt.where(Card.product_id.in_(product_ids))
        result = await session_execute(stmt, session)
        return {
            row.product_id: StockCountsDTO(available=row.available, reserved=row.reserved, sold=row.sold)
            for row in result.all()
        }

    @staticmethod
    async def count_available(product_id: str, cutoff: datetime, session: AsyncSession | Session) -> int:
        stmt = (select(func.count(Card.id))
                .where(Card.product_id == product_id,
                       CardRepository.available_condition(cutoff)))
        result = await session_execute(stmt, session)
        return result.scalar_one()

    @staticmethod
    async def reserve_for_order(
        product_id: str,
        order_id: str,
        quantity: int,
        now: datetime,
        cutoff: datetime,
        session: AsyncSession | Session
    ) -> list[int]:
        """
        Claim up to `quantity` available cards for an order in one statement.

        Candidates are picked in ascending id order. The outer WHERE repeats
        the availability check, so a card claimed by a concurrent statement
        is skipped instead of being taken twice.

        Returns:
            IDs of the claimed cards (may be fewer than requested)
        """
        candidate = aliased(Card)
        candidate_ids = (
            select(candidate.id)
            .where(candidate.product_id == product_id,
                   CardRepository.available_condition(cutoff, candidate))
            .order_by(candidate.id)
            .limit(quantity)
        )
        stmt = (
            update(Card)
            .where(Card.id.in_(candidate_ids),
                   CardRepository.available_condition(cutoff))
            .values(reserved_order_id=order_id, reserved_at=now)
            .returning(Card.id)
            .execution_options(synchronize_session=False)
        )
        result = await session_execute(stmt, session)
        return sorted(result.scalars().all())

    @staticmethod
    async def release_cards(card_ids: list[int], order_id: str, session: AsyncSession | Session) -> int:
        """Undo part of a reservation; only cards still held by `order_id` are touched."""
        if not card_ids:
            return 0
        stmt = (
            update(Card)
            .where(Card.id.in_(card_ids),
                   Card.reserved_order_id == order_id,
                   CardRepository.unused_condition())
            .values(reserved_order_id=None, reserved_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await session_execute(stmt, session)
        return result.rowcount

    @staticmethod
    async def release_by_order_id(order_id: str, session: AsyncSession | Session) -> int:
        """Clear the reservation of every unused card held by the order. Sold cards are left alone."""
        stmt = (
            update(Card)
            .where(Card.reserved_order_id == order_id,
                   CardRepository.unused_condition())
            .values(reserved_order_id=None, reserved_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await session_execute(stmt, session)
        return result.rowcount

    @staticmethod
    async def refresh_order_reservation(order_id: str, now: datetime, session: AsyncSession | Session) -> int:
        """Restart the reservation window for cards the order still holds."""
        stmt = (
            update(Card)
            .where(Card.reserved_order_id == order_id,
                   CardRepository.unused_condition())
            .values(reserved_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await session_execute(stmt, session)
        return result.rowcount

    @staticmethod
    async def count_held_by_order(order_id: str, session: AsyncSession | Session) -> int:
        stmt = (select(func.count(Card.id))
                .where(Card.reserved_order_id == order_id,
                       CardRepository.unused_condition()))
        result = await session_execute(stmt, session)
        return result.scalar_one()

    @staticmethod
    async def mark_used_for_order(
        order_id: str,
        quantity: int,
        now: datetime,
        session: AsyncSession | Session
    ) -> list[CardDTO]:
        """
        Sell up to `quantity` of the cards held by the order (terminal).

        Returns:
            The sold cards, ordered by id
        """
        candidate = aliased(Card)
        candidate_ids = (
            select(candidate.id)
            .where(candidate.reserved_order_id == order_id,
                   CardRepository.unused_condition(candidate))
            .order_by(candidate.id)
            .limit(quantity)
        )
        stmt = (
            update(Card)
            .where(Card.id.in_(candidate_ids),
                   Card.reserved_order_id == order_id,
                   CardRepository.unused_condition())
            .values(is_used=True, used_at=now)
            .returning(Card.id, Card.product_id, Card.card_key)
            .execution_options(synchronize_session=False)
        )
        result = await session_execute(stmt, session)
        cards = [
            CardDTO(id=row.id, product_id=row.product_id, card_key=row.card_key,
                    is_used=True, reserved_order_id=order_id, used_at=now)
            for row in result.all()
        ]
        return sorted(cards, key=lambda card: card.id)

    @staticmethod
    async def get_by_order_id(order_id: str, session: AsyncSession | Session) -> list[CardDTO]:
        stmt = (select(Card)
                .where(Card.reserved_order_id == order_id)
                .order_by(Card.id)
                .execution_options(populate_existing=True))
        result = await session_execute(stmt, session)
        return [CardDTO.model_validate(card, from_attributes=True) for card in result.scalars().all()]

    @staticmethod
    async def get_by_product_id(product_id: str, session: AsyncSession | Session) -> list[CardDTO]:
        stmt = (select(Card)
                .where(Card.product_id == product_id)
                .order_by(Card.id)
                .execution_options(populate_existing=True))
        result = await session_execute(stmt, session)
        return [CardDTO.model_validate(card, from_attributes=True) for card in result.scalars().all()]

    @staticmethod
    async def add_many(product_id: str, card_keys: list[str], session: AsyncSession | Session) -> int:
        session.add_all([Card(product_id=product_id, card_key=card_key, is_used=False) for card_key in card_keys])
        await session_flush(session)
        return len(card_keys)

    @staticmethod
    async def delete_available(card_id: int, cutoff: datetime, session: AsyncSession | Session) -> bool:
        """Delete a card only while it is neither sold nor freshly reserved."""
        stmt = (
            delete(Card)
            .where(Card.id == card_id,
                   CardRepository.available_condition(cutoff))
            .execution_options(synchronize_session=False)
        )
        result = await session_execute(stmt, session)
        return result.rowcount > 0
