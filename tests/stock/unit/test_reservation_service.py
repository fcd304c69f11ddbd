"""
Unit tests for ReservationService and StockService

Covers reservation success and refusal, no partial reservations, stale
reservation reuse and the lazy reconciliation done before stock reads.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from enums.order_status import OrderStatus
from exceptions.order import OutOfStockException, InvalidQuantityException
from models.card import Card
from models.order import Order
from repositories.card import CardRepository
from services.reservation import ReservationService
from services.stock import StockService


class TestReserveUnits:

    @pytest.mark.asyncio
    async def test_reserves_requested_quantity(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=3)
        create_order(session, "o1", quantity=2)

        reservation = await ReservationService.reserve_units("p1", "o1", 2, session, now=now)

        assert reservation.order_id == "o1"
        assert len(reservation.card_ids) == 2
        assert reservation.card_ids == sorted(reservation.card_ids)
        assert reservation.reserved_at == now

        counts = await StockService.compute_counts("p1", session, now)
        assert (counts.available, counts.reserved, counts.sold) == (1, 2, 0)

    @pytest.mark.asyncio
    async def test_out_of_stock_leaves_ledger_untouched(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=1)
        create_order(session, "o1", quantity=2)

        with pytest.raises(OutOfStockException) as exc_info:
            await ReservationService.reserve_units("p1", "o1", 2, session, now=now)

        assert exc_info.value.requested == 2
        assert exc_info.value.available == 1
        card = session.query(Card).one()
        assert card.reserved_order_id is None
        assert card.reserved_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_rejects_non_positive_quantity(self, session, now, create_product, create_order, quantity):
        create_product(session, "p1", cards=1)
        create_order(session, "o1")

        with pytest.raises(InvalidQuantityException):
            await ReservationService.reserve_units("p1", "o1", quantity, session, now=now)

    @pytest.mark.asyncio
    async def test_stale_reservation_is_reused(self, session, now, create_product, create_order, add_card):
        create_product(session, "p1")
        # Paid but never delivered: not reconciled, yet its reservation went stale
        create_order(session, "o-paid", status=OrderStatus.PAID, created_at=now - timedelta(minutes=20))
        create_order(session, "o1")
        card_id = add_card(session, card_key="k1", reserved_order_id="o-paid",
                           reserved_at=now - timedelta(minutes=6))

        reservation = await ReservationService.reserve_units("p1", "o1", 1, session, now=now)

        assert reservation.card_ids == [card_id]
        assert session.get(Card, card_id, populate_existing=True).reserved_order_id == "o1"

    @pytest.mark.asyncio
    async def test_expired_orders_are_reconciled_before_reserving(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=1)
        create_order(session, "o-old", created_at=now - timedelta(minutes=10))
        await CardRepository.reserve_for_order("p1", "o-old", 1, now - timedelta(minutes=10),
                                               now - timedelta(minutes=15), session)
        session.commit()
        create_order(session, "o1")

        await ReservationService.reserve_units("p1", "o1", 1, session, now=now)

        old_order = session.get(Order, "o-old", populate_existing=True)
        assert old_order.status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_lost_race_releases_partial_claim(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=1)
        create_order(session, "o1", quantity=2)

        # Pre-check sees enough stock, the UPDATE only finds one card
        with patch.object(CardRepository, "count_available", AsyncMock(return_value=2)):
            with pytest.raises(OutOfStockException) as exc_info:
                await ReservationService.reserve_units("p1", "o1", 2, session, now=now)

        assert exc_info.value.available == 1
        counts = await StockService.compute_counts("p1", session, now)
        assert counts.available == 1
        assert counts.reserved == 0

    @pytest.mark.asyncio
    async def test_locked_release_does_not_reclaim(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=3)
        create_order(session, "o1", quantity=2)

        reserve_for_order = CardRepository.reserve_for_order
        release_cards = CardRepository.release_cards
        release_calls = []

        async def claim_one(product_id, order_id, quantity, claim_now, cutoff, session):
            return await reserve_for_order(product_id, order_id, 1, claim_now, cutoff, session)

        async def release_locked_once(card_ids, order_id, session):
            release_calls.append(list(card_ids))
            if len(release_calls) == 1:
                raise OperationalError("UPDATE cards", {}, Exception("database is locked"))
            return await release_cards(card_ids, order_id, session)

        with patch.object(CardRepository, "reserve_for_order", claim_one), \
                patch.object(CardRepository, "release_cards", release_locked_once), \
                patch("utils.store_guard.asyncio.sleep", AsyncMock()):
            with pytest.raises(OutOfStockException):
                await ReservationService.reserve_units("p1", "o1", 2, session, now=now)

        assert release_calls == [[1], [1]]
        assert session.query(Card).filter(Card.reserved_order_id == "o1").count() == 0
        counts = await StockService.compute_counts("p1", session, now)
        assert counts.available == 3
        assert counts.reserved == 0

    @pytest.mark.asyncio
    async def test_release_reservation(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=3)
        create_order(session, "o1", quantity=3)
        await ReservationService.reserve_units("p1", "o1", 3, session, now=now)

        released = await ReservationService.release_reservation("o1", session)

        assert released == 3
        counts = await StockService.compute_counts("p1", session, now)
        assert counts.available == 3


class TestStockService:

    @pytest.mark.asyncio
    async def test_compute_counts_is_read_only(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=2)
        create_order(session, "o1", created_at=now - timedelta(minutes=10))
        await CardRepository.reserve_for_order("p1", "o1", 1, now - timedelta(minutes=10),
                                               now - timedelta(minutes=15), session)
        session.commit()

        counts = await StockService.compute_counts("p1", session, now)

        assert counts.available == 2
        assert session.get(Order, "o1", populate_existing=True).status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_get_stock_counts_reconciles_product_first(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=2)
        create_order(session, "o1")
        await ReservationService.reserve_units("p1", "o1", 1, session, now=now)

        counts = await StockService.get_stock_counts("p1", session, now=now)
        assert (counts.available, counts.reserved) == (1, 1)

        later = now + timedelta(minutes=6)
        counts = await StockService.get_stock_counts("p1", session, now=later)
        assert (counts.available, counts.reserved) == (2, 0)
        order = session.get(Order, "o1", populate_existing=True)
        assert order.status == OrderStatus.CANCELLED
        assert session.query(Card).filter(Card.reserved_order_id == "o1").count() == 0

    @pytest.mark.asyncio
    async def test_compute_counts_for_products_fills_missing(self, session, now, create_product):
        create_product(session, "p1", cards=2)
        create_product(session, "p2")

        counts = await StockService.compute_counts_for_products(session, ["p1", "p2"], now)

        assert counts["p1"].available == 2
        assert counts["p2"].total == 0
