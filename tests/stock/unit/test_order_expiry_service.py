"""
Unit tests for OrderExpiryService

Expired pending orders are cancelled and their unused cards released;
repeated runs change nothing.
"""

from datetime import timedelta

import pytest

from enums.order_status import OrderStatus
from models.card import Card
from models.order import Order
from repositories.card import CardRepository
from services.order_expiry import OrderExpiryService
from utils.freshness import reservation_cutoff


async def reserve(session, product_id, order_id, quantity, reserved_at):
    await CardRepository.reserve_for_order(product_id, order_id, quantity, reserved_at,
                                           reservation_cutoff(reserved_at), session)
    session.commit()


class TestCancelExpiredOrders:

    @pytest.mark.asyncio
    async def test_cancels_expired_and_releases_cards(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=3)
        old = now - timedelta(minutes=6)
        create_order(session, "o-old", quantity=2, created_at=old)
        create_order(session, "o-new", quantity=1, created_at=now)
        await reserve(session, "p1", "o-old", 2, old)
        await reserve(session, "p1", "o-new", 1, now)

        cancelled = await OrderExpiryService.cancel_expired_orders(session, now=now)

        assert cancelled == ["o-old"]
        assert session.get(Order, "o-old", populate_existing=True).status == OrderStatus.CANCELLED
        assert session.get(Order, "o-new", populate_existing=True).status == OrderStatus.PENDING
        assert session.query(Card).filter(Card.reserved_order_id == "o-old").count() == 0
        assert session.query(Card).filter(Card.reserved_order_id == "o-new").count() == 1

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=1)
        create_order(session, "o1", created_at=now - timedelta(minutes=10))
        await reserve(session, "p1", "o1", 1, now - timedelta(minutes=10))

        first = await OrderExpiryService.cancel_expired_orders(session, now=now)
        snapshot = [(c.id, c.reserved_order_id, c.reserved_at, c.is_used) for c in session.query(Card)]
        second = await OrderExpiryService.cancel_expired_orders(session, now=now)

        assert first == ["o1"]
        assert second == []
        assert [(c.id, c.reserved_order_id, c.reserved_at, c.is_used) for c in session.query(Card)] == snapshot

    @pytest.mark.asyncio
    async def test_order_inside_window_is_kept(self, session, now, create_product, create_order):
        create_product(session, "p1")
        create_order(session, "o1", created_at=now - timedelta(minutes=5))

        assert await OrderExpiryService.cancel_expired_orders(session, now=now) == []

    @pytest.mark.asyncio
    async def test_only_pending_orders_are_cancelled(self, session, now, create_product, create_order):
        create_product(session, "p1")
        old = now - timedelta(hours=1)
        for status in (OrderStatus.PAID, OrderStatus.DELIVERED, OrderStatus.FAILED, OrderStatus.REFUNDED):
            create_order(session, f"o-{status.value}", status=status, created_at=old)

        assert await OrderExpiryService.cancel_expired_orders(session, now=now) == []

    @pytest.mark.asyncio
    async def test_filters_narrow_scope(self, session, now, create_product, create_order):
        create_product(session, "p1")
        create_product(session, "p2")
        old = now - timedelta(minutes=30)
        create_order(session, "o-p1", product_id="p1", created_at=old, user_id="alice")
        create_order(session, "o-p2", product_id="p2", created_at=old, user_id="bob")
        create_order(session, "o-p2-bis", product_id="p2", created_at=old, user_id="alice")

        assert await OrderExpiryService.cancel_expired_orders(session, product_id="p1", now=now) == ["o-p1"]
        assert await OrderExpiryService.cancel_expired_orders(session, user_id="bob", now=now) == ["o-p2"]
        assert await OrderExpiryService.cancel_expired_orders(session, order_id="missing", now=now) == []
        assert await OrderExpiryService.cancel_expired_orders(session, order_id="o-p2-bis", now=now) == ["o-p2-bis"]

    @pytest.mark.asyncio
    async def test_sold_cards_survive_cancellation(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=2)
        old = now - timedelta(minutes=10)
        create_order(session, "o1", quantity=2, created_at=old)
        await reserve(session, "p1", "o1", 2, old)
        await CardRepository.mark_used_for_order("o1", 1, old, session)
        session.commit()

        await OrderExpiryService.cancel_expired_orders(session, now=now)

        sold = session.query(Card).filter(Card.is_used == True).one()
        assert sold.reserved_order_id == "o1"
        assert sold.reserved_at == old
        unsold = session.query(Card).filter(Card.is_used == False).one()
        assert unsold.reserved_order_id is None
