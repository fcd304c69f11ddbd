"""
Unit tests for OrderService

Order creation with reservation, cancellation, payment and delivery,
including the full reserve -> sold out -> expire -> restock scenario.
"""

from datetime import timedelta

import pytest

from enums.order_status import OrderStatus
from exceptions.order import (
    OrderNotFoundException,
    OutOfStockException,
    InvalidQuantityException,
    PurchaseLimitExceededException,
    InvalidOrderStateException
)
from exceptions.product import ProductNotFoundException
from exceptions.user import UserBlockedException
from models.card import Card
from models.login_user import LoginUser
from models.order import Order
from services.order import OrderService
from services.stock import StockService


class TestCreateOrder:

    @pytest.mark.asyncio
    async def test_creates_pending_order_with_reservation(self, session, now, create_product):
        create_product(session, "p1", cards=3, price=12.5)

        order = await OrderService.create_order("p1", 2, session, user_id="u1", username="alice",
                                                email="alice@example.com", now=now)

        assert order.status == OrderStatus.PENDING
        assert order.amount == 25.0
        assert order.quantity == 2
        assert order.product_name == "Product p1"
        assert order.created_at == now
        assert session.query(Card).filter(Card.reserved_order_id == order.order_id).count() == 2

    @pytest.mark.asyncio
    async def test_sold_out_marks_order_failed(self, session, now, create_product):
        create_product(session, "p1", cards=1)

        with pytest.raises(OutOfStockException):
            await OrderService.create_order("p1", 2, session, user_id="u1", now=now)

        order = session.query(Order).one()
        assert order.status == OrderStatus.FAILED
        assert session.query(Card).filter(Card.reserved_order_id != None).count() == 0

    @pytest.mark.asyncio
    async def test_unknown_or_inactive_product(self, session, now, create_product):
        create_product(session, "hidden", cards=1, is_active=False)

        with pytest.raises(ProductNotFoundException):
            await OrderService.create_order("missing", 1, session, now=now)
        with pytest.raises(ProductNotFoundException):
            await OrderService.create_order("hidden", 1, session, now=now)
        assert session.query(Order).count() == 0

    @pytest.mark.asyncio
    async def test_quantity_validation(self, session, now, create_product):
        create_product(session, "p1", cards=5, purchase_limit=2)

        with pytest.raises(InvalidQuantityException):
            await OrderService.create_order("p1", 0, session, now=now)
        with pytest.raises(PurchaseLimitExceededException) as exc_info:
            await OrderService.create_order("p1", 3, session, now=now)
        assert exc_info.value.limit == 2
        assert session.query(Order).count() == 0

    @pytest.mark.asyncio
    async def test_blocked_user_cannot_order(self, session, now, create_product):
        create_product(session, "p1", cards=1)
        session.add(LoginUser(user_id="u1", username="mallory", is_blocked=True, points=0))
        session.commit()

        with pytest.raises(UserBlockedException):
            await OrderService.create_order("p1", 1, session, user_id="u1", now=now)


class TestReservationScenario:

    @pytest.mark.asyncio
    async def test_reserve_sell_out_expire_and_restock(self, session, now, create_product):
        create_product(session, "p1", cards=3)

        first = await OrderService.create_order("p1", 2, session, user_id="u1", now=now)
        counts = await StockService.get_stock_counts("p1", session, now=now)
        assert (counts.available, counts.reserved, counts.sold) == (1, 2, 0)

        with pytest.raises(OutOfStockException):
            await OrderService.create_order("p1", 2, session, user_id="u2", now=now + timedelta(minutes=1))
        counts = await StockService.get_stock_counts("p1", session, now=now + timedelta(minutes=1))
        assert (counts.available, counts.reserved, counts.sold) == (1, 2, 0)

        later = now + timedelta(minutes=6)
        counts = await StockService.get_stock_counts("p1", session, now=later)
        assert (counts.available, counts.reserved, counts.sold) == (3, 0, 0)
        assert (await OrderService.get_order(first.order_id, session)).status == OrderStatus.CANCELLED

        # Stock freed by expiry can be bought again
        third = await OrderService.create_order("p1", 3, session, user_id="u2", now=later)
        assert third.status == OrderStatus.PENDING


class TestCancelOrder:

    @pytest.mark.asyncio
    async def test_cancel_releases_cards(self, session, now, create_product):
        create_product(session, "p1", cards=2)
        order = await OrderService.create_order("p1", 2, session, now=now)

        cancelled = await OrderService.cancel_order(order.order_id, session)

        assert cancelled.status == OrderStatus.CANCELLED
        counts = await StockService.compute_counts("p1", session, now)
        assert counts.available == 2

    @pytest.mark.asyncio
    async def test_cancel_unknown_order(self, session):
        with pytest.raises(OrderNotFoundException):
            await OrderService.cancel_order("nope", session)

    @pytest.mark.asyncio
    async def test_cancel_twice_is_rejected(self, session, now, create_product):
        create_product(session, "p1", cards=1)
        order = await OrderService.create_order("p1", 1, session, now=now)
        await OrderService.cancel_order(order.order_id, session)

        with pytest.raises(InvalidOrderStateException) as exc_info:
            await OrderService.cancel_order(order.order_id, session)
        assert exc_info.value.current_state == "cancelled"


class TestDelivery:

    @pytest.mark.asyncio
    async def test_payment_delivers_cards(self, session, now, create_product):
        create_product(session, "p1", cards=3)
        order = await OrderService.create_order("p1", 2, session, now=now)

        delivered = await OrderService.complete_order_payment(order.order_id, "T-100", session,
                                                              now=now + timedelta(minutes=1))

        assert delivered.status == OrderStatus.DELIVERED
        assert delivered.trade_no == "T-100"
        assert delivered.paid_at == now + timedelta(minutes=1)
        assert delivered.card_key.split("\n") == ["KEY-p1-1", "KEY-p1-2"]
        counts = await StockService.compute_counts("p1", session, now + timedelta(days=1))
        assert (counts.available, counts.reserved, counts.sold) == (1, 0, 2)

    @pytest.mark.asyncio
    async def test_repeated_payment_is_ignored(self, session, now, create_product):
        create_product(session, "p1", cards=1)
        order = await OrderService.create_order("p1", 1, session, now=now)
        first = await OrderService.complete_order_payment(order.order_id, "T-1", session, now=now)

        second = await OrderService.complete_order_payment(order.order_id, "T-1", session, now=now)

        assert second.card_key == first.card_key
        assert session.query(Card).filter(Card.is_used == True).count() == 1

    @pytest.mark.asyncio
    async def test_late_payment_tops_up_lost_reservation(self, session, now, create_product):
        create_product(session, "p1", cards=3)
        slow = await OrderService.create_order("p1", 2, session, now=now)
        # Paid in time, but delivery runs after the reservation went stale
        session.query(Order).filter(Order.order_id == slow.order_id).update({"status": OrderStatus.PAID})
        session.commit()
        later = now + timedelta(minutes=7)
        # Another buyer picks up one of the stale cards meanwhile
        other = await OrderService.create_order("p1", 1, session, now=later)

        delivered = await OrderService.deliver_order(slow.order_id, session, now=later)

        assert delivered.status == OrderStatus.DELIVERED
        keys = delivered.card_key.split("\n")
        assert keys == ["KEY-p1-2", "KEY-p1-3"]
        other_cards = session.query(Card).filter(Card.reserved_order_id == other.order_id).all()
        assert all(card.card_key not in keys for card in other_cards)
        assert all(card.is_used is False for card in other_cards)

    @pytest.mark.asyncio
    async def test_delivery_shortfall_fails_order(self, session, now, create_product, create_order):
        create_product(session, "p1", cards=1)
        create_order(session, "o1", quantity=2, status=OrderStatus.PAID)

        with pytest.raises(OutOfStockException):
            await OrderService.deliver_order("o1", session, now=now)

        assert session.get(Order, "o1", populate_existing=True).status == OrderStatus.FAILED
        assert session.query(Card).filter(Card.is_used == True).count() == 0
        assert session.query(Card).filter(Card.reserved_order_id != None).count() == 0

    @pytest.mark.asyncio
    async def test_cannot_deliver_cancelled_order(self, session, now, create_product):
        create_product(session, "p1", cards=1)
        order = await OrderService.create_order("p1", 1, session, now=now)
        await OrderService.cancel_order(order.order_id, session)

        with pytest.raises(InvalidOrderStateException):
            await OrderService.deliver_order(order.order_id, session, now=now)
        with pytest.raises(InvalidOrderStateException):
            await OrderService.complete_order_payment(order.order_id, "T-9", session, now=now)


class TestPendingOrders:

    @pytest.mark.asyncio
    async def test_expired_orders_are_not_listed(self, session, now, create_product, create_order):
        create_product(session, "p1")
        create_order(session, "o-old", user_id="u1", created_at=now - timedelta(minutes=10))
        create_order(session, "o-new", user_id="u1", created_at=now - timedelta(minutes=1))
        create_order(session, "o-other", user_id="u2", created_at=now - timedelta(minutes=10))

        pending = await OrderService.get_user_pending_orders("u1", session, now=now)

        assert [order.order_id for order in pending] == ["o-new"]
        # Other users' orders are reconciled by their own requests
        assert session.get(Order, "o-other", populate_existing=True).status == OrderStatus.PENDING
