from datetime import datetime
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit, session_rollback
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
from models.order import OrderDTO
from repositories.card import CardRepository
from repositories.login_user import LoginUserRepository
from repositories.order import OrderRepository
from repositories.product import ProductRepository
from services.order_expiry import OrderExpiryService
from services.reservation import ReservationService
from utils.freshness import current_time, reservation_cutoff

DELIVERABLE_STATUSES = [OrderStatus.PENDING, OrderStatus.PAID]


def generate_order_id(now: datetime) -> str:
    return f"ORD{now.strftime('%Y%m%d%H%M%S')}{uuid.uuid4().hex[:6].upper()}"


class OrderService:

    @staticmethod
    async def get_order(order_id: str, session: AsyncSession | Session) -> OrderDTO:
        order = await OrderRepository.get_by_id(order_id, session)
        if order is None:
            raise OrderNotFoundException(order_id)
        return order

    @staticmethod
    async def create_order(
        product_id: str,
        quantity: int,
        session: AsyncSession | Session,
        user_id: str | None = None,
        username: str | None = None,
        email: str | None = None,
        now: datetime | None = None
    ) -> OrderDTO:
        """
        Create a pending order and reserve its cards.

        The order row is written first so the reservation can reference it.
        If the reservation is refused the order is kept as `failed` for the
        record and the OutOfStockException propagates to the caller.

        Raises:
            ProductNotFoundException: Unknown or inactive product
            InvalidQuantityException: quantity < 1
            PurchaseLimitExceededException: quantity above the product's per-order limit
            UserBlockedException: The customer is blocked
            OutOfStockException: Not enough available cards
        """
        now = current_time(now)

        product = await ProductRepository.get_by_id(product_id, session)
        if product is None or not product.is_active:
            raise ProductNotFoundException(product_id)
        if quantity < 1:
            raise InvalidQuantityException(quantity)
        if product.purchase_limit and quantity > product.purchase_limit:
            raise PurchaseLimitExceededException(product_id, quantity, product.purchase_limit)

        if user_id:
            user = await LoginUserRepository.get_by_id(user_id, session)
            if user is not None and user.is_blocked:
                raise UserBlockedException(user_id)

        order_id = generate_order_id(now)
        await OrderRepository.create(OrderDTO(
            order_id=order_id,
            product_id=product.id,
            product_name=product.name,
            amount=round(product.price * quantity, 2),
            email=email,
            status=OrderStatus.PENDING,
            user_id=user_id,
            username=username,
            quantity=quantity,
            created_at=now
        ), session)
        await session_commit(session)

        try:
            await ReservationService.reserve_units(product.id, order_id, quantity, session, now=now)
        except OutOfStockException:
            await OrderRepository.transition_status(order_id, [OrderStatus.PENDING], OrderStatus.FAILED, session)
            await session_commit(session)
            logging.info(f"Order {order_id} failed: product {product_id} sold out")
            raise

        logging.info(f"✅ Order {order_id} created (Product: {product_id}, Quantity: {quantity})")
        return await OrderService.get_order(order_id, session)

    @staticmethod
    async def cancel_order(order_id: str, session: AsyncSession | Session) -> OrderDTO:
        """
        Cancel a pending order and return its cards to stock.

        Raises:
            OrderNotFoundException: Unknown order
            InvalidOrderStateException: Order is no longer pending
        """
        order = await OrderService.get_order(order_id, session)

        cancelled = await OrderRepository.transition_status(
            order_id, [OrderStatus.PENDING], OrderStatus.CANCELLED, session
        )
        await session_commit(session)
        if not cancelled:
            order = await OrderService.get_order(order_id, session)
            raise InvalidOrderStateException(order_id, order.status.value, OrderStatus.PENDING.value)

        await ReservationService.release_reservation(order_id, session)
        logging.info(f"❌ Order {order_id} cancelled (was {order.status.value})")
        return await OrderService.get_order(order_id, session)

    @staticmethod
    async def complete_order_payment(
        order_id: str,
        trade_no: str | None,
        session: AsyncSession | Session,
        now: datetime | None = None
    ) -> OrderDTO:
        """
        Record a payment and deliver the order.

        A repeated notification for an already delivered order returns it
        unchanged.

        Raises:
            OrderNotFoundException: Unknown order
            InvalidOrderStateException: Order was cancelled, failed or refunded
            OutOfStockException: Cards could not be secured for delivery
        """
        now = current_time(now)
        order = await OrderService.get_order(order_id, session)
        if order.status == OrderStatus.DELIVERED:
            logging.info(f"Order {order_id} already delivered, ignoring repeated payment")
            return order

        paid = await OrderRepository.transition_status(
            order_id, [OrderStatus.PENDING], OrderStatus.PAID, session,
            trade_no=trade_no, paid_at=now
        )
        await session_commit(session)
        if not paid:
            order = await OrderService.get_order(order_id, session)
            if order.status != OrderStatus.PAID:
                raise InvalidOrderStateException(order_id, order.status.value, OrderStatus.PENDING.value)

        logging.info(f"💰 Order {order_id} paid (Trade: {trade_no})")
        return await OrderService.deliver_order(order_id, session, now=now)

    @staticmethod
    async def deliver_order(
        order_id: str,
        session: AsyncSession | Session,
        now: datetime | None = None
    ) -> OrderDTO:
        """
        Sell the order's cards and attach their keys to the order.

        The order's own reservations are refreshed first so they cannot go
        stale mid-delivery; any shortfall (e.g. cards that expired and were
        taken by someone else) is topped up from available stock. Only cards
        held by this order are marked sold.

        Raises:
            OrderNotFoundException: Unknown order
            InvalidOrderStateException: Order is not pending or paid
            OutOfStockException: Not enough cards; the order is marked failed
        """
        now = current_time(now)
        order = await OrderService.get_order(order_id, session)
        if order.status not in DELIVERABLE_STATUSES:
            raise InvalidOrderStateException(order_id, order.status.value, "pending|paid")
        quantity = order.quantity or 1

        await CardRepository.refresh_order_reservation(order_id, now, session)
        held = await CardRepository.count_held_by_order(order_id, session)
        if held < quantity:
            await CardRepository.reserve_for_order(
                order.product_id, order_id, quantity - held, now, reservation_cutoff(now), session
            )
            held = await CardRepository.count_held_by_order(order_id, session)
        await session_commit(session)

        if held < quantity:
            await CardRepository.release_by_order_id(order_id, session)
            await OrderRepository.transition_status(order_id, DELIVERABLE_STATUSES, OrderStatus.FAILED, session)
            await session_commit(session)
            logging.error(f"❌ Order {order_id} cannot be delivered: {held} of {quantity} card(s) available")
            raise OutOfStockException(order.product_id, quantity, held)

        sold_cards = await CardRepository.mark_used_for_order(order_id, quantity, now, session)
        delivered = await OrderRepository.transition_status(
            order_id, DELIVERABLE_STATUSES, OrderStatus.DELIVERED, session,
            card_key="\n".join(card.card_key for card in sold_cards),
            paid_at=order.paid_at or now,
            delivered_at=now
        )
        if len(sold_cards) < quantity or not delivered:
            # Another delivery of the same order got there first
            await session_rollback(session)
            order = await OrderService.get_order(order_id, session)
            raise InvalidOrderStateException(order_id, order.status.value, "pending|paid")
        await session_commit(session)

        logging.info(f"📦 Order {order_id} delivered ({len(sold_cards)} card(s))")
        return await OrderService.get_order(order_id, session)

    @staticmethod
    async def get_user_pending_orders(
        user_id: str,
        session: AsyncSession | Session,
        now: datetime | None = None
    ) -> list[OrderDTO]:
        await OrderExpiryService.cancel_expired_orders(session, user_id=user_id, now=now)
        return await OrderRepository.get_pending_by_user_id(user_id, session)
