from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, Float, DateTime, String, Text, CheckConstraint, Index, Enum as SQLEnum

from enums.order_status import OrderStatus
from models.base import Base


class Order(Base):
    __tablename__ = 'orders'

    order_id = Column(String(64), primary_key=True)
    product_id = Column(String(64), nullable=False)  # No FK: orders outlive deleted products
    product_name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    email = Column(String, nullable=True)
    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    trade_no = Column(String, nullable=True)  # Payment provider reference
    card_key = Column(Text, nullable=True)  # Delivered keys, newline separated
    paid_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    user_id = Column(String(64), nullable=True)
    username = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_order_quantity_positive'),
        Index('ix_orders_status_created_at', 'status', 'created_at'),
        Index('ix_orders_user_id', 'user_id'),
    )


class OrderDTO(BaseModel):
    order_id: str | None = None
    product_id: str | None = None
    product_name: str | None = None
    amount: float | None = None
    email: str | None = None
    status: OrderStatus | None = None
    trade_no: str | None = None
    card_key: str | None = None
    paid_at: datetime | None = None
    delivered_at: datetime | None = None
    user_id: str | None = None
    username: str | None = None
    quantity: int | None = None
    created_at: datetime | None = None
