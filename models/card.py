from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base import Base


# Card is a single sellable stock unit (e.g. a redemption key) which can only be sold once
class Card(Base):
    __tablename__ = 'cards'

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    card_key = Column(String, nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)  # Terminal once set

    # Reservation: held for an order while reserved_at is within the reservation window
    reserved_order_id = Column(String(64), ForeignKey("orders.order_id", ondelete="SET NULL"), nullable=True)
    reserved_at = Column(DateTime, nullable=True)

    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    product = relationship("Product", back_populates="cards")

    __table_args__ = (
        Index('ix_cards_product_is_used', 'product_id', 'is_used'),
        Index('ix_cards_reserved_order_id', 'reserved_order_id'),
    )


class CardDTO(BaseModel):
    id: int | None = None
    product_id: str | None = None
    card_key: str | None = None
    is_used: bool | None = None
    reserved_order_id: str | None = None
    reserved_at: datetime | None = None
    used_at: datetime | None = None
    created_at: datetime | None = None


class StockCountsDTO(BaseModel):
    available: int = 0
    reserved: int = 0
    sold: int = 0

    @property
    def total(self) -> int:
        return self.available + self.reserved + self.sold


class ReservationDTO(BaseModel):
    order_id: str
    product_id: str
    card_ids: list[int]
    reserved_at: datetime
