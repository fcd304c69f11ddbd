from datetime import datetime
import uuid

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Text, CheckConstraint
from sqlalchemy.orm import relationship

from models.base import Base


def generate_product_id() -> str:
    return uuid.uuid4().hex[:12]


class Product(Base):
    __tablename__ = 'products'

    id = Column(String(64), primary_key=True, default=generate_product_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    compare_at_price = Column(Float, nullable=True)
    category = Column(String, nullable=True)
    image = Column(String, nullable=True)
    is_hot = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    purchase_limit = Column(Integer, nullable=True)  # Max cards per order, NULL = unlimited
    purchase_warning = Column(Text, nullable=True)  # Shown to the buyer before checkout
    created_at = Column(DateTime, default=datetime.now)

    # Stock units are removed together with the product
    cards = relationship("Card", back_populates="product", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint('price >= 0', name='check_product_price_non_negative'),
    )


class ProductDTO(BaseModel):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    price: float | None = None
    compare_at_price: float | None = None
    category: str | None = None
    image: str | None = None
    is_hot: bool | None = None
    is_active: bool | None = None
    sort_order: int | None = None
    purchase_limit: int | None = None
    purchase_warning: str | None = None
    created_at: datetime | None = None


class ProductStockDTO(ProductDTO):
    """Product row joined with its derived stock counts."""
    available: int = 0
    reserved: int = 0
    sold: int = 0
    is_low_stock: bool | None = None
