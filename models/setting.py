from pydantic import BaseModel
from sqlalchemy import Column, String, DateTime, func

from models.base import Base


class Setting(Base):
    """
    Key-value store for runtime-configurable shop settings.
    Allows changing settings without restart.

    Examples:
        - shop_name: "Key Shop"
        - low_stock_threshold: "5"
        - checkin_enabled: "true", "false"
    """
    __tablename__ = 'settings'

    key = Column(String, primary_key=True)
    value = Column(String, nullable=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class ShopSettingsDTO(BaseModel):
    shop_name: str | None = None
    shop_description: str | None = None
    shop_logo: str | None = None
    low_stock_threshold: int = 5
    checkin_reward: int = 10
    checkin_enabled: bool = True
    noindex_enabled: bool = False
