from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Boolean, DateTime

from models.base import Base


class LoginUser(Base):
    """Customer who signed in at least once (visitor count, points, blocking)."""
    __tablename__ = 'login_users'

    user_id = Column(String(64), primary_key=True)
    username = Column(String, nullable=True)
    points = Column(Integer, nullable=False, default=0)
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.now)
    last_login_at = Column(DateTime, default=datetime.now)


class LoginUserDTO(BaseModel):
    user_id: str | None = None
    username: str | None = None
    points: int | None = None
    is_blocked: bool | None = None
    created_at: datetime | None = None
    last_login_at: datetime | None = None


class CustomerDTO(LoginUserDTO):
    order_count: int = 0


class CustomerPageDTO(BaseModel):
    items: list[CustomerDTO]
    total: int
    page: int
    page_size: int
