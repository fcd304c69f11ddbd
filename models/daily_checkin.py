from datetime import date, datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint

from models.base import Base


class DailyCheckin(Base):
    __tablename__ = 'daily_checkins'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey('login_users.user_id', ondelete='CASCADE'), nullable=False)
    checkin_date = Column(Date, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        UniqueConstraint('user_id', 'checkin_date', name='uq_daily_checkins_user_date'),
    )


class CheckinResultDTO(BaseModel):
    user_id: str
    reward: int
    points: int
    checked_in_at: datetime


class CheckinStatusDTO(BaseModel):
    user_id: str
    checked_in_today: bool
    checkin_date: date
    points: int
