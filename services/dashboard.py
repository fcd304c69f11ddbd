from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from models.dashboard import DashboardStatsDTO, PeriodStatsDTO
from models.order import OrderDTO
from repositories.order import OrderRepository
from utils.freshness import current_time


class DashboardService:

    @staticmethod
    async def get_stats(session: AsyncSession | Session, now: datetime | None = None) -> DashboardStatsDTO:
        """
        Delivered orders and revenue, bucketed by payment time.

        - today: since local midnight
        - week: the last 7 days
        - month: since the first day of the current month
        - total: all time
        """
        now = current_time(now)
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        periods = {
            "today": today_start,
            "week": now - timedelta(days=7),
            "month": today_start.replace(day=1),
            "total": None,
        }

        stats = {}
        for name, since in periods.items():
            count, revenue = await OrderRepository.get_delivered_stats_since(since, session)
            stats[name] = PeriodStatsDTO(count=count, revenue=round(revenue, 2))
        return DashboardStatsDTO(**stats)

    @staticmethod
    async def get_recent_orders(session: AsyncSession | Session, limit: int = 10) -> list[OrderDTO]:
        return await OrderRepository.get_recent(limit, session)
