"""
Unit tests for DashboardService
"""

from datetime import datetime, timedelta

import pytest

from enums.order_status import OrderStatus
from services.dashboard import DashboardService

# Wednesday mid-month, so "today", "last 7 days" and "this month" all differ
NOW = datetime(2026, 3, 18, 15, 30, 0)


class TestDashboardStats:

    @pytest.fixture
    def orders(self, session, create_product, create_order):
        create_product(session, "p1")
        delivered = OrderStatus.DELIVERED
        create_order(session, "today", amount=10.0, status=delivered, paid_at=NOW - timedelta(hours=1))
        create_order(session, "this-week", amount=20.0, status=delivered, paid_at=NOW - timedelta(days=3))
        create_order(session, "this-month", amount=40.0, status=delivered, paid_at=datetime(2026, 3, 2, 9, 0))
        create_order(session, "last-year", amount=80.0, status=delivered, paid_at=datetime(2025, 12, 24, 9, 0))
        create_order(session, "paid-only", amount=500.0, status=OrderStatus.PAID, paid_at=NOW)
        create_order(session, "pending", amount=500.0, created_at=NOW)

    @pytest.mark.asyncio
    async def test_period_buckets(self, session, orders):
        stats = await DashboardService.get_stats(session, now=NOW)

        assert (stats.today.count, stats.today.revenue) == (1, 10.0)
        assert (stats.week.count, stats.week.revenue) == (2, 30.0)
        assert (stats.month.count, stats.month.revenue) == (3, 70.0)
        assert (stats.total.count, stats.total.revenue) == (4, 150.0)

    @pytest.mark.asyncio
    async def test_empty_store(self, session):
        stats = await DashboardService.get_stats(session, now=NOW)

        assert stats.total.count == 0
        assert stats.total.revenue == 0.0

    @pytest.mark.asyncio
    async def test_recent_orders_newest_first(self, session, create_product, create_order):
        create_product(session, "p1")
        for minutes in (30, 10, 20):
            create_order(session, f"o{minutes}", created_at=NOW - timedelta(minutes=minutes))

        recent = await DashboardService.get_recent_orders(session, limit=2)

        assert [order.order_id for order in recent] == ["o10", "o20"]
