"""
Integration test: concurrent reservations never oversell.

Each contender runs in its own aiosqlite connection against a shared file
database, so the conditional UPDATE is really racing other writers.
"""

import asyncio

import pytest

from exceptions.order import OutOfStockException
from models.card import Card
from services.reservation import ReservationService
from services.stock import StockService

STOCK = 5
CONTENDERS = 8


class TestConcurrentReservations:

    @pytest.mark.asyncio
    async def test_no_oversell_under_concurrency(self, file_session, async_session_maker, now,
                                                 create_product, create_order):
        create_product(file_session, "p1", cards=STOCK)
        for n in range(CONTENDERS):
            create_order(file_session, f"o{n}", quantity=2)

        async def contend(order_id: str):
            async with async_session_maker() as session:
                try:
                    return await ReservationService.reserve_units("p1", order_id, 2, session, now=now)
                except OutOfStockException:
                    return None

        results = await asyncio.gather(*(contend(f"o{n}") for n in range(CONTENDERS)))
        granted = [result for result in results if result is not None]

        claimed_ids = [card_id for reservation in granted for card_id in reservation.card_ids]
        assert len(claimed_ids) == len(set(claimed_ids))
        assert len(claimed_ids) <= STOCK
        assert len(granted) == STOCK // 2

        file_session.expire_all()
        holders = {card.reserved_order_id for card in file_session.query(Card) if card.reserved_order_id}
        assert holders == {reservation.order_id for reservation in granted}

        async with async_session_maker() as session:
            counts = await StockService.compute_counts("p1", session, now)
        assert counts.reserved == len(claimed_ids)
        assert counts.available == STOCK - len(claimed_ids)
