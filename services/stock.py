from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from models.card import StockCountsDTO
from repositories.card import CardRepository
from services.order_expiry import OrderExpiryService
from utils.freshness import current_time, reservation_cutoff
from utils.store_guard import StoreGuard


class StockService:

    @staticmethod
    async def compute_counts(
        product_id: str,
        session: AsyncSession | Session,
        now: datetime | None = None
    ) -> StockCountsDTO:
        """
        Available / reserved / sold for a product at a single instant.

        Read-only: expired orders are not reconciled here, stale reservations
        simply count as available.
        """
        cutoff = reservation_cutoff(current_time(now))
        return await StoreGuard.with_schema_fallback(
            lambda: CardRepository.count_by_state(product_id, cutoff, session),
            session
        )

    @staticmethod
    async def compute_counts_for_products(
        session: AsyncSession | Session,
        product_ids: list[str] | None = None,
        now: datetime | None = None
    ) -> dict[str, StockCountsDTO]:
        """Batch compute_counts(); products without cards map to zero counts."""
        cutoff = reservation_cutoff(current_time(now))
        counts = await StoreGuard.with_schema_fallback(
            lambda: CardRepository.count_by_product(cutoff, session, product_ids),
            session
        )
        if product_ids is not None:
            return {product_id: counts.get(product_id, StockCountsDTO()) for product_id in product_ids}
        return counts

    @staticmethod
    async def get_stock_counts(
        product_id: str,
        session: AsyncSession | Session,
        now: datetime | None = None
    ) -> StockCountsDTO:
        """Reconcile the product's expired orders, then compute its counts."""
        now = current_time(now)
        await OrderExpiryService.cancel_expired_orders(session, product_id=product_id, now=now)
        return await StockService.compute_counts(product_id, session, now)
