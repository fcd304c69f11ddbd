from datetime import datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

import config
from db import session_commit
from enums.product_sort import ProductSort
from exceptions.product import ProductNotFoundException, CardNotFoundException
from models.card import CardDTO, StockCountsDTO
from models.product import ProductDTO, ProductStockDTO
from repositories.card import CardRepository
from repositories.product import ProductRepository
from services.order_expiry import OrderExpiryService
from services.settings import ShopSettingsService
from services.stock import StockService
from utils.freshness import current_time, reservation_cutoff
from utils.store_guard import StoreGuard


def _with_counts(product: ProductDTO, counts: StockCountsDTO, low_stock_threshold: int | None = None) -> ProductStockDTO:
    return ProductStockDTO(
        **product.model_dump(),
        available=counts.available,
        reserved=counts.reserved,
        sold=counts.sold,
        is_low_stock=None if low_stock_threshold is None else counts.available <= low_stock_threshold
    )


def _sort_products(products: list[ProductStockDTO], sort: ProductSort) -> list[ProductStockDTO]:
    match sort:
        case ProductSort.PRICE_ASC:
            return sorted(products, key=lambda p: p.price)
        case ProductSort.PRICE_DESC:
            return sorted(products, key=lambda p: p.price, reverse=True)
        case ProductSort.STOCK:
            return sorted(products, key=lambda p: p.available, reverse=True)
        case ProductSort.SOLD:
            return sorted(products, key=lambda p: p.sold, reverse=True)
        case _:
            return products


class ProductService:

    @staticmethod
    async def _stocked(
        products: list[ProductDTO],
        session: AsyncSession | Session,
        now: datetime,
        low_stock_threshold: int | None = None
    ) -> list[ProductStockDTO]:
        counts = await StockService.compute_counts_for_products(session, [p.id for p in products], now)
        return [_with_counts(product, counts[product.id], low_stock_threshold) for product in products]

    @staticmethod
    async def get_admin_products(session: AsyncSession | Session, now: datetime | None = None) -> list[ProductStockDTO]:
        """All products, active or not, with stock counts and the low-stock flag."""
        now = current_time(now)
        await OrderExpiryService.cancel_expired_orders(session, now=now)
        threshold = await ShopSettingsService.get_low_stock_threshold(session)
        products = await ProductRepository.get_all(session)
        return await ProductService._stocked(products, session, now, threshold)

    @staticmethod
    async def get_active_products(session: AsyncSession | Session, now: datetime | None = None) -> list[ProductStockDTO]:
        now = current_time(now)
        await OrderExpiryService.cancel_expired_orders(session, now=now)
        products = await ProductRepository.get_all(session, active_only=True)
        return await ProductService._stocked(products, session, now)

    @staticmethod
    async def get_product(product_id: str, session: AsyncSession | Session, now: datetime | None = None) -> ProductStockDTO:
        """
        Single product on sale, with fresh stock counts.

        Raises:
            ProductNotFoundException: Unknown or inactive product
        """
        product = await ProductRepository.get_by_id(product_id, session)
        if product is None or not product.is_active:
            raise ProductNotFoundException(product_id)
        counts = await StockService.get_stock_counts(product_id, session, now)
        return _with_counts(product, counts)

    @staticmethod
    async def search_products(
        session: AsyncSession | Session,
        query: str | None = None,
        category: str | None = None,
        sort: ProductSort = ProductSort.DEFAULT,
        page: int = 1,
        page_size: int | None = None,
        now: datetime | None = None
    ) -> tuple[list[ProductStockDTO], int]:
        """
        Search active products by name/description and category.

        Returns:
            Tuple of (products on the requested page, total matches)
        """
        now = current_time(now)
        page = max(page, 1)
        page_size = page_size or config.PAGE_ENTRIES

        await OrderExpiryService.cancel_expired_orders(session, now=now)
        products = await ProductRepository.search_active(session, query=query.strip() if query else None,
                                                         category=category)
        stocked = _sort_products(await ProductService._stocked(products, session, now), sort)
        start = (page - 1) * page_size
        return stocked[start:start + page_size], len(stocked)

    @staticmethod
    async def create_product(product_dto: ProductDTO, session: AsyncSession | Session) -> ProductDTO:
        product_id = await ProductRepository.create(product_dto, session)
        await session_commit(session)
        logging.info(f"🆕 Product {product_id} created: {product_dto.name}")
        return await ProductRepository.get_by_id(product_id, session)

    @staticmethod
    async def update_product(product_id: str, product_dto: ProductDTO, session: AsyncSession | Session) -> ProductDTO:
        """
        Apply the fields explicitly set on `product_dto`.

        Raises:
            ProductNotFoundException: Unknown product
        """
        if await ProductRepository.get_by_id(product_id, session) is None:
            raise ProductNotFoundException(product_id)
        product_dto.id = product_id
        await ProductRepository.update(product_dto, session)
        await session_commit(session)
        return await ProductRepository.get_by_id(product_id, session)

    @staticmethod
    async def delete_product(product_id: str, session: AsyncSession | Session) -> None:
        deleted = await ProductRepository.delete(product_id, session)
        if not deleted:
            raise ProductNotFoundException(product_id)
        await session_commit(session)
        logging.info(f"🗑️ Product {product_id} deleted with its cards")

    @staticmethod
    async def add_stock(product_id: str, card_keys: list[str], session: AsyncSession | Session) -> int:
        """
        Add cards to a product. Keys are stripped, blank lines are skipped.

        Returns:
            Number of cards added
        """
        if await ProductRepository.get_by_id(product_id, session) is None:
            raise ProductNotFoundException(product_id)
        keys = [key.strip() for key in card_keys if key and key.strip()]
        if not keys:
            return 0
        added = await StoreGuard.with_schema_fallback(
            lambda: CardRepository.add_many(product_id, keys, session),
            session
        )
        await session_commit(session)
        logging.info(f"📥 Added {added} card(s) to product {product_id}")
        return added

    @staticmethod
    async def get_cards(product_id: str, session: AsyncSession | Session) -> list[CardDTO]:
        return await CardRepository.get_by_product_id(product_id, session)

    @staticmethod
    async def delete_card(card_id: int, session: AsyncSession | Session, now: datetime | None = None) -> None:
        """
        Delete a card that is neither sold nor held by a live reservation.

        Raises:
            CardNotFoundException: No such card in a deletable state
        """
        cutoff = reservation_cutoff(current_time(now))
        deleted = await CardRepository.delete_available(card_id, cutoff, session)
        if not deleted:
            raise CardNotFoundException(card_id)
        await session_commit(session)
