from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.product import Product, ProductDTO


class ProductRepository:

    @staticmethod
    async def create(product_dto: ProductDTO, session: AsyncSession | Session) -> str:
        product = Product(**product_dto.model_dump(exclude_none=True))
        session.add(product)
        await session_flush(session)
        return product.id

    @staticmethod
    async def get_by_id(product_id: str, session: AsyncSession | Session) -> ProductDTO | None:
        stmt = select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        product = result.scalar()
        if product is None:
            return None
        return ProductDTO.model_validate(product, from_attributes=True)

    @staticmethod
    async def get_all(session: AsyncSession | Session, active_only: bool = False) -> list[ProductDTO]:
        stmt = select(Product).order_by(Product.sort_order.asc(), Product.name.asc())
        if active_only:
            stmt = stmt.where(Product.is_active == True)
        result = await session_execute(stmt, session)
        return [ProductDTO.model_validate(product, from_attributes=True) for product in result.scalars().all()]

    @staticmethod
    async def search_active(
        session: AsyncSession | Session,
        query: str | None = None,
        category: str | None = None
    ) -> list[ProductDTO]:
        stmt = select(Product).where(Product.is_active == True)
        if query:
            like = f"%{query}%"
            stmt = stmt.where(Product.name.like(like) | Product.description.like(like))
        if category:
            stmt = stmt.where(Product.category == category)
        stmt = stmt.order_by(Product.sort_order.asc(), Product.name.asc())
        result = await session_execute(stmt, session)
        return [ProductDTO.model_validate(product, from_attributes=True) for product in result.scalars().all()]

    @staticmethod
    async def update(product_dto: ProductDTO, session: AsyncSession | Session) -> bool:
        values = product_dto.model_dump(exclude={'id', 'created_at'}, exclude_unset=True)
        if not values:
            return False
        stmt = update(Product).where(Product.id == product_dto.id).values(**values)
        result = await session_execute(stmt, session)
        return result.rowcount > 0

    @staticmethod
    async def delete(product_id: str, session: AsyncSession | Session) -> bool:
        # Cards go with the product via ON DELETE CASCADE
        stmt = delete(Product).where(Product.id == product_id)
        result = await session_execute(stmt, session)
        return result.rowcount > 0
