from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.category import Category, CategoryDTO


class CategoryRepository:

    @staticmethod
    async def get_all(session: AsyncSession | Session) -> list[CategoryDTO]:
        stmt = select(Category).order_by(Category.sort_order.asc(), Category.name.asc())
        result = await session_execute(stmt, session)
        return [CategoryDTO.model_validate(category, from_attributes=True) for category in result.scalars().all()]

    @staticmethod
    async def get_by_name(name: str, session: AsyncSession | Session) -> CategoryDTO | None:
        stmt = select(Category).where(Category.name == name)
        result = await session_execute(stmt, session)
        category = result.scalar()
        if category is None:
            return None
        return CategoryDTO.model_validate(category, from_attributes=True)

    @staticmethod
    async def create(category_dto: CategoryDTO, session: AsyncSession | Session) -> int:
        category = Category(**category_dto.model_dump(exclude_none=True))
        session.add(category)
        await session_flush(session)
        return category.id

    @staticmethod
    async def delete(category_id: int, session: AsyncSession | Session) -> bool:
        stmt = delete(Category).where(Category.id == category_id)
        result = await session_execute(stmt, session)
        return result.rowcount > 0
