import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit
from exceptions.product import CategoryAlreadyExistsException
from models.category import CategoryDTO
from repositories.category import CategoryRepository


class CategoryService:

    @staticmethod
    async def get_all(session: AsyncSession | Session) -> list[CategoryDTO]:
        return await CategoryRepository.get_all(session)

    @staticmethod
    async def create(category_dto: CategoryDTO, session: AsyncSession | Session) -> CategoryDTO:
        category_dto.name = category_dto.name.strip()
        if await CategoryRepository.get_by_name(category_dto.name, session) is not None:
            raise CategoryAlreadyExistsException(category_dto.name)
        category_dto.id = await CategoryRepository.create(category_dto, session)
        await session_commit(session)
        logging.info(f"Category '{category_dto.name}' created")
        return category_dto

    @staticmethod
    async def delete(category_id: int, session: AsyncSession | Session) -> bool:
        deleted = await CategoryRepository.delete(category_id, session)
        await session_commit(session)
        return deleted
