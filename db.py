from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Callable, TypeVar
import logging

from sqlalchemy import event, Engine, Result, CursorResult
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import Session

from config import DB_NAME
from models.base import Base

"""
Imports of these models are needed to correctly create tables in the database.
For more information see https://stackoverflow.com/questions/7478403/sqlalchemy-classes-across-files
"""
from models.product import Product
from models.card import Card
from models.order import Order
from models.category import Category
from models.login_user import LoginUser
from models.daily_checkin import DailyCheckin
from models.setting import Setting

T = TypeVar("T")

# SQL echo stays off; statements are noisy and may contain card keys
sql_echo = False

data_folder = Path("data")
if data_folder.exists() is False:
    data_folder.mkdir()

url = f"sqlite+aiosqlite:///data/{DB_NAME}"
engine = create_async_engine(url, echo=sql_echo)
session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def get_db_session() -> AsyncSession:
    session = None
    try:
        async with session_maker() as async_session:
            session = async_session
            yield session
    finally:
        if session is not None:
            await session.close()


async def session_execute(stmt, session: AsyncSession | Session) -> Result[Any] | CursorResult[Any]:
    if isinstance(session, AsyncSession):
        query_result = await session.execute(stmt)
        return query_result
    else:
        query_result = session.execute(stmt)
        return query_result


async def session_flush(session: AsyncSession | Session) -> None:
    if isinstance(session, AsyncSession):
        await session.flush()
    else:
        session.flush()


async def session_commit(session: AsyncSession | Session) -> None:
    if isinstance(session, AsyncSession):
        await session.commit()
    else:
        session.commit()


async def session_rollback(session: AsyncSession | Session) -> None:
    if isinstance(session, AsyncSession):
        await session.rollback()
    else:
        session.rollback()


async def session_refresh(session: AsyncSession | Session, instance) -> None:
    if isinstance(session, AsyncSession):
        await session.refresh(instance)
    else:
        session.refresh(instance)


async def session_run_sync(session: AsyncSession | Session, fn: Callable[[Session], T]) -> T:
    """Run a function that needs a synchronous Session (DDL, inspection)."""
    if isinstance(session, AsyncSession):
        return await session.run_sync(fn)
    else:
        return fn(session)


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def create_db_and_tables():
    from repositories.schema import SchemaRepository

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_db_session() as session:
        added = await SchemaRepository.upgrade(session)
        if added:
            logging.info(f"[Startup] Schema upgraded, added columns: {', '.join(added)}")
