from pydantic import BaseModel
from sqlalchemy import Integer, Column, String, DateTime, func

from models.base import Base


class Category(Base):
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    icon = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class CategoryDTO(BaseModel):
    id: int | None = None
    name: str | None = None
    icon: str | None = None
    sort_order: int | None = None
