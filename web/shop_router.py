"""
Shop API router.

Customer-facing endpoints: catalog, stock, orders and daily check-in.
Domain errors are turned into JSON responses by utils.error_handler
(e.g. OutOfStockException -> 409 {"error": "sold_out"}).
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

import config
from enums.product_sort import ProductSort
from models.card import StockCountsDTO
from models.category import CategoryDTO
from models.daily_checkin import CheckinResultDTO, CheckinStatusDTO
from models.login_user import LoginUserDTO
from models.order import OrderDTO
from models.product import ProductStockDTO
from models.setting import ShopSettingsDTO
from services.category import CategoryService
from services.checkin import CheckinService
from services.customer import CustomerService
from services.order import OrderService
from services.product import ProductService
from services.settings import ShopSettingsService
from services.stock import StockService
from web.dependencies import get_session

logger = logging.getLogger(__name__)

shop_router = APIRouter(prefix="/api", tags=["shop"])


class CreateOrderPayload(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=64)
    quantity: int = Field(1, description="Number of cards")
    user_id: str | None = Field(None, max_length=64)
    username: str | None = None
    email: str | None = None


class LoginPayload(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    username: str | None = None


class CheckinPayload(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)


class ProductPage(BaseModel):
    items: list[ProductStockDTO]
    total: int
    page: int
    page_size: int


@shop_router.get("/products", response_model=ProductPage)
async def search_products(
    q: str | None = None,
    category: str | None = None,
    sort: ProductSort = ProductSort.DEFAULT,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1, le=100),
    session: AsyncSession = Depends(get_session)
):
    items, total = await ProductService.search_products(
        session, query=q, category=category, sort=sort, page=page, page_size=page_size
    )
    return ProductPage(items=items, total=total, page=page, page_size=page_size or config.PAGE_ENTRIES)


@shop_router.get("/products/{product_id}", response_model=ProductStockDTO)
async def get_product(product_id: str, session: AsyncSession = Depends(get_session)):
    return await ProductService.get_product(product_id, session)


@shop_router.get("/products/{product_id}/stock", response_model=StockCountsDTO)
async def get_stock(product_id: str, session: AsyncSession = Depends(get_session)):
    return await StockService.get_stock_counts(product_id, session)


@shop_router.get("/categories", response_model=list[CategoryDTO])
async def get_categories(session: AsyncSession = Depends(get_session)):
    return await CategoryService.get_all(session)


@shop_router.get("/settings", response_model=ShopSettingsDTO)
async def get_shop_settings(session: AsyncSession = Depends(get_session)):
    return await ShopSettingsService.get_shop_settings(session)


@shop_router.post("/orders", response_model=OrderDTO, status_code=status.HTTP_201_CREATED)
async def create_order(payload: CreateOrderPayload, session: AsyncSession = Depends(get_session)):
    return await OrderService.create_order(
        payload.product_id,
        payload.quantity,
        session,
        user_id=payload.user_id,
        username=payload.username,
        email=payload.email
    )


@shop_router.get("/orders/{order_id}", response_model=OrderDTO)
async def get_order(order_id: str, session: AsyncSession = Depends(get_session)):
    return await OrderService.get_order(order_id, session)


@shop_router.post("/orders/{order_id}/cancel", response_model=OrderDTO)
async def cancel_order(order_id: str, session: AsyncSession = Depends(get_session)):
    return await OrderService.cancel_order(order_id, session)


@shop_router.get("/users/{user_id}/orders/pending", response_model=list[OrderDTO])
async def get_pending_orders(user_id: str, session: AsyncSession = Depends(get_session)):
    return await OrderService.get_user_pending_orders(user_id, session)


@shop_router.post("/login", response_model=LoginUserDTO)
async def record_login(payload: LoginPayload, session: AsyncSession = Depends(get_session)):
    return await CustomerService.record_login(payload.user_id, payload.username, session)


@shop_router.post("/checkin", response_model=CheckinResultDTO)
async def check_in(payload: CheckinPayload, session: AsyncSession = Depends(get_session)):
    return await CheckinService.check_in(payload.user_id, session)


@shop_router.get("/checkin/{user_id}", response_model=CheckinStatusDTO)
async def get_checkin_status(user_id: str, session: AsyncSession = Depends(get_session)):
    return await CheckinService.get_status(user_id, session)
