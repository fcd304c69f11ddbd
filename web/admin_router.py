"""
Admin API router.

Catalog and stock management, order operations, dashboard, shop settings
and customers. Authentication is handled in front of this service.
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from models.card import CardDTO
from models.category import CategoryDTO
from models.dashboard import DashboardStatsDTO
from models.login_user import CustomerPageDTO, LoginUserDTO
from models.order import OrderDTO
from models.product import ProductDTO, ProductStockDTO
from models.setting import ShopSettingsDTO
from services.category import CategoryService
from services.customer import CustomerService
from services.dashboard import DashboardService
from services.order import OrderService
from services.order_expiry import OrderExpiryService
from services.product import ProductService
from services.settings import ShopSettingsService
from web.dependencies import get_session

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


class ProductPayload(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    price: float | None = Field(None, ge=0)
    compare_at_price: float | None = Field(None, ge=0)
    category: str | None = None
    image: str | None = None
    is_hot: bool | None = None
    is_active: bool | None = None
    sort_order: int | None = None
    purchase_limit: int | None = Field(None, ge=1)
    purchase_warning: str | None = None


class CreateProductPayload(ProductPayload):
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)


class StockPayload(BaseModel):
    card_keys: list[str] = Field(default_factory=list)
    text: str | None = Field(None, description="Newline separated card keys")


class CategoryPayload(BaseModel):
    name: str = Field(..., min_length=1)
    icon: str | None = None
    sort_order: int = 0


class ExpirePayload(BaseModel):
    product_id: str | None = None
    user_id: str | None = None
    order_id: str | None = None


class PaymentPayload(BaseModel):
    trade_no: str | None = None


class PointsPayload(BaseModel):
    points: int


class DashboardResponse(BaseModel):
    stats: DashboardStatsDTO
    recent_orders: list[OrderDTO]


# Products & stock

@admin_router.get("/products", response_model=list[ProductStockDTO])
async def get_products(session: AsyncSession = Depends(get_session)):
    return await ProductService.get_admin_products(session)


@admin_router.post("/products", response_model=ProductDTO, status_code=status.HTTP_201_CREATED)
async def create_product(payload: CreateProductPayload, session: AsyncSession = Depends(get_session)):
    return await ProductService.create_product(ProductDTO(**payload.model_dump(exclude_unset=True)), session)


@admin_router.patch("/products/{product_id}", response_model=ProductDTO)
async def update_product(product_id: str, payload: ProductPayload, session: AsyncSession = Depends(get_session)):
    return await ProductService.update_product(
        product_id, ProductDTO(**payload.model_dump(exclude_unset=True)), session
    )


@admin_router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: str, session: AsyncSession = Depends(get_session)):
    await ProductService.delete_product(product_id, session)


@admin_router.get("/products/{product_id}/cards", response_model=list[CardDTO])
async def get_cards(product_id: str, session: AsyncSession = Depends(get_session)):
    return await ProductService.get_cards(product_id, session)


@admin_router.post("/products/{product_id}/cards")
async def add_stock(product_id: str, payload: StockPayload, session: AsyncSession = Depends(get_session)):
    card_keys = list(payload.card_keys)
    if payload.text:
        card_keys.extend(payload.text.splitlines())
    added = await ProductService.add_stock(product_id, card_keys, session)
    return {"added": added}


@admin_router.delete("/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(card_id: int, session: AsyncSession = Depends(get_session)):
    await ProductService.delete_card(card_id, session)


# Categories

@admin_router.get("/categories", response_model=list[CategoryDTO])
async def get_categories(session: AsyncSession = Depends(get_session)):
    return await CategoryService.get_all(session)


@admin_router.post("/categories", response_model=CategoryDTO, status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryPayload, session: AsyncSession = Depends(get_session)):
    return await CategoryService.create(CategoryDTO(**payload.model_dump()), session)


@admin_router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: int, session: AsyncSession = Depends(get_session)):
    await CategoryService.delete(category_id, session)


# Orders

@admin_router.post("/orders/expire")
async def expire_orders(payload: ExpirePayload, session: AsyncSession = Depends(get_session)):
    cancelled = await OrderExpiryService.cancel_expired_orders(
        session, product_id=payload.product_id, user_id=payload.user_id, order_id=payload.order_id
    )
    return {"cancelled": cancelled}


@admin_router.post("/orders/{order_id}/pay", response_model=OrderDTO)
async def complete_payment(order_id: str, payload: PaymentPayload, session: AsyncSession = Depends(get_session)):
    return await OrderService.complete_order_payment(order_id, payload.trade_no, session)


@admin_router.post("/orders/{order_id}/deliver", response_model=OrderDTO)
async def deliver_order(order_id: str, session: AsyncSession = Depends(get_session)):
    return await OrderService.deliver_order(order_id, session)


@admin_router.post("/orders/{order_id}/cancel", response_model=OrderDTO)
async def cancel_order(order_id: str, session: AsyncSession = Depends(get_session)):
    return await OrderService.cancel_order(order_id, session)


@admin_router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    recent: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_session)
):
    stats = await DashboardService.get_stats(session)
    recent_orders = await DashboardService.get_recent_orders(session, limit=recent)
    return DashboardResponse(stats=stats, recent_orders=recent_orders)


# Settings

@admin_router.get("/settings", response_model=ShopSettingsDTO)
async def get_settings(session: AsyncSession = Depends(get_session)):
    return await ShopSettingsService.get_shop_settings(session)


@admin_router.put("/settings", response_model=ShopSettingsDTO)
async def save_settings(payload: dict, session: AsyncSession = Depends(get_session)):
    return await ShopSettingsService.save_shop_settings(payload, session)


# Customers

@admin_router.get("/users", response_model=CustomerPageDTO)
async def get_users(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1, le=100),
    q: str | None = None,
    session: AsyncSession = Depends(get_session)
):
    return await CustomerService.get_users(session, page=page, page_size=page_size, query=q)


@admin_router.put("/users/{user_id}/points", response_model=LoginUserDTO)
async def update_points(user_id: str, payload: PointsPayload, session: AsyncSession = Depends(get_session)):
    return await CustomerService.update_points(user_id, payload.points, session)


@admin_router.post("/users/{user_id}/block", response_model=LoginUserDTO)
async def block_user(user_id: str, session: AsyncSession = Depends(get_session)):
    return await CustomerService.set_blocked(user_id, True, session)


@admin_router.post("/users/{user_id}/unblock", response_model=LoginUserDTO)
async def unblock_user(user_id: str, session: AsyncSession = Depends(get_session)):
    return await CustomerService.set_blocked(user_id, False, session)


@admin_router.get("/visitors")
async def get_visitor_count(session: AsyncSession = Depends(get_session)):
    return {"count": await CustomerService.get_visitor_count(session)}
