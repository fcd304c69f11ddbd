"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests.

Repository and service tests run the async code against a synchronous
in-memory SQLite Session: the dual-mode helpers in db.py accept both.
"""

import os
import sys
from datetime import datetime

import pytest
import pytest_asyncio

# Set required environment variables before importing app modules
# These are required for config.py to load properly
os.environ.setdefault('RUNTIME_ENVIRONMENT', 'TEST')
os.environ.setdefault('DB_NAME', 'test_storefront.db')
os.environ.setdefault('PAGE_ENTRIES', '8')
os.environ.setdefault('LOG_MASK_SECRETS', 'true')
os.environ.setdefault('SECURITY_HEADERS_ENABLED', 'true')
os.environ.setdefault('HSTS_ENABLED', 'false')
os.environ.setdefault('CORS_ALLOWED_ORIGINS', '')

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

import db  # noqa: F401  (registers models and the foreign key pragma listener)
from models.base import Base

# Fixed reference time; tests move it forward explicitly
NOW = datetime(2026, 1, 15, 12, 0, 0)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """Create in-memory SQLite database."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create database session."""
    session = Session(engine)
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db_path(tmp_path):
    """File database shared by a sync engine (seeding) and async engines (code under test)."""
    path = tmp_path / "storefront_test.db"
    sync_engine = create_engine(f"sqlite:///{path}", echo=False)
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest.fixture
def file_session(db_path):
    """Synchronous session on the file database, for seeding and assertions."""
    sync_engine = create_engine(f"sqlite:///{db_path}", echo=False)
    session = Session(sync_engine)
    yield session
    session.close()
    sync_engine.dispose()


@pytest_asyncio.fixture
async def async_session_maker(db_path):
    """Async sessions on the file database; NullPool gives each session its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        echo=False,
        poolclass=NullPool,
        connect_args={"timeout": 15}
    )
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


# ============================================================================
# Seeding Fixtures
# ============================================================================

@pytest.fixture
def create_product():
    """Factory: product with `cards` fresh available cards (keys KEY-<product>-<n>)."""
    from models.card import Card
    from models.product import Product

    def _create(session: Session, product_id: str = "p1", cards: int = 0, **fields) -> Product:
        fields.setdefault("name", f"Product {product_id}")
        fields.setdefault("price", 10.0)
        product = Product(id=product_id, **fields)
        session.add(product)
        session.flush()
        session.add_all([
            Card(product_id=product_id, card_key=f"KEY-{product_id}-{n}", is_used=False)
            for n in range(1, cards + 1)
        ])
        session.commit()
        return product

    return _create


@pytest.fixture
def add_card():
    """Factory: a single card in an explicit state."""
    from models.card import Card

    def _add(session: Session, product_id: str = "p1", card_key: str = "KEY", **fields) -> int:
        fields.setdefault("is_used", False)
        card = Card(product_id=product_id, card_key=card_key, **fields)
        session.add(card)
        session.commit()
        return card.id

    return _add


@pytest.fixture
def create_order():
    """Factory: order row written directly, bypassing OrderService."""
    from enums.order_status import OrderStatus
    from models.order import Order

    def _create(session: Session, order_id: str, product_id: str = "p1", **fields) -> Order:
        fields.setdefault("product_name", f"Product {product_id}")
        fields.setdefault("amount", 10.0)
        fields.setdefault("quantity", 1)
        fields.setdefault("status", OrderStatus.PENDING)
        fields.setdefault("created_at", NOW)
        order = Order(order_id=order_id, product_id=product_id, **fields)
        session.add(order)
        session.commit()
        return order

    return _create
