"""
Models Package

This file ensures all SQLAlchemy models are imported and registered,
which is required for relationships to work correctly.
"""

from models.base import Base
from models.product import Product
from models.card import Card
from models.order import Order
from models.category import Category
from models.login_user import LoginUser
from models.daily_checkin import DailyCheckin
from models.setting import Setting

__all__ = [
    'Base',
    'Product',
    'Card',
    'Order',
    'Category',
    'LoginUser',
    'DailyCheckin',
    'Setting',
]
