"""
Custom exceptions for the storefront.

This module provides a hierarchy of custom exceptions for consistent error handling
throughout the application.

Exception Hierarchy:
--------------------
StorefrontException (base)
├── OrderException
│   ├── OrderNotFoundException
│   ├── OutOfStockException
│   ├── InvalidQuantityException
│   ├── PurchaseLimitExceededException
│   └── InvalidOrderStateException
├── ProductException
│   ├── ProductNotFoundException
│   ├── CardNotFoundException
│   └── CategoryAlreadyExistsException
├── StoreException
│   ├── SchemaDriftException
│   └── StoreUnavailableException
├── UserException
│   ├── UserNotFoundException
│   ├── UserBlockedException
│   └── InvalidPointsException
├── CheckinException
│   ├── CheckinDisabledException
│   └── AlreadyCheckedInException
└── InvalidSettingValueException

Usage:
------
Services raise specific exceptions:
    raise OutOfStockException(product_id, requested=2, available=1)

Routers let the registered exception handler translate them:
    OutOfStockException -> 409 {"error": "sold_out", ...}
"""

from .base import StorefrontException
from .checkin import CheckinException, CheckinDisabledException, AlreadyCheckedInException
from .order import (
    OrderException,
    OrderNotFoundException,
    OutOfStockException,
    InvalidQuantityException,
    PurchaseLimitExceededException,
    InvalidOrderStateException
)
from .product import ProductException, ProductNotFoundException, CardNotFoundException, CategoryAlreadyExistsException
from .settings import InvalidSettingValueException
from .store import StoreException, SchemaDriftException, StoreUnavailableException
from .user import UserException, UserNotFoundException, UserBlockedException, InvalidPointsException

__all__ = [
    # Base
    'StorefrontException',

    # Order
    'OrderException',
    'OrderNotFoundException',
    'OutOfStockException',
    'InvalidQuantityException',
    'PurchaseLimitExceededException',
    'InvalidOrderStateException',

    # Product
    'ProductException',
    'ProductNotFoundException',
    'CardNotFoundException',
    'CategoryAlreadyExistsException',

    # Store
    'StoreException',
    'SchemaDriftException',
    'StoreUnavailableException',

    # User
    'UserException',
    'UserNotFoundException',
    'UserBlockedException',
    'InvalidPointsException',

    # Check-in
    'CheckinException',
    'CheckinDisabledException',
    'AlreadyCheckedInException',

    # Settings
    'InvalidSettingValueException',
]
