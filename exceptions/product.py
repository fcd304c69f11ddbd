"""
Product and stock-unit exceptions.
"""

from .base import StorefrontException


class ProductException(StorefrontException):
    """Base exception for product-related errors."""
    pass


class ProductNotFoundException(ProductException):
    """Raised when a product does not exist or is not on sale."""

    def __init__(self, product_id: str):
        super().__init__(
            f"Product {product_id} not found",
            details={'product_id': product_id}
        )
        self.product_id = product_id


class CardNotFoundException(ProductException):
    """Raised when an unused card cannot be found."""

    def __init__(self, card_id: int):
        super().__init__(
            f"Unused card {card_id} not found",
            details={'card_id': card_id}
        )
        self.card_id = card_id


class CategoryAlreadyExistsException(ProductException):
    """Raised when creating a category whose name is taken."""

    def __init__(self, name: str):
        super().__init__(
            f"Category '{name}' already exists",
            details={'name': name}
        )
        self.name = name
