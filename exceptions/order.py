"""
Order and stock reservation exceptions.
"""

from .base import StorefrontException


class OrderException(StorefrontException):
    """Base exception for order-related errors."""
    pass


class OrderNotFoundException(OrderException):
    """Raised when order is not found in database."""

    def __init__(self, order_id: str):
        super().__init__(
            f"Order {order_id} not found",
            details={'order_id': order_id}
        )
        self.order_id = order_id


class OutOfStockException(OrderException):
    """
    Raised when fewer cards are available than requested.

    This is a normal rejection ("sold out"), not a system fault.
    """

    def __init__(self, product_id: str, requested: int, available: int):
        super().__init__(
            f"Out of stock for product {product_id}: requested {requested}, available {available}",
            details={'product_id': product_id, 'requested': requested, 'available': available}
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidQuantityException(OrderException):
    """Raised when an order asks for a non-positive quantity."""

    def __init__(self, quantity: int):
        super().__init__(
            f"Quantity must be at least 1 (got {quantity})",
            details={'quantity': quantity}
        )
        self.quantity = quantity


class PurchaseLimitExceededException(OrderException):
    """Raised when the requested quantity exceeds the product's per-order limit."""

    def __init__(self, product_id: str, requested: int, limit: int):
        super().__init__(
            f"Product {product_id} allows at most {limit} per order (requested {requested})",
            details={'product_id': product_id, 'requested': requested, 'limit': limit}
        )
        self.product_id = product_id
        self.requested = requested
        self.limit = limit


class InvalidOrderStateException(OrderException):
    """Raised when order is in invalid state for requested operation."""

    def __init__(self, order_id: str, current_state: str, required_state: str):
        super().__init__(
            f"Order {order_id} is in state '{current_state}', required '{required_state}'",
            details={'order_id': order_id, 'current_state': current_state, 'required_state': required_state}
        )
        self.order_id = order_id
        self.current_state = current_state
        self.required_state = required_state
