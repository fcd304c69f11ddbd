"""
Customer-related exceptions.
"""

from .base import StorefrontException


class UserException(StorefrontException):
    """Base exception for customer-related errors."""
    pass


class UserNotFoundException(UserException):
    """Raised when a customer has never logged in."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User {user_id} not found",
            details={'user_id': user_id}
        )
        self.user_id = user_id


class UserBlockedException(UserException):
    """Raised when a blocked customer tries to order or check in."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User {user_id} is blocked",
            details={'user_id': user_id}
        )
        self.user_id = user_id


class InvalidPointsException(UserException):
    """Raised when an admin sets a negative points balance."""

    def __init__(self, user_id: str, points: int):
        super().__init__(
            f"Points of user {user_id} cannot be set to {points}",
            details={'user_id': user_id, 'points': points}
        )
        self.user_id = user_id
        self.points = points
