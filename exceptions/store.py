"""
Storage-layer exceptions.
"""

from .base import StorefrontException


class StoreException(StorefrontException):
    """Base exception for storage errors."""
    pass


class SchemaDriftException(StoreException):
    """Raised when a table or column is still missing after one self-heal attempt."""

    def __init__(self, reason: str):
        super().__init__(
            f"Database schema is out of date: {reason}",
            details={'reason': reason}
        )
        self.reason = reason


class StoreUnavailableException(StoreException):
    """Raised when the database cannot be reached."""

    def __init__(self, reason: str):
        super().__init__(
            f"Database unavailable: {reason}",
            details={'reason': reason}
        )
        self.reason = reason
