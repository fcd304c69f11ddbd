"""
Daily check-in exceptions.
"""

from .base import StorefrontException


class CheckinException(StorefrontException):
    """Base exception for check-in errors."""
    pass


class CheckinDisabledException(CheckinException):
    """Raised when check-ins are switched off in shop settings."""

    def __init__(self):
        super().__init__("Daily check-in is disabled")


class AlreadyCheckedInException(CheckinException):
    """Raised when the user already checked in today."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User {user_id} already checked in today",
            details={'user_id': user_id}
        )
        self.user_id = user_id
