"""
Shop settings exceptions.
"""

from .base import StorefrontException


class InvalidSettingValueException(StorefrontException):
    """Raised when a shop setting fails validation."""

    def __init__(self, key: str, value, reason: str):
        super().__init__(
            f"Invalid value for setting '{key}': {reason}",
            details={'key': key, 'value': value, 'reason': reason}
        )
        self.key = key
        self.value = value
        self.reason = reason
