"""
Root of the storefront's domain errors.

Services raise these instead of returning error flags. The web layer never
inspects them itself: utils/error_handler.py looks up the HTTP status and
error code by exception type and sends `message` and `details` back as the
JSON body, so `details` must stay JSON-serializable (ids, counts, states).
"""


class StorefrontException(Exception):
    """
    Base class for every error a storefront operation can report to a client.

    Attributes:
        message: Text shown to the client as "message"
        details: Structured context shown to the client as "details",
                 e.g. {"product_id": "p1", "requested": 2, "available": 1}
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        # Copied so a caller reusing its dict cannot change an already raised error
        self.details = dict(details) if details else {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if not self.details:
            return f"{type(self).__name__}({self.message!r})"
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"
