from enum import Enum


class OrderStatus(Enum):
    PENDING = "pending"        # Created, cards reserved for the reservation window
    PAID = "paid"              # Payment confirmed, awaiting delivery
    DELIVERED = "delivered"    # Card keys handed out (cards sold)
    CANCELLED = "cancelled"    # Cancelled explicitly or expired
    FAILED = "failed"          # Could not be fulfilled (sold out)
    REFUNDED = "refunded"      # Refunded after delivery
