"""
Reservation freshness window.

A reservation (card.reserved_at) or a pending order (order.created_at) is
honoured while it is younger than the window. Both the stock aggregator and
the expiry reconciler derive their cutoff from here so they cannot disagree.

Every function takes ``now`` explicitly; callers pass ``None`` to use the
wall clock and tests pass a fixed datetime.
"""

from datetime import datetime, timedelta

import config

RESERVATION_WINDOW = timedelta(minutes=config.RESERVATION_WINDOW_MINUTES)


def current_time(now: datetime | None = None) -> datetime:
    return now if now is not None else datetime.now()


def reservation_cutoff(now: datetime | None = None) -> datetime:
    """Oldest reserved_at / created_at that is still fresh."""
    return current_time(now) - RESERVATION_WINDOW


def is_reservation_fresh(reserved_at: datetime | None, now: datetime | None = None) -> bool:
    if reserved_at is None:
        return False
    return reserved_at >= reservation_cutoff(now)


def is_order_expired(created_at: datetime, now: datetime | None = None) -> bool:
    return created_at < reservation_cutoff(now)
