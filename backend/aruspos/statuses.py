"""
Derived statuses: promotion windows, debt settlement badges, refund outcome.

Everything here is a pure function of its arguments. The current instant is
always passed in by the caller so results are reproducible.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from .models.transactions import (
    TRANSACTION_STATUS_PARTIALLY_REFUNDED,
    TRANSACTION_STATUS_REFUNDED,
)


PROMOTION_STATUS_SCHEDULED = "SCHEDULED"
PROMOTION_STATUS_ACTIVE = "ACTIVE"
PROMOTION_STATUS_EXPIRED = "EXPIRED"

DEBT_STATUS_PAID = "Lunas"
DEBT_STATUS_UNPAID = "Belum Lunas"


def derive_promotion_status(now: datetime, start: datetime, end: datetime) -> str:
    """Status of the half-open window [start, end) at `now`."""
    if now < start:
        return PROMOTION_STATUS_SCHEDULED
    if now >= end:
        return PROMOTION_STATUS_EXPIRED
    return PROMOTION_STATUS_ACTIVE


def is_promotion_active(now: datetime, start: datetime, end: datetime) -> bool:
    return derive_promotion_status(now, start, end) == PROMOTION_STATUS_ACTIVE


def debt_status_label(is_paid: bool) -> str:
    return DEBT_STATUS_PAID if is_paid else DEBT_STATUS_UNPAID


def resolve_refund_status(remaining_quantities: Iterable[int]) -> str:
    """
    Status of a sale after a refund, given each line's quantity still
    unrefunded once the refund is applied.
    """
    if all(remaining <= 0 for remaining in remaining_quantities):
        return TRANSACTION_STATUS_REFUNDED
    return TRANSACTION_STATUS_PARTIALLY_REFUNDED
