"""
Debt/Settlement Tracker for credit ("Utang") sales.

A SALE whose payment method equals the business's debt method is a debt.
It starts unpaid at checkout and is settled by a partial update that may
also attach evidence images (debt note, payment note) by URL.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Transaction, TRANSACTION_TYPE_SALE
from ..statuses import debt_status_label
from .concurrency import lock_for_update, run_with_retry
from .settings_service import BusinessSettings


DEBT_UPDATABLE_FIELDS = ("is_paid", "debt_note_image_url", "payment_note_image_url")


class DebtError(Exception):
    """Raised for debt update errors."""
    pass


class DebtNotFoundError(DebtError):
    """The transaction is missing or is not a debt transaction."""


def debt_to_dict(txn: Transaction) -> dict:
    data = txn.to_dict()
    data["debt_status"] = debt_status_label(txn.is_paid)
    return data


def _debt_query(business_id: int, branch_id: int, settings: BusinessSettings):
    return db.session.query(Transaction).filter_by(
        business_id=business_id,
        branch_id=branch_id,
        type=TRANSACTION_TYPE_SALE,
        payment_method=settings.debt_method,
    )


def list_debt_transactions(
    business_id: int,
    branch_id: int,
    *,
    settings: BusinessSettings,
    is_paid: bool | None = None,
) -> list[dict]:
    """Debt sales of a branch, newest first, each with its status label."""
    query = _debt_query(business_id, branch_id, settings)
    if is_paid is not None:
        query = query.filter_by(is_paid=is_paid)
    rows = query.order_by(Transaction.occurred_at.desc(), Transaction.id.desc()).all()
    return [debt_to_dict(txn) for txn in rows]


def _clean_url(value, field: str):
    if value is None:
        return None
    if not isinstance(value, str):
        raise DebtError(f"{field} must be a string")
    return value.strip() or None


def update_debt_transaction(
    business_id: int,
    branch_id: int,
    transaction_id: int,
    patch: dict,
    *,
    settings: BusinessSettings,
    now: datetime,
    require_payment_evidence: bool = False,
) -> Transaction:
    """
    Apply {is_paid?, debt_note_image_url?, payment_note_image_url?}.

    is_paid=True stamps paid_at with `now`; is_paid=False clears it. With
    require_payment_evidence, marking paid needs a payment note image
    (already stored or in the same patch).
    """
    if not isinstance(patch, dict):
        raise DebtError("Invalid JSON payload")
    unknown = sorted(k for k in patch if k not in DEBT_UPDATABLE_FIELDS)
    if unknown:
        raise DebtError(f"Field not allowed: {', '.join(unknown)}")
    if not patch:
        raise DebtError("Nothing to update")
    if "is_paid" in patch and not isinstance(patch["is_paid"], bool):
        raise DebtError("is_paid must be true or false")

    cleaned = {k: v for k, v in patch.items() if k != "is_paid"}
    for field in cleaned:
        cleaned[field] = _clean_url(cleaned[field], field)

    def _op():
        txn = lock_for_update(
            _debt_query(business_id, branch_id, settings).filter(Transaction.id == transaction_id)
        ).first()
        if not txn:
            raise DebtNotFoundError("Debt transaction not found")

        for field, value in cleaned.items():
            setattr(txn, field, value)

        if "is_paid" in patch:
            if patch["is_paid"]:
                if require_payment_evidence and not txn.payment_note_image_url:
                    raise DebtError("A payment note image is required before marking a debt as paid")
                if not txn.is_paid:
                    txn.paid_at = now
                txn.is_paid = True
            else:
                txn.is_paid = False
                txn.paid_at = None

        db.session.commit()
        return txn

    txn = run_with_retry(_op)
    if patch.get("is_paid") is True:
        current_app.logger.info("Debt transaction %s settled (amount_cents=%d)", txn.id, txn.amount_cents)
    return txn
