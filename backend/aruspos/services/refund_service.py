"""
Refund Calculator and refund execution.

The calculator half is pure: build refund items from a sale, clamp the
operator's quantities, total them, and decide the resulting status.

execute_refund applies a refund in one database transaction:
- restores stock for each refunded quantity
- bumps each line's refunded_quantity
- moves the sale to REFUNDED or PARTIALLY_REFUNDED
- records a REFUND transaction pointing at the sale
- takes the refund total off the customer's total_spent_cents

STATE MACHINE:
    PAID               -> REFUNDED | PARTIALLY_REFUNDED
    PARTIALLY_REFUNDED -> PARTIALLY_REFUNDED | REFUNDED
    REFUNDED           -> (terminal, further refunds rejected)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..models import (
    Customer,
    Product,
    Transaction,
    TransactionLine,
    TRANSACTION_TYPE_SALE,
    TRANSACTION_TYPE_REFUND,
    TRANSACTION_STATUS_REFUNDED,
)
from ..statuses import resolve_refund_status as status_from_remaining
from ..validation import ValidationError, parse_int
from .concurrency import lock_for_update, run_with_retry


class RefundError(Exception):
    """Raised for refund operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class RefundNotFoundError(RefundError):
    """The transaction does not exist in this branch."""


@dataclass(frozen=True)
class RefundItem:
    line_id: int | None
    product_id: int | None
    name: str
    unit_price_cents: int
    max_quantity: int
    quantity: int = 0

    @property
    def amount_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def with_quantity(self, requested: int) -> "RefundItem":
        return replace(self, quantity=clamp_refund_quantity(requested, self.max_quantity))

    def to_dict(self) -> dict:
        return {
            "line_id": self.line_id,
            "product_id": self.product_id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "max_quantity": self.max_quantity,
            "quantity": self.quantity,
            "amount_cents": self.amount_cents,
        }


def build_refund_items(transaction) -> list[RefundItem]:
    """One item per line, quantity 0, bounded by what is still refundable."""
    return [
        RefundItem(
            line_id=line.id,
            product_id=line.product_id,
            name=line.name,
            unit_price_cents=line.unit_price_cents,
            max_quantity=max(0, line.quantity - (line.refunded_quantity or 0)),
        )
        for line in transaction.lines
    ]


def clamp_refund_quantity(requested: int, max_quantity: int) -> int:
    return max(0, min(requested, max_quantity))


def total_refund_amount(items: Iterable[RefundItem]) -> int:
    return sum(item.unit_price_cents * item.quantity for item in items if item.quantity > 0)


def resolve_refund_status(lines, refund_quantities) -> str:
    """
    Status of a sale once `refund_quantities` (aligned with `lines`) are
    applied on top of what each line already had refunded.
    """
    remaining = [
        line.quantity - (line.refunded_quantity or 0) - qty
        for line, qty in zip(lines, refund_quantities)
    ]
    return status_from_remaining(remaining)


def parse_refund_quantities(raw) -> dict[int, int]:
    """
    Accept {"items": [{"line_id": .., "quantity": ..}, ...]} style lists.
    Quantities are validated, not clamped: out-of-range input is an error.
    """
    if not isinstance(raw, list) or not raw:
        raise RefundError("No refund items given")

    quantities: dict[int, int] = {}
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise RefundError(f"items[{i}] must be an object")
        try:
            line_id = parse_int(item.get("line_id"), f"items[{i}].line_id", minimum=1)
            quantity = parse_int(item.get("quantity"), f"items[{i}].quantity", minimum=0)
        except ValidationError as e:
            raise RefundError(str(e))
        if line_id in quantities:
            raise RefundError(f"Duplicate line_id {line_id}")
        quantities[line_id] = quantity
    return quantities


def get_sale(business_id: int, branch_id: int, transaction_id: int, *, lock: bool = False) -> Transaction:
    query = db.session.query(Transaction).filter_by(
        id=transaction_id, business_id=business_id, branch_id=branch_id
    )
    if lock:
        query = lock_for_update(query)
    txn = query.first()
    if not txn:
        raise RefundNotFoundError("Transaction not found")
    return txn


def preview_refund(business_id: int, branch_id: int, transaction_id: int) -> dict:
    txn = get_sale(business_id, branch_id, transaction_id)
    items = build_refund_items(txn)
    return {
        "transaction_id": txn.id,
        "status": txn.status,
        "currency": txn.currency,
        "refundable": txn.type == TRANSACTION_TYPE_SALE and txn.status != TRANSACTION_STATUS_REFUNDED,
        "items": [item.to_dict() for item in items],
    }


def execute_refund(
    business_id: int,
    branch_id: int,
    transaction_id: int,
    quantities: dict[int, int],
    *,
    now: datetime,
    cashier_name: str | None = None,
) -> tuple[Transaction, Transaction]:
    """
    Refund `quantities` (line_id -> quantity) of a SALE.

    Returns (sale, refund_record). Raises RefundError without touching
    state when the refund total is zero, the sale is already fully
    refunded, or any quantity falls outside [0, refundable].
    """

    def _op():
        sale = get_sale(business_id, branch_id, transaction_id, lock=True)

        if sale.type != TRANSACTION_TYPE_SALE:
            raise RefundError("Only SALE transactions can be refunded")
        if sale.status == TRANSACTION_STATUS_REFUNDED:
            raise RefundError("Transaction is already fully refunded")

        lines_by_id = {line.id: line for line in sale.lines}
        unknown = sorted(line_id for line_id in quantities if line_id not in lines_by_id)
        if unknown:
            raise RefundError("Line not part of this transaction", details={"line_ids": unknown})

        items = []
        over = []
        for item in build_refund_items(sale):
            requested = quantities.get(item.line_id, 0)
            if requested < 0 or requested > item.max_quantity:
                over.append({
                    "line_id": item.line_id,
                    "requested_quantity": requested,
                    "max_quantity": item.max_quantity,
                })
            items.append(replace(item, quantity=requested))
        if over:
            raise RefundError("Refund quantity out of range", details={"items": over})

        total = total_refund_amount(items)
        if total <= 0:
            raise RefundError("Nothing to refund")

        refunded = [item for item in items if item.quantity > 0]

        product_ids = sorted({item.product_id for item in refunded if item.product_id is not None})
        products = {}
        if product_ids:
            products = {
                p.id: p
                for p in lock_for_update(
                    db.session.query(Product).filter(
                        Product.id.in_(product_ids), Product.branch_id == branch_id
                    ).order_by(Product.id)
                ).all()
            }

        new_status = resolve_refund_status(sale.lines, [quantities.get(line.id, 0) for line in sale.lines])

        refund = Transaction(
            business_id=business_id,
            branch_id=branch_id,
            customer_id=sale.customer_id,
            customer_name=sale.customer_name,
            cashier_name=(cashier_name or "").strip() or None,
            type=TRANSACTION_TYPE_REFUND,
            status=TRANSACTION_STATUS_REFUNDED,
            subtotal_cents=total,
            tax_cents=0,
            discount_cents=0,
            amount_cents=total,
            currency=sale.currency,
            payment_method=sale.payment_method,
            occurred_at=now,
            original_transaction_id=sale.id,
            is_paid=True,
            paid_at=now,
        )

        for item in refunded:
            line = lines_by_id[item.line_id]
            line.refunded_quantity = (line.refunded_quantity or 0) + item.quantity

            product = products.get(item.product_id)
            if product is not None:
                product.stock += item.quantity

            refund.lines.append(TransactionLine(
                product_id=line.product_id,
                name=line.name,
                quantity=item.quantity,
                refunded_quantity=0,
                unit_price_cents=line.unit_price_cents,
                original_price_cents=line.original_price_cents,
                purchase_price_cents=line.purchase_price_cents,
                unit=line.unit,
            ))

        if sale.customer_id is not None:
            customer = lock_for_update(
                db.session.query(Customer).filter_by(id=sale.customer_id, business_id=business_id)
            ).first()
            if customer is not None:
                customer.total_spent_cents = max(0, (customer.total_spent_cents or 0) - total)

        sale.status = new_status
        db.session.add(refund)
        db.session.commit()
        return sale, refund

    sale, refund = run_with_retry(_op)
    current_app.logger.info(
        "Refund %s of transaction %s: amount_cents=%d status=%s",
        refund.id, sale.id, refund.amount_cents, sale.status,
    )
    return sale, refund
