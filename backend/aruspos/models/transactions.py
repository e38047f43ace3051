from __future__ import annotations

from ..extensions import db
from aruspos.time_utils import to_utc_z


TRANSACTION_TYPE_SALE = "SALE"
TRANSACTION_TYPE_REFUND = "REFUND"

TRANSACTION_STATUS_PAID = "PAID"
TRANSACTION_STATUS_REFUNDED = "REFUNDED"
TRANSACTION_STATUS_PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


class Transaction(db.Model):
    """
    Checkout record (type SALE) or refund record (type REFUND).

    A SALE is created atomically at checkout and afterwards only mutated by
    a refund (status, line refunded_quantity) or a debt settlement update
    (is_paid, paid_at, evidence image URLs).

    STATUS: PAID -> {REFUNDED, PARTIALLY_REFUNDED}; PARTIALLY_REFUNDED ->
    REFUNDED. Never back to PAID.

    AMOUNTS (cents): amount_cents = subtotal_cents + tax_cents - discount_cents.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_branch_occurred", "branch_id", "occurred_at"),
        db.Index("ix_transactions_branch_payment_method", "branch_id", "payment_method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    # NULL customer_id is an anonymous sale
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=False, default="Anonymous")
    cashier_name = db.Column(db.String(255), nullable=True)

    type = db.Column(db.String(16), nullable=False, default=TRANSACTION_TYPE_SALE, index=True)
    status = db.Column(db.String(24), nullable=False, default=TRANSACTION_STATUS_PAID, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="USD")
    payment_method = db.Column(db.String(64), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Refund records point back at the sale they refund
    original_transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)

    # Debt (credit sale) settlement
    is_paid = db.Column(db.Boolean, nullable=False, default=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    debt_note_image_url = db.Column(db.Text, nullable=True)
    payment_note_image_url = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer")
    original_transaction = db.relationship("Transaction", remote_side=[id], backref=db.backref("refunds", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "cashier_name": self.cashier_name,
            "type": self.type,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "occurred_at": to_utc_z(self.occurred_at),
            "original_transaction_id": self.original_transaction_id,
            "is_paid": self.is_paid,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "debt_note_image_url": self.debt_note_image_url,
            "payment_note_image_url": self.payment_note_image_url,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class TransactionLine(db.Model):
    """
    One product + quantity + price entry of a transaction.

    unit_price_cents is what was charged (promotional, bundle or listed);
    original_price_cents is always the listed price at checkout time.
    refunded_quantity accumulates across partial refunds and never exceeds
    quantity.
    """
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_transaction_lines_quantity_positive"),
        db.CheckConstraint(
            "refunded_quantity >= 0 AND refunded_quantity <= quantity",
            name="ck_transaction_lines_refunded_bounds",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    refunded_quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    original_price_cents = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=True)
    unit = db.Column(db.String(32), nullable=True)

    transaction = db.relationship(
        "Transaction",
        backref=db.backref("lines", lazy=True, cascade="all, delete-orphan", order_by="TransactionLine.id"),
    )

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    @property
    def refundable_quantity(self) -> int:
        return self.quantity - (self.refunded_quantity or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "refunded_quantity": self.refunded_quantity,
            "unit_price_cents": self.unit_price_cents,
            "original_price_cents": self.original_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "unit": self.unit,
            "line_total_cents": self.line_total_cents,
        }
