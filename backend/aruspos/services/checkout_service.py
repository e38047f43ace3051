"""
Checkout: turns a priced cart into a persisted SALE transaction.

Consumes the Pricing Engine. Everything that writes happens in ONE
database transaction:

1. Lock the cart's products (row locks; version_id catches lost updates
   where the database ignores FOR UPDATE)
2. Validate stock, discount, payment method and customer
3. Decrement stock
4. Insert the Transaction (type SALE, status PAID) and its lines
5. Add the total to the customer's total_spent_cents

Any failure rolls the whole unit back, so callers never observe a
decremented stock without its transaction or vice versa. Conflicts from
concurrent checkouts on the same product are retried by run_with_retry.

Stock is never clamped here: a cart asking for more than is on hand is
rejected. Clamping is an input-time concern (see clamp_cart_quantity).
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import (
    Customer,
    Product,
    Promotion,
    Transaction,
    TransactionLine,
    TRANSACTION_TYPE_SALE,
    TRANSACTION_STATUS_PAID,
)
from ..validation import ValidationError, parse_int
from .concurrency import lock_for_update, run_with_retry
from .pricing_service import build_line_items, calculate_totals
from .settings_service import BusinessSettings


ANONYMOUS_CUSTOMER_NAME = "Anonymous"


class CheckoutError(Exception):
    """Raised when a cart cannot be checked out."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def normalize_cart_items(items) -> list[tuple[int, int]]:
    """
    Validate raw cart items [{"product_id", "quantity"}, ...].

    Repeated products are merged into one line (quantities summed) so stock
    and bundle tiers see the real quantity. First-seen order is kept.
    """
    if not isinstance(items, list) or not items:
        raise CheckoutError("Cart is empty")

    quantities: dict[int, int] = {}
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise CheckoutError(f"items[{i}] must be an object")
        try:
            product_id = parse_int(item.get("product_id"), f"items[{i}].product_id", minimum=1)
            quantity = parse_int(item.get("quantity"), f"items[{i}].quantity", minimum=1)
        except ValidationError as e:
            raise CheckoutError(str(e))
        quantities[product_id] = quantities.get(product_id, 0) + quantity

    return list(quantities.items())


def load_branch_promotions(branch_id: int) -> list[Promotion]:
    return (
        db.session.query(Promotion)
        .filter_by(branch_id=branch_id)
        .order_by(Promotion.id)
        .all()
    )


def _load_cart_products(business_id: int, branch_id: int, cart: list[tuple[int, int]], *, lock: bool):
    product_ids = [product_id for product_id, _ in cart]
    query = db.session.query(Product).filter(
        Product.id.in_(product_ids),
        Product.business_id == business_id,
        Product.branch_id == branch_id,
    ).order_by(Product.id)
    if lock:
        query = lock_for_update(query)
    products = {p.id: p for p in query.all()}

    missing = [pid for pid in product_ids if pid not in products]
    if missing:
        raise CheckoutError("Product not found", details={"product_ids": missing})

    return [(products[product_id], quantity) for product_id, quantity in cart]


def _validate_stock(priced_cart) -> None:
    insufficient = []
    for product, quantity in priced_cart:
        if product.stock < quantity:
            insufficient.append({
                "product_id": product.id,
                "name": product.name,
                "requested_quantity": quantity,
                "stock": product.stock,
            })
    if insufficient:
        raise CheckoutError("Insufficient stock", details={"items": insufficient})


def _validate_payment_method(payment_method, settings: BusinessSettings) -> str | None:
    if payment_method is not None and not isinstance(payment_method, str):
        raise CheckoutError("payment_method must be a string")
    payment_method = (payment_method or "").strip() or None

    if settings.payment_options:
        if payment_method is None:
            raise CheckoutError("payment_method is required")
        if payment_method not in settings.payment_options:
            raise CheckoutError(
                "Unsupported payment method",
                details={"payment_method": payment_method, "allowed": list(settings.payment_options)},
            )
    return payment_method


def _resolve_customer(business_id: int, customer_id) -> Customer | None:
    if customer_id is None:
        return None
    try:
        customer_id = parse_int(customer_id, "customer_id", minimum=1)
    except ValidationError as e:
        raise CheckoutError(str(e))
    customer = db.session.query(Customer).filter_by(id=customer_id, business_id=business_id).first()
    if not customer:
        raise CheckoutError("Customer not found")
    return customer


def quote_cart(business_id: int, branch_id: int, items, *, settings: BusinessSettings,
               now: datetime, discount_cents=0) -> dict:
    """
    Price a cart without persisting or reserving anything.

    Unlike checkout, insufficient stock is reported per line rather than
    rejected, so a cart screen can show it.
    """
    cart = normalize_cart_items(items)
    try:
        discount = parse_int(discount_cents or 0, "discount_cents", minimum=0)
    except ValidationError as e:
        raise CheckoutError(str(e))

    priced_cart = _load_cart_products(business_id, branch_id, cart, lock=False)
    lines = build_line_items(priced_cart, load_branch_promotions(branch_id), now)
    totals = calculate_totals(lines, settings, discount)

    line_dicts = []
    for line, (product, quantity) in zip(lines, priced_cart):
        data = line.to_dict()
        data["stock"] = product.stock
        data["in_stock"] = product.stock >= quantity
        line_dicts.append(data)

    return {
        "lines": line_dicts,
        "totals": totals.to_dict(),
        "currency": settings.currency,
        "discount_exceeds_subtotal": discount > totals.subtotal_cents,
    }


def checkout(
    business_id: int,
    branch_id: int,
    items,
    *,
    settings: BusinessSettings,
    now: datetime,
    customer_id=None,
    discount_cents=0,
    payment_method: str | None = None,
    cashier_name: str | None = None,
) -> Transaction:
    """
    Atomically persist a SALE for `items` priced at `now`.

    Raises CheckoutError (with details where useful) on any rule violation;
    nothing is written in that case.
    """
    cart = normalize_cart_items(items)
    try:
        discount = parse_int(discount_cents or 0, "discount_cents", minimum=0)
    except ValidationError as e:
        raise CheckoutError(str(e))
    payment_method = _validate_payment_method(payment_method, settings)

    def _op():
        customer = _resolve_customer(business_id, customer_id)
        priced_cart = _load_cart_products(business_id, branch_id, cart, lock=True)
        _validate_stock(priced_cart)

        lines = build_line_items(priced_cart, load_branch_promotions(branch_id), now)
        totals = calculate_totals(lines, settings, discount)

        if totals.discount_cents > totals.subtotal_cents:
            raise CheckoutError(
                "Discount cannot exceed subtotal",
                details={"discount_cents": totals.discount_cents, "subtotal_cents": totals.subtotal_cents},
            )

        for product, quantity in priced_cart:
            product.stock -= quantity

        is_debt = settings.is_debt_method(payment_method)
        txn = Transaction(
            business_id=business_id,
            branch_id=branch_id,
            customer_id=customer.id if customer else None,
            customer_name=customer.name if customer else ANONYMOUS_CUSTOMER_NAME,
            cashier_name=(cashier_name or "").strip() or None,
            type=TRANSACTION_TYPE_SALE,
            status=TRANSACTION_STATUS_PAID,
            subtotal_cents=totals.subtotal_cents,
            tax_cents=totals.tax_cents,
            discount_cents=totals.discount_cents,
            amount_cents=totals.total_cents,
            currency=settings.currency,
            payment_method=payment_method,
            occurred_at=now,
            is_paid=not is_debt,
            paid_at=None if is_debt else now,
        )
        for line in lines:
            txn.lines.append(TransactionLine(
                product_id=line.product_id,
                name=line.name,
                quantity=line.quantity,
                refunded_quantity=0,
                unit_price_cents=line.unit_price_cents,
                original_price_cents=line.original_price_cents,
                purchase_price_cents=line.purchase_price_cents,
                unit=line.unit,
            ))
        db.session.add(txn)

        if customer is not None:
            customer.total_spent_cents = (customer.total_spent_cents or 0) + totals.total_cents

        db.session.commit()
        return txn

    txn = run_with_retry(_op)
    current_app.logger.info(
        "Checkout %s: branch=%s lines=%d total_cents=%d payment=%s",
        txn.id, branch_id, len(txn.lines), txn.amount_cents, txn.payment_method,
    )
    return txn
