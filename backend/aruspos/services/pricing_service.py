"""
Pricing Engine: line prices and cart totals.

Pure calculations only. Nothing here reads the database, the request or
the clock: products, promotions, business settings and the current
instant are all passed in by the caller. Persistence and stock decrement
belong to checkout_service.

PRICE PRECEDENCE (per line):
1. Active promotion for the product at `now` (lowest promo price if
   several overlap)
2. Bundle tier with the largest quantity not exceeding the line quantity
3. Listed price

original_price_cents is always the listed price so receipts can show the
struck-through amount.

TOTALS:
    subtotal = sum(unit_price * quantity)
    tax      = subtotal * rate, rounded half-up to the cent (0 if disabled)
    total    = subtotal + tax - discount

Tax is computed on the subtotal before the discount is taken off. The
discount is clamped to >= 0 but not to the subtotal here; checkout rejects
discounts above the subtotal before calling in.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence

from ..statuses import is_promotion_active
from .settings_service import BusinessSettings


PRICE_SOURCE_PROMOTION = "PROMOTION"
PRICE_SOURCE_BUNDLE = "BUNDLE"
PRICE_SOURCE_LIST = "LIST"


@dataclass(frozen=True)
class CartLine:
    product_id: int | None
    name: str
    quantity: int
    unit_price_cents: int
    original_price_cents: int
    purchase_price_cents: int | None = None
    unit: str | None = None
    price_source: str = PRICE_SOURCE_LIST
    promotion_id: int | None = None

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    @property
    def has_promo(self) -> bool:
        return self.price_source == PRICE_SOURCE_PROMOTION

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "original_price_cents": self.original_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "unit": self.unit,
            "price_source": self.price_source,
            "promotion_id": self.promotion_id,
            "line_total_cents": self.line_total_cents,
        }


@dataclass(frozen=True)
class CartTotals:
    subtotal_cents: int
    tax_cents: int
    discount_cents: int
    total_cents: int

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
        }


def active_promotion_for(product_id, promotions: Iterable, now: datetime):
    """Active promotion for a product at `now`, or None. Lowest price wins."""
    best = None
    for promo in promotions:
        if promo.product_id != product_id:
            continue
        if not is_promotion_active(now, promo.start_at, promo.end_at):
            continue
        if best is None or promo.promo_price_cents < best.promo_price_cents:
            best = promo
    return best


def bundle_price(bundles, quantity: int) -> int | None:
    """Price of the largest bundle tier whose quantity <= `quantity`."""
    best_tier = None
    for tier in bundles or []:
        tier_qty = tier.get("quantity")
        if tier_qty is None or tier_qty > quantity:
            continue
        if best_tier is None or tier_qty > best_tier["quantity"]:
            best_tier = tier
    return None if best_tier is None else best_tier["price_cents"]


def price_line(product, quantity: int, promotions: Iterable, now: datetime) -> CartLine:
    """
    Price one cart line.

    `product` needs id, name, price_cents, purchase_price_cents, unit and
    bundles; `promotions` items need id, product_id, promo_price_cents,
    start_at and end_at. ORM rows satisfy both.
    """
    listed = product.price_cents
    promo = active_promotion_for(product.id, promotions, now)

    if promo is not None:
        unit_price, source, promotion_id = promo.promo_price_cents, PRICE_SOURCE_PROMOTION, promo.id
    else:
        tier_price = bundle_price(getattr(product, "bundles", None), quantity)
        if tier_price is not None:
            unit_price, source, promotion_id = tier_price, PRICE_SOURCE_BUNDLE, None
        else:
            unit_price, source, promotion_id = listed, PRICE_SOURCE_LIST, None

    return CartLine(
        product_id=product.id,
        name=product.name,
        quantity=quantity,
        unit_price_cents=unit_price,
        original_price_cents=listed,
        purchase_price_cents=getattr(product, "purchase_price_cents", None),
        unit=getattr(product, "unit", None),
        price_source=source,
        promotion_id=promotion_id,
    )


def build_line_items(cart: Sequence[tuple], promotions: Iterable, now: datetime) -> list[CartLine]:
    """Price a cart given as (product, quantity) pairs, preserving order."""
    promotions = list(promotions)
    return [price_line(product, quantity, promotions, now) for product, quantity in cart]


def clamp_cart_quantity(requested: int, stock: int) -> int:
    """Input-time clamp of a cart quantity to [1, stock]."""
    return max(1, min(requested, stock))


def compute_tax_cents(subtotal_cents: int, settings: BusinessSettings) -> int:
    if not settings.tax_enabled:
        return 0
    tax = Decimal(subtotal_cents) * Decimal(settings.tax_rate_bps) / Decimal(10_000)
    return int(tax.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_totals(
    lines: Iterable[CartLine],
    settings: BusinessSettings,
    discount_cents: int = 0,
) -> CartTotals:
    subtotal = sum(line.unit_price_cents * line.quantity for line in lines)
    tax = compute_tax_cents(subtotal, settings)
    discount = max(0, discount_cents or 0)
    return CartTotals(
        subtotal_cents=subtotal,
        tax_cents=tax,
        discount_cents=discount,
        total_cents=subtotal + tax - discount,
    )
