from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Product, Promotion
from ..statuses import derive_promotion_status, is_promotion_active
from ..time_utils import parse_iso_datetime
from ..validation import MAX_PRICE_CENTS, ValidationError, parse_int, require_fields


class PromotionError(Exception):
    """Raised for promotion rule violations."""
    pass


class PromotionNotFoundError(PromotionError):
    pass


def promotion_to_dict(promo: Promotion, now: datetime) -> dict:
    """Promotion with its derived status and the product's listed price."""
    data = promo.to_dict()
    data["status"] = derive_promotion_status(now, promo.start_at, promo.end_at)
    data["original_price_cents"] = promo.product.price_cents if promo.product else None
    return data


def list_promotions(business_id: int, branch_id: int, now: datetime, status: str | None = None) -> list[dict]:
    """Newest end date first; optionally only one derived status."""
    promos = (
        db.session.query(Promotion)
        .filter_by(business_id=business_id, branch_id=branch_id)
        .order_by(Promotion.end_at.desc(), Promotion.id.desc())
        .all()
    )
    result = [promotion_to_dict(p, now) for p in promos]
    if status:
        result = [p for p in result if p["status"] == status.upper()]
    return result


def active_promotions(business_id: int, branch_id: int, now: datetime) -> list[Promotion]:
    promos = (
        db.session.query(Promotion)
        .filter_by(business_id=business_id, branch_id=branch_id)
        .order_by(Promotion.id)
        .all()
    )
    return [p for p in promos if is_promotion_active(now, p.start_at, p.end_at)]


def _parse_window_bound(value, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise PromotionError(f"{field} must be an ISO-8601 datetime")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        raise PromotionError(f"{field} must be an ISO-8601 datetime")
    if parsed is None:
        raise PromotionError(f"{field} must be an ISO-8601 datetime")
    return parsed


def create_promotion(business_id: int, branch_id: int, data: dict) -> Promotion:
    if not isinstance(data, dict):
        raise PromotionError("Invalid JSON payload")
    try:
        require_fields(data, ("product_id", "promo_price_cents", "start_at", "end_at"))
        product_id = parse_int(data["product_id"], "product_id", minimum=1)
        promo_price = parse_int(data["promo_price_cents"], "promo_price_cents", minimum=0)
    except ValidationError as e:
        raise PromotionError(str(e))
    if promo_price > MAX_PRICE_CENTS:
        raise PromotionError(f"promo_price_cents cannot exceed {MAX_PRICE_CENTS}")

    start_at = _parse_window_bound(data["start_at"], "start_at")
    end_at = _parse_window_bound(data["end_at"], "end_at")
    if start_at >= end_at:
        raise PromotionError("start_at must be before end_at")

    product = db.session.query(Product).filter_by(
        id=product_id, business_id=business_id, branch_id=branch_id
    ).first()
    if not product:
        raise PromotionError("Product not found in this branch")

    promo = Promotion(
        business_id=business_id,
        branch_id=branch_id,
        product_id=product.id,
        product_name=product.name,
        promo_price_cents=promo_price,
        start_at=start_at,
        end_at=end_at,
    )
    db.session.add(promo)
    db.session.commit()
    return promo


def delete_promotion(business_id: int, branch_id: int, promo_id: int) -> None:
    promo = db.session.query(Promotion).filter_by(
        id=promo_id, business_id=business_id, branch_id=branch_id
    ).first()
    if not promo:
        raise PromotionNotFoundError("Promotion not found")
    db.session.delete(promo)
    db.session.commit()
