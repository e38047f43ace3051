# backend/aruspos/services/products_service.py
"""
Products Service (branch-scoped)

MULTI-TENANT: Every operation takes the validated (business_id, branch_id)
pair; routes resolve it through tenant_service before calling in.
Stock is edited here directly for inventory corrections; sales and
refunds move it through checkout_service / refund_service.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Product, Promotion, TransactionLine
from ..validation import ConflictError
from .pagination import LIKE_ESCAPE, contains_pattern, paginate


PRODUCT_MUTABLE_FIELDS = {
    "name", "sku", "category", "unit", "image_url",
    "price_cents", "purchase_price_cents", "stock", "bundles",
}


class ProductNotFoundError(Exception):
    pass


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _branch_products(business_id: int, branch_id: int):
    return db.session.query(Product).filter_by(business_id=business_id, branch_id=branch_id)


def list_products(
    business_id: int,
    branch_id: int,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Products of a branch by name; `search` matches name or SKU (case-insensitive)."""
    query = _branch_products(business_id, branch_id)
    if search:
        like = contains_pattern(search.strip())
        query = query.filter(or_(
            Product.name.ilike(like, escape=LIKE_ESCAPE),
            Product.sku.ilike(like, escape=LIKE_ESCAPE),
        ))
    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page, per_page, lambda p: p.to_dict())


def list_inventory(business_id: int, branch_id: int) -> list[dict]:
    products = _branch_products(business_id, branch_id).order_by(Product.name.asc()).all()
    return [p.to_inventory_dict() for p in products]


def get_product(business_id: int, branch_id: int, product_id: int) -> Product:
    product = _branch_products(business_id, branch_id).filter_by(id=product_id).first()
    if not product:
        raise ProductNotFoundError("Product not found")
    return product


def find_by_sku(business_id: int, branch_id: int, sku: str) -> Product:
    """Exact SKU lookup used by the barcode scanner path."""
    sku = (sku or "").strip()
    product = _branch_products(business_id, branch_id).filter_by(sku=sku).first() if sku else None
    if not product:
        raise ProductNotFoundError("Product not found")
    return product


def _ensure_sku_free(branch_id: int, sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    query = db.session.query(Product).filter(Product.branch_id == branch_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("SKU already exists for this branch.")


def create_product(business_id: int, branch_id: int, patch: dict) -> Product:
    """Create from a validated patch (see validation.validate_payload)."""
    if patch.get("sku") == "":
        patch["sku"] = None
    _ensure_sku_free(branch_id, patch.get("sku"))

    p = Product(business_id=business_id, branch_id=branch_id)
    apply_product_patch(p, patch)
    db.session.add(p)
    db.session.commit()
    return p


def update_product(business_id: int, branch_id: int, product_id: int, patch: dict) -> Product:
    p = get_product(business_id, branch_id, product_id)
    if patch.get("sku") == "":
        patch["sku"] = None
    if "sku" in patch:
        _ensure_sku_free(branch_id, patch["sku"], exclude_id=p.id)
    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(business_id: int, branch_id: int, product_id: int) -> None:
    """
    Delete a product and its promotions.

    Past transaction lines keep their name/price snapshot but lose the
    product reference.
    """
    p = get_product(business_id, branch_id, product_id)

    db.session.query(Promotion).filter_by(product_id=p.id).delete(synchronize_session=False)
    # TransactionLine has no version_id to bump, so a bulk detach is safe
    db.session.query(TransactionLine).filter_by(product_id=p.id).update(
        {TransactionLine.product_id: None}, synchronize_session=False
    )
    db.session.delete(p)
    db.session.commit()
    current_app.logger.info("Deleted product %s from branch %s", product_id, branch_id)
