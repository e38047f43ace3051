# Overview: Flask API routes for products and inventory; parses input and returns JSON responses.

"""
Product management routes, branch-scoped.

MULTI-TENANT: Every URL carries /businesses/<business_id>/branches/<branch_id>;
@require_branch validates the pair before any handler runs.
"""
from flask import Blueprint, request, current_app

from ..decorators import require_branch
from ..models import Product
from ..services import products_service
from ..services.products_service import ProductNotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "category", "unit", "image_url",
        "price_cents", "purchase_price_cents", "stock", "bundles",
    },
    required_on_create={"name", "price_cents"},
)

products_bp = Blueprint(
    "products",
    __name__,
    url_prefix="/api/businesses/<int:business_id>/branches/<int:branch_id>",
)


@products_bp.get("/products")
@require_branch
def list_products_route(business_id: int, branch_id: int):
    """
    Query params:
    - q: search by name or SKU (optional)
    - page / per_page: pagination (optional; all rows when page is omitted)
    """
    result = products_service.list_products(
        business_id,
        branch_id,
        search=request.args.get("q"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return result


@products_bp.post("/products")
@require_branch
def create_product_route(business_id: int, branch_id: int):
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        product = products_service.create_product(business_id, branch_id, patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return {"product": product.to_dict()}, 201


@products_bp.get("/products/<int:product_id>")
@require_branch
def get_product_route(business_id: int, branch_id: int, product_id: int):
    try:
        product = products_service.get_product(business_id, branch_id, product_id)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    return {"product": product.to_dict()}


@products_bp.get("/products/sku/<path:sku>")
@require_branch
def find_by_sku_route(business_id: int, branch_id: int, sku: str):
    try:
        product = products_service.find_by_sku(business_id, branch_id, sku)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    return {"product": product.to_dict()}


@products_bp.patch("/products/<int:product_id>")
@require_branch
def update_product_route(business_id: int, branch_id: int, product_id: int):
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        product = products_service.update_product(business_id, branch_id, product_id, patch)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return {"product": product.to_dict()}


@products_bp.delete("/products/<int:product_id>")
@require_branch
def delete_product_route(business_id: int, branch_id: int, product_id: int):
    try:
        products_service.delete_product(business_id, branch_id, product_id)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500
    return {"ok": True}


@products_bp.get("/inventory")
@require_branch
def inventory_route(business_id: int, branch_id: int):
    items = products_service.list_inventory(business_id, branch_id)
    return {"items": items, "count": len(items)}
