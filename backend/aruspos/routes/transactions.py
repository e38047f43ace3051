# Overview: Flask API routes for checkout, transaction history, refunds, invoices and export.

"""
Transaction routes, branch-scoped.

- GET  /transactions                  history (filter, value, page, per_page)
- POST /transactions/quote            price a cart, persist nothing
- POST /transactions                  checkout
- GET  /transactions/export           export rows (date_from, date_to)
- GET  /transactions/<id>
- GET  /transactions/<id>/refund      refund items preview
- POST /transactions/<id>/refund      execute refund
- GET  /transactions/<id>/invoice     invoice payload
"""

from flask import Blueprint, request, g, current_app

from ..decorators import require_branch
from ..services import checkout_service, refund_service, reporting_service
from ..services.checkout_service import CheckoutError
from ..services.refund_service import RefundError, RefundNotFoundError
from ..validation import ValidationError
from aruspos.time_utils import utcnow


transactions_bp = Blueprint(
    "transactions",
    __name__,
    url_prefix="/api/businesses/<int:business_id>/branches/<int:branch_id>/transactions",
)


@transactions_bp.get("")
@require_branch
def list_transactions_route(business_id: int, branch_id: int):
    """
    Query params:
    - filter: customer | date | item (optional)
    - value: filter value (customer/item substring, or YYYY-MM-DD)
    - page / per_page (optional)
    """
    try:
        return reporting_service.list_transactions(
            business_id,
            branch_id,
            filter_type=request.args.get("filter"),
            value=request.args.get("value"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400


@transactions_bp.post("/quote")
@require_branch
def quote_route(business_id: int, branch_id: int):
    data = request.get_json(silent=True) or {}
    try:
        quote = checkout_service.quote_cart(
            business_id,
            branch_id,
            data.get("items"),
            settings=g.settings,
            now=utcnow(),
            discount_cents=data.get("discount_cents", 0),
        )
        return quote
    except CheckoutError as e:
        return {"error": str(e), "details": e.details}, 400
    except Exception:
        current_app.logger.exception("Failed to quote cart")
        return {"error": "Internal server error"}, 500


@transactions_bp.post("")
@require_branch
def checkout_route(business_id: int, branch_id: int):
    data = request.get_json(silent=True) or {}
    try:
        txn = checkout_service.checkout(
            business_id,
            branch_id,
            data.get("items"),
            settings=g.settings,
            now=utcnow(),
            customer_id=data.get("customer_id"),
            discount_cents=data.get("discount_cents", 0),
            payment_method=data.get("payment_method"),
            cashier_name=data.get("cashier_name"),
        )
        return {"transaction": txn.to_dict()}, 201
    except CheckoutError as e:
        return {"error": str(e), "details": e.details}, 400
    except Exception:
        current_app.logger.exception("Checkout failed")
        return {"error": "Internal server error"}, 500


@transactions_bp.get("/export")
@require_branch
def export_route(business_id: int, branch_id: int):
    try:
        return reporting_service.export_rows(
            business_id,
            branch_id,
            request.args.get("date_from"),
            request.args.get("date_to"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400


@transactions_bp.get("/<int:transaction_id>")
@require_branch
def get_transaction_route(business_id: int, branch_id: int, transaction_id: int):
    txn = reporting_service.get_transaction(business_id, branch_id, transaction_id)
    if not txn:
        return {"error": "Transaction not found"}, 404
    data = txn.to_dict()
    data["refunds"] = [r.to_dict(include_lines=False) for r in txn.refunds]
    return {"transaction": data}


@transactions_bp.get("/<int:transaction_id>/refund")
@require_branch
def refund_preview_route(business_id: int, branch_id: int, transaction_id: int):
    try:
        return refund_service.preview_refund(business_id, branch_id, transaction_id)
    except RefundNotFoundError:
        return {"error": "Transaction not found"}, 404


@transactions_bp.post("/<int:transaction_id>/refund")
@require_branch
def refund_route(business_id: int, branch_id: int, transaction_id: int):
    """Body: {"items": [{"line_id": int, "quantity": int}, ...], "cashier_name": str?}"""
    data = request.get_json(silent=True) or {}
    try:
        quantities = refund_service.parse_refund_quantities(data.get("items"))
        sale, refund = refund_service.execute_refund(
            business_id,
            branch_id,
            transaction_id,
            quantities,
            now=utcnow(),
            cashier_name=data.get("cashier_name"),
        )
        return {"transaction": sale.to_dict(), "refund": refund.to_dict()}, 201
    except RefundNotFoundError:
        return {"error": "Transaction not found"}, 404
    except RefundError as e:
        return {"error": str(e), "details": e.details}, 400
    except Exception:
        current_app.logger.exception("Refund failed")
        return {"error": "Internal server error"}, 500


@transactions_bp.get("/<int:transaction_id>/invoice")
@require_branch
def invoice_route(business_id: int, branch_id: int, transaction_id: int):
    txn = reporting_service.get_transaction(business_id, branch_id, transaction_id)
    if not txn:
        return {"error": "Transaction not found"}, 404
    return {"invoice": reporting_service.invoice_payload(g.business, g.branch, txn)}
