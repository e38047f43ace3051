# Overview: Flask API routes for the debt (credit sale) ledger.

from flask import Blueprint, request, g, current_app

from ..decorators import require_branch
from ..services import debt_service
from ..services.debt_service import DebtError, DebtNotFoundError
from aruspos.time_utils import utcnow


debts_bp = Blueprint(
    "debts",
    __name__,
    url_prefix="/api/businesses/<int:business_id>/branches/<int:branch_id>/debts",
)


def _parse_paid_filter(raw):
    if raw is None or raw == "":
        return None
    raw = raw.strip().lower()
    if raw in ("true", "1"):
        return True
    if raw in ("false", "0"):
        return False
    raise DebtError("is_paid must be true or false")


@debts_bp.get("")
@require_branch
def list_debts_route(business_id: int, branch_id: int):
    """Query params: is_paid (true | false, optional)."""
    try:
        is_paid = _parse_paid_filter(request.args.get("is_paid"))
    except DebtError as e:
        return {"error": str(e)}, 400
    items = debt_service.list_debt_transactions(
        business_id, branch_id, settings=g.settings, is_paid=is_paid
    )
    return {"items": items, "count": len(items), "debt_method": g.settings.debt_method}


@debts_bp.patch("/<int:transaction_id>")
@require_branch
def update_debt_route(business_id: int, branch_id: int, transaction_id: int):
    """Body: any of is_paid, debt_note_image_url, payment_note_image_url."""
    try:
        txn = debt_service.update_debt_transaction(
            business_id,
            branch_id,
            transaction_id,
            request.get_json(silent=True),
            settings=g.settings,
            now=utcnow(),
            require_payment_evidence=current_app.config.get("DEBT_REQUIRE_PAYMENT_EVIDENCE", False),
        )
        return {"transaction": debt_service.debt_to_dict(txn)}
    except DebtNotFoundError:
        return {"error": "Debt transaction not found"}, 404
    except DebtError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update debt transaction")
        return {"error": "Internal server error"}, 500
