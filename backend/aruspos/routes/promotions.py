# Overview: Flask API routes for branch promotions.

from flask import Blueprint, request, current_app

from ..decorators import require_branch
from ..services import promotions_service
from ..services.promotions_service import PromotionError, PromotionNotFoundError, promotion_to_dict
from aruspos.time_utils import utcnow


promotions_bp = Blueprint(
    "promotions",
    __name__,
    url_prefix="/api/businesses/<int:business_id>/branches/<int:branch_id>/promotions",
)


@promotions_bp.get("")
@require_branch
def list_promotions_route(business_id: int, branch_id: int):
    """Query params: status (SCHEDULED | ACTIVE | EXPIRED, optional)."""
    items = promotions_service.list_promotions(
        business_id, branch_id, utcnow(), status=request.args.get("status")
    )
    return {"items": items, "count": len(items)}


@promotions_bp.get("/active")
@require_branch
def active_promotions_route(business_id: int, branch_id: int):
    now = utcnow()
    items = [promotion_to_dict(p, now) for p in promotions_service.active_promotions(business_id, branch_id, now)]
    return {"items": items, "count": len(items)}


@promotions_bp.post("")
@require_branch
def create_promotion_route(business_id: int, branch_id: int):
    try:
        promo = promotions_service.create_promotion(business_id, branch_id, request.get_json(silent=True))
        return {"promotion": promotion_to_dict(promo, utcnow())}, 201
    except PromotionError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create promotion")
        return {"error": "Internal server error"}, 500


@promotions_bp.delete("/<int:promo_id>")
@require_branch
def delete_promotion_route(business_id: int, branch_id: int, promo_id: int):
    try:
        promotions_service.delete_promotion(business_id, branch_id, promo_id)
        return {"ok": True}
    except PromotionNotFoundError:
        return {"error": "Promotion not found"}, 404
    except Exception:
        current_app.logger.exception("Failed to delete promotion")
        return {"error": "Internal server error"}, 500
