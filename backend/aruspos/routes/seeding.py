# Overview: Flask API routes for demo data seeding and branch reset.

from flask import Blueprint, request, current_app

from ..decorators import require_branch
from ..services import seed_service


seeding_bp = Blueprint(
    "seeding",
    __name__,
    url_prefix="/api/businesses/<int:business_id>/branches/<int:branch_id>",
)


@seeding_bp.post("/seed")
@require_branch
def seed_route(business_id: int, branch_id: int):
    try:
        seeded = seed_service.seed_branch(business_id, branch_id)
    except Exception:
        current_app.logger.exception("Failed to seed branch")
        return {"error": "Internal server error"}, 500
    if not seeded:
        return {"seeded": False, "error": "Branch already has products"}, 409
    return {"seeded": True}, 201


@seeding_bp.post("/reset")
@require_branch
def reset_route(business_id: int, branch_id: int):
    """Body must be {"confirm": true}; deletes products, transactions and promotions."""
    data = request.get_json(silent=True) or {}
    if data.get("confirm") is not True:
        return {"error": "Reset requires {\"confirm\": true}"}, 400
    try:
        counts = seed_service.reset_branch(business_id, branch_id)
    except Exception:
        current_app.logger.exception("Failed to reset branch")
        return {"error": "Internal server error"}, 500
    return {"ok": True, "deleted": counts}
