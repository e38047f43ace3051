# Overview: Flask API routes for per-business settings.

from flask import Blueprint, request, g, current_app

from ..decorators import require_business
from ..services import settings_service
from ..services.settings_service import SettingsNotFoundError
from ..validation import ValidationError


settings_bp = Blueprint("settings", __name__, url_prefix="/api/businesses/<int:business_id>/settings")


@settings_bp.get("")
@require_business
def get_settings_route(business_id: int):
    return {"settings": g.settings.to_dict()}


@settings_bp.patch("")
@require_business
def update_settings_route(business_id: int):
    """Partial update; the response carries the reloaded settings."""
    payload = request.get_json(silent=True)
    try:
        settings = settings_service.update_business_settings(business_id, payload)
        return {"settings": settings.to_dict()}
    except ValidationError as e:
        return {"error": str(e)}, 400
    except SettingsNotFoundError:
        return {"error": "Business not found"}, 404
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return {"error": "Internal server error"}, 500
