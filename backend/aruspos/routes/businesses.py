# Overview: Flask API routes for tenant provisioning and business administration.

"""
Business routes.

Super-admin (X-Auth-Email in SUPERADMIN_EMAILS):
- GET    /api/superadmin/businesses            all businesses with branches
- POST   /api/superadmin/businesses            provision business + admin + branches
- PATCH  /api/superadmin/businesses/<id>       name/type/is_active/settings
- DELETE /api/superadmin/businesses/<id>

Tenant:
- GET  /api/businesses/<id>                    business with its branches
- GET  /api/businesses/<id>/branches           empty for an inactive business
- GET  /api/businesses/<id>/users
- POST /api/businesses/<id>/users
"""

from flask import Blueprint, request, current_app

from ..decorators import require_business, require_superadmin
from ..services import tenant_service
from ..services.tenant_service import TenantAccessError, ProvisioningError
from ..validation import ValidationError, ConflictError


businesses_bp = Blueprint("businesses", __name__)


@businesses_bp.get("/api/superadmin/businesses")
@require_superadmin
def list_businesses_route():
    items = tenant_service.list_businesses()
    return {"items": items, "count": len(items)}


@businesses_bp.post("/api/superadmin/businesses")
@require_superadmin
def provision_business_route():
    payload = request.get_json(silent=True)
    try:
        business = tenant_service.provision_business(payload)
        return {"business": tenant_service.get_business_with_branches(business.id)}, 201
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ProvisioningError as e:
        return {"error": str(e), "details": e.details}, 400
    except Exception:
        current_app.logger.exception("Failed to provision business")
        return {"error": "Internal server error"}, 500


@businesses_bp.patch("/api/superadmin/businesses/<int:business_id>")
@require_superadmin
def update_business_route(business_id: int):
    payload = request.get_json(silent=True)
    try:
        business = tenant_service.update_business(business_id, payload)
        return {"business": business.to_dict()}
    except TenantAccessError:
        return {"error": "Business not found"}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update business")
        return {"error": "Internal server error"}, 500


@businesses_bp.delete("/api/superadmin/businesses/<int:business_id>")
@require_superadmin
def delete_business_route(business_id: int):
    try:
        tenant_service.delete_business(business_id)
        return {"ok": True}
    except TenantAccessError:
        return {"error": "Business not found"}, 404
    except Exception:
        current_app.logger.exception("Failed to delete business")
        return {"error": "Internal server error"}, 500


@businesses_bp.get("/api/businesses/<int:business_id>")
def get_business_route(business_id: int):
    try:
        return {"business": tenant_service.get_business_with_branches(business_id)}
    except TenantAccessError:
        return {"error": "Business not found"}, 404


@businesses_bp.get("/api/businesses/<int:business_id>/branches")
def list_branches_route(business_id: int):
    branches = tenant_service.get_business_branches(business_id)
    return {"items": [b.to_dict() for b in branches], "count": len(branches)}


@businesses_bp.get("/api/businesses/<int:business_id>/users")
@require_business
def list_users_route(business_id: int):
    users = tenant_service.list_business_users(business_id)
    return {"items": [u.to_dict() for u in users], "count": len(users)}


@businesses_bp.post("/api/businesses/<int:business_id>/users")
@require_business
def create_user_route(business_id: int):
    payload = request.get_json(silent=True)
    try:
        user = tenant_service.create_business_user(business_id, payload)
        return {"user": user.to_dict()}, 201
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return {"error": "Internal server error"}, 500
