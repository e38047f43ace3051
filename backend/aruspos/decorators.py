# Overview: Request decorators that establish tenant context for API routes.

from functools import wraps
from flask import current_app, request, g

from .services.auth_service import is_superadmin_email
from .services.settings_service import BusinessSettings
from .services.tenant_service import (
    TenantAccessError,
    validate_business_active,
    require_branch_in_business,
)


IDENTITY_HEADER = "X-Auth-Email"


def require_business(f):
    """
    Resolve <business_id> from the URL into tenant context.

    Sets:
    - g.business: the active Business row
    - g.settings: its BusinessSettings, loaded fresh for this request

    Returns 404 for a missing business and 403 for an inactive one.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            business = validate_business_active(kwargs["business_id"])
        except TenantAccessError as e:
            if "not active" in str(e):
                return {"error": str(e)}, 403
            return {"error": "Business not found"}, 404

        g.business = business
        g.settings = BusinessSettings.from_business(business)
        return f(*args, **kwargs)

    return decorated_function


def require_branch(f):
    """
    Resolve <business_id>/<branch_id> into tenant context.

    The branch must belong to the business; a foreign branch answers 404
    exactly like a missing one. Also sets g.business and g.settings.
    """
    @require_business
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.branch = require_branch_in_business(kwargs["branch_id"], kwargs["business_id"])
        except TenantAccessError:
            return {"error": "Branch not found"}, 404
        return f(*args, **kwargs)

    return decorated_function


def require_superadmin(f):
    """
    Allow only callers whose asserted email is a configured super-admin.

    The identity itself is verified upstream and arrives in X-Auth-Email.
    401 without it, 403 for anyone else.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        email = request.headers.get(IDENTITY_HEADER)
        if not email or not email.strip():
            return {"error": "Authentication required"}, 401

        if not is_superadmin_email(email, current_app.config.get("SUPERADMIN_EMAILS", [])):
            current_app.logger.warning("Super-admin access denied for %s on %s", email, request.path)
            return {"error": "Super-admin access required"}, 403

        g.actor_email = email.strip().lower()
        return f(*args, **kwargs)

    return decorated_function
