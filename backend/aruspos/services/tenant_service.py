"""
Multi-Tenant Service: tenant validation, scoping and provisioning.

Every branch-scoped request is validated here before any service touches
branch data: the branch must exist, belong to the business in the URL, and
the business must be active.

SECURITY INVARIANTS:
1. Branch IDs from the URL are validated against the business ID
2. Cross-tenant lookups answer "not found", never revealing that the
   record exists under another business
3. Inactive businesses expose no branches

USAGE:
    from aruspos.services.tenant_service import require_branch_in_business

    branch = require_branch_in_business(branch_id, business_id)
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Business, Branch, User
from ..validation import ValidationError, ConflictError, require_fields
from .auth_service import hash_password, normalize_email, PasswordValidationError
from .concurrency import run_with_retry
from .settings_service import validate_settings_patch


class TenantAccessError(Exception):
    """Raised when cross-tenant access is attempted or the tenant is unusable."""
    pass


class ProvisioningError(Exception):
    """Raised when a new business cannot be provisioned."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _log_cross_tenant_attempt(message: str, **context) -> None:
    current_app.logger.warning("Tenant access denied: %s %s", message, context)


def validate_business_active(business_id: int) -> Business:
    """
    Validate that a business exists and is active.

    Raises TenantAccessError if it doesn't exist or is inactive.
    """
    business = db.session.query(Business).filter_by(id=business_id).first()

    if not business:
        raise TenantAccessError("Business not found")

    if not business.is_active:
        raise TenantAccessError("Business is not active")

    return business


def require_branch_in_business(branch_id: int, business_id: int) -> Branch:
    """
    Validate that a branch belongs to the specified business.

    Core tenant isolation check. Call this before any operation that uses
    a branch_id from client input.

    Raises TenantAccessError if the branch doesn't exist or belongs to a
    different business.
    """
    branch = db.session.query(Branch).filter_by(id=branch_id).first()

    if not branch:
        _log_cross_tenant_attempt(f"Branch {branch_id} not found", business_id=business_id)
        raise TenantAccessError("Branch not found")

    if branch.business_id != business_id:
        _log_cross_tenant_attempt(
            f"Branch {branch_id} belongs to business {branch.business_id}, not {business_id}",
            business_id=business_id,
        )
        raise TenantAccessError("Branch not found")

    return branch


def get_business_branches(business_id: int) -> list[Branch]:
    """
    Branches of a business, by name.

    An inactive (or missing) business has no usable branches, so the list
    is empty rather than an error.
    """
    business = db.session.query(Business).filter_by(id=business_id).first()
    if not business or not business.is_active:
        return []
    return (
        db.session.query(Branch)
        .filter_by(business_id=business_id)
        .order_by(Branch.name)
        .all()
    )


def get_business_with_branches(business_id: int) -> dict:
    business = db.session.query(Business).filter_by(id=business_id).first()
    if not business:
        raise TenantAccessError("Business not found")
    data = business.to_dict()
    data["branches"] = [b.to_dict() for b in get_business_branches(business_id)]
    return data


def list_businesses() -> list[dict]:
    """All businesses with all their branches (super-admin view)."""
    businesses = db.session.query(Business).order_by(Business.name).all()
    result = []
    for business in businesses:
        data = business.to_dict()
        data["branches"] = [b.to_dict() for b in sorted(business.branches, key=lambda b: b.name)]
        result.append(data)
    return result


def list_business_users(business_id: int) -> list[User]:
    return (
        db.session.query(User)
        .filter_by(business_id=business_id)
        .order_by(User.name)
        .all()
    )


def _clean_branches(branches) -> list[dict]:
    if not isinstance(branches, list) or not branches:
        raise ValidationError("At least one branch is required")

    cleaned = []
    names = set()
    for i, branch in enumerate(branches):
        if not isinstance(branch, dict):
            raise ValidationError(f"branches[{i}] must be an object")
        name = (branch.get("name") or "").strip()
        if not name:
            raise ValidationError(f"branches[{i}].name is required")
        if name in names:
            raise ValidationError(f"Duplicate branch name: {name}")
        names.add(name)
        cleaned.append({
            "name": name,
            "address": (branch.get("address") or "").strip() or None,
            "phone": (branch.get("phone") or "").strip() or None,
        })
    return cleaned


def _hash_new_password(password: str, confirmation) -> str:
    if confirmation is not None and password != confirmation:
        raise ValidationError("Passwords do not match")
    try:
        return hash_password(password)
    except PasswordValidationError as e:
        raise ValidationError(str(e))


def _ensure_email_free(email: str) -> None:
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("A user with this email already exists")


def provision_business(payload: dict) -> Business:
    """
    Create a business, its admin user and its branches in one transaction.

    Required: business_name, admin_name, email, password, branches (>= 1).
    Optional: business_type, password_confirmation.

    All validation happens before anything is written.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    require_fields(payload, ("business_name", "admin_name", "email", "password"))
    branches = _clean_branches(payload.get("branches"))

    email = normalize_email(payload["email"])
    if "@" not in email:
        raise ValidationError("email must be a valid email address")

    password_hash = _hash_new_password(payload["password"], payload.get("password_confirmation"))
    _ensure_email_free(email)

    config = current_app.config

    def _op():
        business = Business(
            name=payload["business_name"].strip(),
            type=(payload.get("business_type") or "").strip() or None,
            currency=config.get("DEFAULT_CURRENCY", "USD"),
            tax_enabled=True,
            tax_rate_bps=config.get("DEFAULT_TAX_RATE_BPS", 800),
            units=["pcs"],
            payment_options=["Cash", config.get("DEFAULT_DEBT_METHOD", "Utang")],
            debt_method=config.get("DEFAULT_DEBT_METHOD", "Utang"),
            paper_size="8cm",
            is_active=True,
        )
        db.session.add(business)
        db.session.flush()

        for branch in branches:
            db.session.add(Branch(business_id=business.id, **branch))

        db.session.add(User(
            business_id=business.id,
            name=payload["admin_name"].strip(),
            email=email,
            password_hash=password_hash,
            role="Admin",
        ))

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("A user with this email already exists")
        return business

    business = run_with_retry(_op)
    current_app.logger.info(
        "Provisioned business %s (%s) with %d branch(es)", business.id, business.name, len(branches)
    )
    return business


def create_business_user(business_id: int, payload: dict) -> User:
    """Add a staff user to an existing business."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    require_fields(payload, ("name", "email", "password"))

    email = normalize_email(payload["email"])
    if "@" not in email:
        raise ValidationError("email must be a valid email address")
    password_hash = _hash_new_password(payload["password"], payload.get("password_confirmation"))
    _ensure_email_free(email)

    user = User(
        business_id=business_id,
        name=payload["name"].strip(),
        email=email,
        password_hash=password_hash,
        role=(payload.get("role") or "Cashier").strip(),
    )
    db.session.add(user)
    db.session.commit()
    return user


BUSINESS_UPDATABLE_FIELDS = ("name", "type", "is_active")


def update_business(business_id: int, payload: dict) -> Business:
    """
    Partial update of a business: name, type, is_active and any settings
    field (validated by the settings service).
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    business = db.session.query(Business).filter_by(id=business_id).first()
    if not business:
        raise TenantAccessError("Business not found")

    settings_payload = {k: v for k, v in payload.items() if k not in BUSINESS_UPDATABLE_FIELDS}
    settings_patch = validate_settings_patch(settings_payload)

    if "name" in payload:
        name = payload["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name cannot be blank")
        business.name = name.strip()
    if "type" in payload:
        business.type = (payload["type"] or "").strip() or None
    if "is_active" in payload:
        if not isinstance(payload["is_active"], bool):
            raise ValidationError("is_active must be true or false")
        business.is_active = payload["is_active"]

    for key, value in settings_patch.items():
        setattr(business, key, value)

    db.session.commit()
    return business


def delete_business(business_id: int) -> None:
    """
    Delete a business and everything it owns.

    Branch-scoped rows are removed explicitly; SQLite does not enforce
    ON DELETE CASCADE without a pragma.
    """
    from ..models import Customer, Product, Promotion, Transaction, TransactionLine

    business = db.session.query(Business).filter_by(id=business_id).first()
    if not business:
        raise TenantAccessError("Business not found")

    def _op():
        transaction_ids = db.session.query(Transaction.id).filter_by(business_id=business_id)
        db.session.query(TransactionLine).filter(
            TransactionLine.transaction_id.in_(transaction_ids.scalar_subquery())
        ).delete(synchronize_session=False)
        db.session.query(Transaction).filter_by(business_id=business_id).delete(synchronize_session=False)
        db.session.query(Promotion).filter_by(business_id=business_id).delete(synchronize_session=False)
        db.session.query(Product).filter_by(business_id=business_id).delete(synchronize_session=False)
        db.session.query(Customer).filter_by(business_id=business_id).delete(synchronize_session=False)
        db.session.delete(business)
        db.session.commit()

    run_with_retry(_op)
    current_app.logger.info("Deleted business %s", business_id)
