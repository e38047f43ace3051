from __future__ import annotations

from ..extensions import db
from aruspos.time_utils import to_utc_z


PAPER_SIZES = ("A4", "8cm", "5.8cm")


class Business(db.Model):
    """
    Multi-tenant root: every tenant is a Business.

    All branches, users, customers and branch-scoped records belong to
    exactly one business. No data may cross business boundaries.

    Per-business settings (currency, tax, units, payment options, paper
    size) live on this row and are read-mostly; see settings_service.
    """
    __tablename__ = "businesses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(64), nullable=True)

    currency = db.Column(db.String(8), nullable=False, default="USD")
    tax_enabled = db.Column(db.Boolean, nullable=False, default=True)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=800)  # Basis points (800 = 8%)
    units = db.Column(db.JSON, nullable=False, default=lambda: ["pcs"])
    payment_options = db.Column(db.JSON, nullable=False, default=lambda: ["Cash", "Utang"])
    debt_method = db.Column(db.String(64), nullable=False, default="Utang")
    paper_size = db.Column(db.String(8), nullable=False, default="8cm")

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Business id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "currency": self.currency,
            "tax_enabled": self.tax_enabled,
            "tax_rate_bps": self.tax_rate_bps,
            "units": list(self.units or []),
            "payment_options": list(self.payment_options or []),
            "debt_method": self.debt_method,
            "paper_size": self.paper_size,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Branch(db.Model):
    """
    Physical location within a business.

    MULTI-TENANT: Branches are scoped to businesses via business_id.
    Inventory, promotions and transactions are recorded per branch.
    """
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("business_id", "name", name="uq_branches_business_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    business = db.relationship(
        "Business",
        backref=db.backref("branches", lazy=True, cascade="all, delete-orphan"),
    )

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class User(db.Model):
    """
    Business staff account record.

    Credentials are verified by the upstream identity provider; the hash is
    kept so provisioning can hand an initial password to that provider.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="Admin")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    business = db.relationship(
        "Business",
        backref=db.backref("users", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }
