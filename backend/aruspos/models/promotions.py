from __future__ import annotations

from ..extensions import db
from aruspos.time_utils import to_utc_z


class Promotion(db.Model):
    """
    Time-bounded price override for a single product in a branch.

    The validity window is half-open: [start_at, end_at).
    Status (SCHEDULED / ACTIVE / EXPIRED) is derived on read, never stored.
    """
    __tablename__ = "promotions"
    __table_args__ = (
        db.Index("ix_promotions_branch_product", "branch_id", "product_id"),
        db.CheckConstraint("promo_price_cents >= 0", name="ck_promotions_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    # Snapshot for display once the product is renamed or deleted
    product_name = db.Column(db.String(255), nullable=True)

    promo_price_cents = db.Column(db.Integer, nullable=False)
    start_at = db.Column(db.DateTime(timezone=True), nullable=False)
    end_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("promotions", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "promo_price_cents": self.promo_price_cents,
            "start_at": to_utc_z(self.start_at),
            "end_at": to_utc_z(self.end_at),
            "created_at": to_utc_z(self.created_at),
        }
