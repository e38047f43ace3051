from __future__ import annotations

from ..extensions import db
from ..models import Customer, Transaction
from ..validation import ValidationError
from .concurrency import run_with_retry
from .pagination import LIKE_ESCAPE, contains_pattern


class CustomerNotFoundError(Exception):
    pass


CUSTOMER_FIELDS = ("name", "email", "phone")


def list_customers(business_id: int, search: str | None = None) -> list[Customer]:
    query = db.session.query(Customer).filter_by(business_id=business_id)
    if search:
        query = query.filter(Customer.name.ilike(contains_pattern(search.strip()), escape=LIKE_ESCAPE))
    return query.order_by(Customer.name.asc(), Customer.id.asc()).all()


def create_customer(business_id: int, data: dict) -> Customer:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(k for k in data if k not in CUSTOMER_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")

    values = {}
    for field in ("email", "phone"):
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{field} must be a string")
        values[field] = (value or "").strip() or None

    customer = Customer(business_id=business_id, name=name.strip(), total_spent_cents=0, **values)
    db.session.add(customer)
    db.session.commit()
    return customer


def delete_customer(business_id: int, customer_id: int) -> None:
    """Delete a customer; their past sales stay, reattributed by name only."""
    customer = db.session.query(Customer).filter_by(id=customer_id, business_id=business_id).first()
    if not customer:
        raise CustomerNotFoundError("Customer not found")

    def _op():
        # Through the ORM so each Transaction's version_id is bumped
        for txn in db.session.query(Transaction).filter_by(customer_id=customer.id).all():
            txn.customer_id = None
        db.session.delete(customer)
        db.session.commit()

    run_with_retry(_op)
