"""
Demo data for a fresh branch, and a branch reset.

Seeding refuses to run on a branch that already has products. Demo
customers are only added when the business has none (customers are
business-wide). Reset clears a branch's products, transactions and
promotions and leaves customers alone.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Customer, Product, Promotion, Transaction, TransactionLine
from .concurrency import run_with_retry


DEMO_PRODUCTS = [
    {"name": "Espresso", "sku": "CF-ESP-01", "price_cents": 299, "purchase_price_cents": 150, "stock": 100, "category": "Coffee"},
    {"name": "Latte", "sku": "CF-LAT-01", "price_cents": 450, "purchase_price_cents": 250, "stock": 75, "category": "Coffee"},
    {"name": "Croissant", "sku": "PS-CRO-01", "price_cents": 325, "purchase_price_cents": 175, "stock": 50, "category": "Pastry"},
    {"name": "Iced Tea", "sku": "BV-TEA-01", "price_cents": 300, "purchase_price_cents": 120, "stock": 80, "category": "Beverage"},
    {"name": "Blueberry Muffin", "sku": "PS-MUF-01", "price_cents": 350, "purchase_price_cents": 200, "stock": 40, "category": "Pastry"},
    {"name": "Sandwich", "sku": "FD-SAN-01", "price_cents": 899, "purchase_price_cents": 550, "stock": 20, "category": "Food"},
]

DEMO_CUSTOMERS = [
    {"name": "Liam Johnson", "email": "liam@example.com", "phone": "555-0101"},
    {"name": "Olivia Smith", "email": "olivia@example.com", "phone": "555-0102"},
    {"name": "Noah Williams", "email": "noah@example.com", "phone": "555-0103"},
]


def seed_branch(business_id: int, branch_id: int) -> bool:
    """Returns False (and writes nothing) if the branch already has products."""
    has_products = db.session.query(Product.id).filter_by(branch_id=branch_id).first() is not None
    if has_products:
        current_app.logger.info("Branch %s already has products; seeding skipped", branch_id)
        return False

    def _op():
        for data in DEMO_PRODUCTS:
            db.session.add(Product(business_id=business_id, branch_id=branch_id, unit="pcs", **data))

        has_customers = db.session.query(Customer.id).filter_by(business_id=business_id).first() is not None
        if not has_customers:
            for data in DEMO_CUSTOMERS:
                db.session.add(Customer(business_id=business_id, total_spent_cents=0, **data))

        db.session.commit()

    run_with_retry(_op)
    current_app.logger.info("Seeded branch %s with %d demo products", branch_id, len(DEMO_PRODUCTS))
    return True


def reset_branch(business_id: int, branch_id: int) -> dict:
    """Delete the branch's products, transactions and promotions. Returns counts."""

    def _op():
        txn_ids = (
            db.session.query(Transaction.id)
            .filter_by(business_id=business_id, branch_id=branch_id)
            .scalar_subquery()
        )
        lines = db.session.query(TransactionLine).filter(
            TransactionLine.transaction_id.in_(txn_ids)
        ).delete(synchronize_session=False)
        transactions = db.session.query(Transaction).filter_by(
            business_id=business_id, branch_id=branch_id
        ).delete(synchronize_session=False)
        promotions = db.session.query(Promotion).filter_by(
            business_id=business_id, branch_id=branch_id
        ).delete(synchronize_session=False)
        products = db.session.query(Product).filter_by(
            business_id=business_id, branch_id=branch_id
        ).delete(synchronize_session=False)
        db.session.commit()
        return {
            "products": products,
            "transactions": transactions,
            "transaction_lines": lines,
            "promotions": promotions,
        }

    counts = run_with_retry(_op)
    current_app.logger.info("Reset branch %s: %s", branch_id, counts)
    return counts
