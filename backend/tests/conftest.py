"""
Pytest fixtures for Arus POS backend tests.

Provides test database setup, two-tenant fixtures, and test client.
"""

from datetime import datetime

import pytest
from aruspos import create_app
from aruspos.extensions import db
from aruspos.models import Business, Branch, Customer, Product, User
from aruspos.services.settings_service import BusinessSettings


SUPERADMIN_EMAIL = "root@arus.test"

# Fixed instant used wherever a test needs "now"
NOW = datetime(2026, 3, 15, 12, 0, 0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SUPERADMIN_EMAILS': [SUPERADMIN_EMAIL],
        'DEBT_REQUIRE_PAYMENT_EVIDENCE': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def business_a(db_session):
    """Business A (first tenant): USD, 8% tax."""
    business = Business(
        name="Kopi Arus",
        type="Cafe",
        currency="USD",
        tax_enabled=True,
        tax_rate_bps=800,
        units=["pcs", "cup"],
        payment_options=["Cash", "Card", "Utang"],
        debt_method="Utang",
        paper_size="8cm",
        is_active=True,
    )
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def business_b(db_session):
    """Business B (second tenant): tax disabled."""
    business = Business(
        name="Toko Beta",
        type="Retail",
        currency="USD",
        tax_enabled=False,
        tax_rate_bps=0,
        units=["pcs"],
        payment_options=["Cash", "Utang"],
        debt_method="Utang",
        is_active=True,
    )
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def branch_a(db_session, business_a):
    branch = Branch(business_id=business_a.id, name="Downtown", address="1 Main St", phone="555-0001")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_a2(db_session, business_a):
    branch = Branch(business_id=business_a.id, name="Airport", address="Terminal 2", phone="555-0002")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_b(db_session, business_b):
    branch = Branch(business_id=business_b.id, name="Market", address="9 Market Rd", phone="555-0009")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def settings_a(business_a):
    return BusinessSettings.from_business(business_a)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(branch, name=..., price_cents=..., stock=..., **extra)."""
    def _make(branch, name="Latte", price_cents=1000, stock=50, **extra):
        product = Product(
            business_id=branch.business_id,
            branch_id=branch.id,
            name=name,
            price_cents=price_cents,
            stock=stock,
            unit=extra.pop("unit", "pcs"),
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def product_a(make_product, branch_a):
    return make_product(branch_a, name="Latte", price_cents=1000, stock=50, sku="CF-LAT-01", purchase_price_cents=400)


@pytest.fixture(scope='function')
def product_b(make_product, branch_b):
    return make_product(branch_b, name="Rice 5kg", price_cents=2000, stock=10, sku="RC-5KG")


@pytest.fixture(scope='function')
def customer_a(db_session, business_a):
    customer = Customer(business_id=business_a.id, name="Liam Johnson", email="liam@example.com", total_spent_cents=0)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def admin_a(db_session, business_a):
    user = User(business_id=business_a.id, name="Owner A", email="owner@kopi.test", password_hash="x", role="Admin")
    db_session.add(user)
    db_session.commit()
    return user


def branch_url(business, branch, path: str = "") -> str:
    return f"/api/businesses/{business.id}/branches/{branch.id}{path}"


def superadmin_headers() -> dict:
    return {"X-Auth-Email": SUPERADMIN_EMAIL}
