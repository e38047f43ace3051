# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for core resources.

Two businesses with their own branches, then verify that:
1. A branch is only reachable through its own business
2. Foreign records answer 404, never revealing they exist elsewhere
3. Inactive businesses expose no branches and reject branch routes
"""

import pytest

from aruspos.models import Product
from aruspos.services.tenant_service import (
    TenantAccessError,
    get_business_branches,
    require_branch_in_business,
    validate_business_active,
)

from conftest import branch_url


class TestTenantServiceHelpers:
    def test_require_branch_in_business_valid(self, db_session, business_a, branch_a):
        assert require_branch_in_business(branch_a.id, business_a.id).id == branch_a.id

    def test_require_branch_in_business_cross_tenant(self, db_session, business_a, branch_b):
        with pytest.raises(TenantAccessError, match="Branch not found"):
            require_branch_in_business(branch_b.id, business_a.id)

    def test_require_branch_in_business_nonexistent(self, db_session, business_a):
        with pytest.raises(TenantAccessError):
            require_branch_in_business(99999, business_a.id)

    def test_get_business_branches(self, db_session, business_a, business_b, branch_a, branch_a2, branch_b):
        assert [b.name for b in get_business_branches(business_a.id)] == ["Airport", "Downtown"]
        assert [b.id for b in get_business_branches(business_b.id)] == [branch_b.id]

    def test_inactive_business_has_no_branches(self, db_session, business_a, branch_a):
        business_a.is_active = False
        db_session.commit()

        assert get_business_branches(business_a.id) == []
        with pytest.raises(TenantAccessError, match="not active"):
            validate_business_active(business_a.id)


class TestCrossTenantRoutes:
    def test_foreign_branch_in_url_is_404(self, client, business_a, branch_b):
        resp = client.get(branch_url(business_a, branch_b, "/products"))
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Branch not found"

    def test_product_of_other_tenant_is_404(self, client, business_a, branch_a, product_b):
        resp = client.get(branch_url(business_a, branch_a, f"/products/{product_b.id}"))
        assert resp.status_code == 404

    def test_cannot_delete_other_tenant_product(self, client, db_session, business_a, branch_a, product_b):
        resp = client.delete(branch_url(business_a, branch_a, f"/products/{product_b.id}"))
        assert resp.status_code == 404
        assert db_session.query(Product).filter_by(id=product_b.id).first() is not None

    def test_listing_only_shows_own_products(self, client, business_a, branch_a, product_a, product_b):
        resp = client.get(branch_url(business_a, branch_a, "/products"))
        assert [p["id"] for p in resp.get_json()["items"]] == [product_a.id]

    def test_checkout_cannot_sell_other_tenant_product(self, client, db_session, business_a, branch_a, product_b):
        resp = client.post(branch_url(business_a, branch_a, "/transactions"), json={
            "items": [{"product_id": product_b.id, "quantity": 1}],
            "payment_method": "Cash",
        })
        assert resp.status_code == 400
        assert db_session.query(Product).filter_by(id=product_b.id).one().stock == 10

    def test_customers_are_business_scoped(self, client, business_a, business_b, customer_a):
        resp = client.get(f"/api/businesses/{business_b.id}/customers")
        assert resp.get_json()["items"] == []

        resp = client.delete(f"/api/businesses/{business_b.id}/customers/{customer_a.id}")
        assert resp.status_code == 404

    def test_inactive_business_branch_routes_rejected(self, client, db_session, business_a, branch_a):
        business_a.is_active = False
        db_session.commit()

        assert client.get(branch_url(business_a, branch_a, "/products")).status_code == 403
        resp = client.get(f"/api/businesses/{business_a.id}/branches")
        assert resp.get_json() == {"items": [], "count": 0}
