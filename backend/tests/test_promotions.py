# Overview: Pytest coverage for promotion CRUD and derived status.

from datetime import timedelta

import pytest

from aruspos.models import Promotion
from aruspos.services.promotions_service import (
    PromotionError,
    PromotionNotFoundError,
    active_promotions,
    create_promotion,
    delete_promotion,
    list_promotions,
)
from aruspos.statuses import (
    PROMOTION_STATUS_ACTIVE,
    PROMOTION_STATUS_EXPIRED,
    PROMOTION_STATUS_SCHEDULED,
    derive_promotion_status,
)

from conftest import NOW, branch_url


def _promo_payload(product, **overrides):
    payload = {
        "product_id": product.id,
        "promo_price_cents": 800,
        "start_at": "2026-03-01T00:00:00Z",
        "end_at": "2026-04-01T00:00:00Z",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def promotions(business_a, branch_a, product_a):
    """One expired, one active and one scheduled promotion at NOW."""
    create_promotion(business_a.id, branch_a.id, _promo_payload(
        product_a, start_at="2026-01-01T00:00:00Z", end_at="2026-02-01T00:00:00Z", promo_price_cents=700,
    ))
    create_promotion(business_a.id, branch_a.id, _promo_payload(product_a))
    create_promotion(business_a.id, branch_a.id, _promo_payload(
        product_a, start_at="2026-05-01T00:00:00Z", end_at="2026-06-01T00:00:00Z", promo_price_cents=900,
    ))


class TestCreatePromotion:
    def test_snapshots_product_name(self, db_session, business_a, branch_a, product_a):
        promo = create_promotion(business_a.id, branch_a.id, _promo_payload(product_a))
        assert promo.product_name == "Latte"
        assert promo.promo_price_cents == 800
        assert derive_promotion_status(NOW, promo.start_at, promo.end_at) == PROMOTION_STATUS_ACTIVE

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"promo_price_cents": -1}, "promo_price_cents"),
            ({"promo_price_cents": "abc"}, "promo_price_cents"),
            ({"start_at": "not a date"}, "start_at"),
            ({"end_at": None}, "Missing required fields"),
            ({"start_at": "2026-04-01T00:00:00Z"}, "start_at must be before end_at"),
            ({"start_at": "2026-05-01T00:00:00Z"}, "start_at must be before end_at"),
        ],
    )
    def test_rejects_invalid_payload(self, db_session, business_a, branch_a, product_a, overrides, message):
        with pytest.raises(PromotionError, match=message):
            create_promotion(business_a.id, branch_a.id, _promo_payload(product_a, **overrides))
        assert db_session.query(Promotion).count() == 0

    def test_product_must_be_in_branch(self, db_session, business_a, branch_a, branch_a2, make_product):
        other = make_product(branch_a2, name="Mocha")
        with pytest.raises(PromotionError, match="Product not found"):
            create_promotion(business_a.id, branch_a.id, _promo_payload(other))


class TestListPromotions:
    def test_newest_end_first_with_status(self, db_session, business_a, branch_a, promotions):
        items = list_promotions(business_a.id, branch_a.id, NOW)

        assert [p["status"] for p in items] == [
            PROMOTION_STATUS_SCHEDULED,
            PROMOTION_STATUS_ACTIVE,
            PROMOTION_STATUS_EXPIRED,
        ]
        assert all(p["original_price_cents"] == 1000 for p in items)

    def test_status_filter(self, db_session, business_a, branch_a, promotions):
        items = list_promotions(business_a.id, branch_a.id, NOW, status="expired")
        assert [p["promo_price_cents"] for p in items] == [700]

    def test_status_moves_with_now(self, db_session, business_a, branch_a, promotions):
        later = NOW + timedelta(days=60)
        statuses = [p["status"] for p in list_promotions(business_a.id, branch_a.id, later)]
        assert statuses == [PROMOTION_STATUS_ACTIVE, PROMOTION_STATUS_EXPIRED, PROMOTION_STATUS_EXPIRED]

    def test_active_promotions(self, db_session, business_a, branch_a, promotions):
        active = active_promotions(business_a.id, branch_a.id, NOW)
        assert [p.promo_price_cents for p in active] == [800]

    def test_other_branch_sees_nothing(self, db_session, business_a, branch_a2, promotions):
        assert list_promotions(business_a.id, branch_a2.id, NOW) == []


class TestDeletePromotion:
    def test_delete(self, db_session, business_a, branch_a, product_a):
        promo = create_promotion(business_a.id, branch_a.id, _promo_payload(product_a))
        delete_promotion(business_a.id, branch_a.id, promo.id)
        assert db_session.query(Promotion).count() == 0

    def test_delete_from_other_branch_not_found(self, db_session, business_a, branch_a, branch_a2, product_a):
        promo = create_promotion(business_a.id, branch_a.id, _promo_payload(product_a))
        with pytest.raises(PromotionNotFoundError):
            delete_promotion(business_a.id, branch_a2.id, promo.id)
        assert db_session.query(Promotion).count() == 1


class TestPromotionRoutes:
    def test_create_and_list(self, client, business_a, branch_a, product_a):
        resp = client.post(branch_url(business_a, branch_a, "/promotions"), json=_promo_payload(
            product_a, start_at="2020-01-01T00:00:00Z", end_at="2099-01-01T00:00:00Z",
        ))
        assert resp.status_code == 201
        assert resp.get_json()["promotion"]["status"] == PROMOTION_STATUS_ACTIVE

        resp = client.get(branch_url(business_a, branch_a, "/promotions/active"))
        assert resp.get_json()["count"] == 1

    def test_create_invalid_is_400(self, client, business_a, branch_a, product_a):
        resp = client.post(
            branch_url(business_a, branch_a, "/promotions"),
            json=_promo_payload(product_a, promo_price_cents=-5),
        )
        assert resp.status_code == 400

    def test_delete_missing_is_404(self, client, business_a, branch_a):
        assert client.delete(branch_url(business_a, branch_a, "/promotions/424242")).status_code == 404
