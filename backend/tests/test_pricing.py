# Overview: Pytest coverage for the pricing engine (pure calculations, no database).

"""
Pricing Engine Tests

Covers line pricing precedence (promotion > bundle > listed price), cart
totals (tax before discount, half-up rounding, tax disabled), and the
input-time quantity clamp.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from aruspos.services.pricing_service import (
    PRICE_SOURCE_BUNDLE,
    PRICE_SOURCE_LIST,
    PRICE_SOURCE_PROMOTION,
    CartLine,
    bundle_price,
    build_line_items,
    calculate_totals,
    clamp_cart_quantity,
    price_line,
)
from aruspos.services.settings_service import BusinessSettings


NOW = datetime(2026, 3, 15, 12, 0, 0)
YESTERDAY = NOW - timedelta(days=1)
TOMORROW = NOW + timedelta(days=1)

NO_TAX = BusinessSettings(currency="USD", tax_enabled=False, tax_rate_bps=800)
TAX_8 = BusinessSettings(currency="USD", tax_enabled=True, tax_rate_bps=800)


def product(id=1, name="Item", price_cents=1000, bundles=None):
    return SimpleNamespace(
        id=id, name=name, price_cents=price_cents, purchase_price_cents=None, unit="pcs", bundles=bundles
    )


def promo(product_id=1, promo_price_cents=700, start_at=YESTERDAY, end_at=TOMORROW, id=10):
    return SimpleNamespace(
        id=id, product_id=product_id, promo_price_cents=promo_price_cents, start_at=start_at, end_at=end_at
    )


def line(price, qty):
    return CartLine(product_id=None, name="x", quantity=qty, unit_price_cents=price, original_price_cents=price)


class TestExampleScenarios:
    def test_single_item_no_tax(self):
        lines = build_line_items([(product(price_cents=1000), 3)], [], NOW)
        totals = calculate_totals(lines, NO_TAX, 0)

        assert totals.subtotal_cents == 3000
        assert totals.tax_cents == 0
        assert totals.total_cents == 3000

    def test_single_item_with_tax(self):
        lines = build_line_items([(product(price_cents=1000), 3)], [], NOW)
        totals = calculate_totals(lines, TAX_8, 0)

        assert totals.tax_cents == 240
        assert totals.total_cents == 3240

    def test_discount_applied_after_tax(self):
        lines = build_line_items([(product(price_cents=1000), 3)], [], NOW)
        totals = calculate_totals(lines, TAX_8, 500)

        assert totals.tax_cents == 240
        assert totals.discount_cents == 500
        assert totals.total_cents == 2740

    def test_active_promotion_sets_price(self):
        item = price_line(product(price_cents=1000), 1, [promo(promo_price_cents=700)], NOW)

        assert item.unit_price_cents == 700
        assert item.original_price_cents == 1000
        assert item.price_source == PRICE_SOURCE_PROMOTION
        assert item.has_promo

    def test_expired_promotion_uses_listed_price(self):
        expired = promo(start_at=NOW - timedelta(days=3), end_at=YESTERDAY)
        item = price_line(product(price_cents=1000), 1, [expired], NOW)

        assert item.unit_price_cents == 1000
        assert item.price_source == PRICE_SOURCE_LIST


class TestPricePrecedence:
    def test_promotion_window_end_is_exclusive(self):
        ending_now = promo(start_at=YESTERDAY, end_at=NOW)
        assert price_line(product(), 1, [ending_now], NOW).unit_price_cents == 1000

    def test_promotion_window_start_is_inclusive(self):
        starting_now = promo(start_at=NOW, end_at=TOMORROW)
        assert price_line(product(), 1, [starting_now], NOW).unit_price_cents == 700

    def test_scheduled_promotion_not_applied(self):
        scheduled = promo(start_at=TOMORROW, end_at=TOMORROW + timedelta(days=1))
        assert price_line(product(), 1, [scheduled], NOW).unit_price_cents == 1000

    def test_promotion_for_other_product_ignored(self):
        assert price_line(product(id=1), 1, [promo(product_id=2)], NOW).unit_price_cents == 1000

    def test_lowest_overlapping_promotion_wins(self):
        promos = [promo(id=1, promo_price_cents=800), promo(id=2, promo_price_cents=650)]
        item = price_line(product(), 1, promos, NOW)
        assert item.unit_price_cents == 650
        assert item.promotion_id == 2

    def test_bundle_tier_applies_at_threshold(self):
        bundles = [{"quantity": 3, "price_cents": 900}, {"quantity": 6, "price_cents": 800}]
        p = product(bundles=bundles)

        assert price_line(p, 2, [], NOW).unit_price_cents == 1000
        assert price_line(p, 3, [], NOW).unit_price_cents == 900
        assert price_line(p, 5, [], NOW).unit_price_cents == 900
        assert price_line(p, 6, [], NOW).price_source == PRICE_SOURCE_BUNDLE
        assert price_line(p, 10, [], NOW).unit_price_cents == 800

    def test_promotion_beats_bundle(self):
        p = product(bundles=[{"quantity": 2, "price_cents": 500}])
        assert price_line(p, 4, [promo(promo_price_cents=700)], NOW).unit_price_cents == 700

    def test_bundle_price_ignores_unsorted_input(self):
        bundles = [{"quantity": 10, "price_cents": 700}, {"quantity": 2, "price_cents": 950}]
        assert bundle_price(bundles, 4) == 950
        assert bundle_price(bundles, 1) is None
        assert bundle_price(None, 4) is None

    def test_build_line_items_preserves_order(self):
        cart = [(product(id=2, name="B"), 1), (product(id=1, name="A"), 2)]
        lines = build_line_items(cart, [promo(product_id=1)], NOW)
        assert [l.name for l in lines] == ["B", "A"]
        assert lines[1].unit_price_cents == 700


class TestTotals:
    def test_subtotal_is_sum_of_price_times_quantity(self):
        lines = [line(500, 2), line(2000, 1), line(125, 4)]
        assert calculate_totals(lines, NO_TAX).subtotal_cents == 500 * 2 + 2000 + 125 * 4

    def test_empty_cart_is_zero(self):
        totals = calculate_totals([], TAX_8, 0)
        assert (totals.subtotal_cents, totals.tax_cents, totals.total_cents) == (0, 0, 0)

    @pytest.mark.parametrize("rate_bps", [0, 800, 1000, 2500])
    def test_tax_disabled_is_always_zero(self, rate_bps):
        settings = BusinessSettings(tax_enabled=False, tax_rate_bps=rate_bps)
        assert calculate_totals([line(999, 7)], settings).tax_cents == 0

    def test_tax_rounds_half_up(self):
        # amounts in cents: 8% of 125 = 10, 8% of 31 = 2.48
        assert calculate_totals([line(125, 1)], TAX_8).tax_cents == 10
        assert calculate_totals([line(31, 1)], TAX_8).tax_cents == 2
        # 10% of 5 cents = 0.5 cent, rounds up
        ten = BusinessSettings(tax_enabled=True, tax_rate_bps=1000)
        assert calculate_totals([line(5, 1)], ten).tax_cents == 1

    def test_tax_computed_before_discount(self):
        totals = calculate_totals([line(10000, 1)], TAX_8, 10000)
        assert totals.tax_cents == 800
        assert totals.total_cents == 800

    def test_negative_discount_clamped_to_zero(self):
        totals = calculate_totals([line(1000, 1)], NO_TAX, -300)
        assert totals.discount_cents == 0
        assert totals.total_cents == 1000

    def test_discount_not_clamped_to_subtotal(self):
        totals = calculate_totals([line(1000, 1)], NO_TAX, 1500)
        assert totals.discount_cents == 1500
        assert totals.total_cents == -500


class TestClampCartQuantity:
    @pytest.mark.parametrize(
        "requested,stock,expected",
        [(5, 10, 5), (15, 10, 10), (0, 10, 1), (-3, 10, 1), (1, 1, 1)],
    )
    def test_clamps_to_one_and_stock(self, requested, stock, expected):
        assert clamp_cart_quantity(requested, stock) == expected
