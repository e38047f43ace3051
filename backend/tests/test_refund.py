# Overview: Pytest coverage for the refund calculator and refund execution.

"""
Refund Tests

Pure calculator:
- items start at 0 and are bounded by what is still refundable
- totals exclude zero-quantity items
- status resolves to REFUNDED only when every line is fully refunded

Execution:
- stock restored, refunded_quantity accumulated, REFUND record written
- PAID -> PARTIALLY_REFUNDED -> REFUNDED, never back
- rejected refunds leave everything untouched
"""

from types import SimpleNamespace

import pytest

from aruspos.models import (
    Customer,
    Product,
    Transaction,
    TRANSACTION_STATUS_PAID,
    TRANSACTION_STATUS_PARTIALLY_REFUNDED,
    TRANSACTION_STATUS_REFUNDED,
    TRANSACTION_TYPE_REFUND,
)
from aruspos.services.checkout_service import checkout
from aruspos.services.refund_service import (
    RefundError,
    RefundNotFoundError,
    build_refund_items,
    clamp_refund_quantity,
    execute_refund,
    parse_refund_quantities,
    preview_refund,
    resolve_refund_status,
    total_refund_amount,
)

from conftest import NOW


def _sale(lines):
    return SimpleNamespace(lines=[
        SimpleNamespace(id=i + 1, product_id=i + 1, name=name, quantity=qty,
                        refunded_quantity=refunded, unit_price_cents=price)
        for i, (name, qty, price, refunded) in enumerate(lines)
    ])


class TestRefundCalculator:
    def test_partial_refund_scenario(self):
        sale = _sale([("A", 2, 500, 0), ("B", 1, 2000, 0)])
        items = build_refund_items(sale)
        items = [items[0].with_quantity(1), items[1].with_quantity(0)]

        assert total_refund_amount(items) == 500
        assert resolve_refund_status(sale.lines, [1, 0]) == TRANSACTION_STATUS_PARTIALLY_REFUNDED

    def test_full_refund_status(self):
        sale = _sale([("A", 2, 500, 0), ("B", 1, 2000, 0)])
        assert resolve_refund_status(sale.lines, [2, 1]) == TRANSACTION_STATUS_REFUNDED

    def test_items_start_at_zero_with_remaining_max(self):
        sale = _sale([("A", 5, 100, 2), ("B", 1, 300, 1)])
        items = build_refund_items(sale)

        assert [i.quantity for i in items] == [0, 0]
        assert [i.max_quantity for i in items] == [3, 0]
        assert total_refund_amount(items) == 0

    def test_previously_refunded_counts_toward_full(self):
        sale = _sale([("A", 5, 100, 2)])
        assert resolve_refund_status(sale.lines, [3]) == TRANSACTION_STATUS_REFUNDED

    @pytest.mark.parametrize("requested,max_qty,expected", [(3, 5, 3), (9, 5, 5), (-2, 5, 0), (0, 0, 0)])
    def test_clamp(self, requested, max_qty, expected):
        assert clamp_refund_quantity(requested, max_qty) == expected

    def test_total_is_sum_of_price_times_quantity(self):
        sale = _sale([("A", 4, 250, 0), ("B", 3, 1000, 0), ("C", 1, 99, 0)])
        items = [item.with_quantity(q) for item, q in zip(build_refund_items(sale), [4, 2, 0])]
        assert total_refund_amount(items) == 250 * 4 + 1000 * 2

    def test_parse_refund_quantities(self):
        assert parse_refund_quantities([{"line_id": 3, "quantity": 1}]) == {3: 1}
        with pytest.raises(RefundError):
            parse_refund_quantities([])
        with pytest.raises(RefundError):
            parse_refund_quantities([{"line_id": 3, "quantity": -1}])
        with pytest.raises(RefundError):
            parse_refund_quantities([{"line_id": 3, "quantity": 1}, {"line_id": 3, "quantity": 2}])


@pytest.fixture
def sale(db_session, business_a, branch_a, settings_a, make_product):
    """SALE with lines A (qty 2 @ 5.00) and B (qty 1 @ 20.00)."""
    a = make_product(branch_a, name="A", price_cents=500, stock=10)
    b = make_product(branch_a, name="B", price_cents=2000, stock=10)
    return checkout(
        business_a.id, branch_a.id,
        [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
        settings=settings_a, now=NOW, payment_method="Cash",
    )


def _line_ids(sale):
    return [line.id for line in sale.lines]


def _stocks(db_session, sale):
    return [db_session.query(Product).filter_by(id=line.product_id).one().stock for line in sale.lines]


class TestExecuteRefund:
    def test_partial_then_full(self, db_session, business_a, branch_a, sale):
        line_a, line_b = _line_ids(sale)

        updated, refund = execute_refund(business_a.id, branch_a.id, sale.id, {line_a: 1}, now=NOW)
        assert updated.status == TRANSACTION_STATUS_PARTIALLY_REFUNDED
        assert refund.type == TRANSACTION_TYPE_REFUND
        assert refund.amount_cents == 500
        assert refund.original_transaction_id == sale.id
        assert [l.quantity for l in refund.lines] == [1]
        assert _stocks(db_session, sale) == [9, 9]

        updated, refund = execute_refund(business_a.id, branch_a.id, sale.id, {line_a: 1, line_b: 1}, now=NOW)
        assert updated.status == TRANSACTION_STATUS_REFUNDED
        assert refund.amount_cents == 2500
        assert [l.refunded_quantity for l in updated.lines] == [2, 1]
        assert _stocks(db_session, sale) == [10, 10]

    def test_fully_refunded_sale_rejected(self, db_session, business_a, branch_a, sale):
        line_a, line_b = _line_ids(sale)
        execute_refund(business_a.id, branch_a.id, sale.id, {line_a: 2, line_b: 1}, now=NOW)

        with pytest.raises(RefundError, match="already fully refunded"):
            execute_refund(business_a.id, branch_a.id, sale.id, {line_a: 1}, now=NOW)

    def test_zero_total_rejected(self, db_session, business_a, branch_a, sale):
        line_a, _ = _line_ids(sale)
        with pytest.raises(RefundError, match="Nothing to refund"):
            execute_refund(business_a.id, branch_a.id, sale.id, {line_a: 0}, now=NOW)

        stored = db_session.query(Transaction).filter_by(id=sale.id).one()
        assert stored.status == TRANSACTION_STATUS_PAID

    def test_over_quantity_rejected_without_changes(self, db_session, business_a, branch_a, sale):
        line_a, line_b = _line_ids(sale)
        with pytest.raises(RefundError) as exc:
            execute_refund(business_a.id, branch_a.id, sale.id, {line_a: 1, line_b: 2}, now=NOW)

        assert exc.value.details["items"][0]["line_id"] == line_b
        stored = db_session.query(Transaction).filter_by(id=sale.id).one()
        assert stored.status == TRANSACTION_STATUS_PAID
        assert [l.refunded_quantity for l in stored.lines] == [0, 0]
        assert _stocks(db_session, sale) == [8, 9]
        assert db_session.query(Transaction).count() == 1

    def test_refund_record_cannot_be_refunded(self, db_session, business_a, branch_a, sale):
        line_a, _ = _line_ids(sale)
        _, refund = execute_refund(business_a.id, branch_a.id, sale.id, {line_a: 1}, now=NOW)

        with pytest.raises(RefundError, match="Only SALE"):
            execute_refund(business_a.id, branch_a.id, refund.id, {refund.lines[0].id: 1}, now=NOW)

    def test_unknown_line_rejected(self, db_session, business_a, branch_a, sale):
        with pytest.raises(RefundError, match="Line not part"):
            execute_refund(business_a.id, branch_a.id, sale.id, {999999: 1}, now=NOW)

    def test_other_branch_cannot_refund(self, db_session, business_a, branch_a2, sale):
        line_a, _ = _line_ids(sale)
        with pytest.raises(RefundNotFoundError):
            execute_refund(business_a.id, branch_a2.id, sale.id, {line_a: 1}, now=NOW)

    def test_preview(self, db_session, business_a, branch_a, sale):
        preview = preview_refund(business_a.id, branch_a.id, sale.id)
        assert preview["refundable"] is True
        assert [i["max_quantity"] for i in preview["items"]] == [2, 1]
        assert all(i["quantity"] == 0 for i in preview["items"])

    def test_refund_reduces_customer_total_spent(self, db_session, business_a, branch_a, settings_a,
                                                  product_a, customer_a):
        sale = checkout(
            business_a.id, branch_a.id, [{"product_id": product_a.id, "quantity": 2}],
            settings=settings_a, now=NOW, customer_id=customer_a.id, payment_method="Cash",
        )
        after_sale = db_session.query(Customer).filter_by(id=customer_a.id).one().total_spent_cents
        assert after_sale == 2160

        execute_refund(business_a.id, branch_a.id, sale.id, {sale.lines[0].id: 1}, now=NOW)
        assert db_session.query(Customer).filter_by(id=customer_a.id).one().total_spent_cents == 1160

        execute_refund(business_a.id, branch_a.id, sale.id, {sale.lines[0].id: 1}, now=NOW)
        assert db_session.query(Customer).filter_by(id=customer_a.id).one().total_spent_cents == 160

    def test_anonymous_refund_touches_no_customer(self, db_session, business_a, branch_a, sale, customer_a):
        line_a, _ = _line_ids(sale)
        execute_refund(business_a.id, branch_a.id, sale.id, {line_a: 1}, now=NOW)
        assert db_session.query(Customer).filter_by(id=customer_a.id).one().total_spent_cents == 0
