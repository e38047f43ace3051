"""
Read-side reporting for a branch: transaction history, dashboard figures,
sales report, invoice payload and spreadsheet export rows.

Revenue figures sum SALE amounts only; REFUND records are listed but never
subtracted, matching the dashboard's "total revenue" definition.
Invoice and export outputs are plain records; rendering them is left to
the consumer.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..formatting import format_cents
from ..models import (
    Branch,
    Business,
    Customer,
    Transaction,
    TransactionLine,
    TRANSACTION_TYPE_SALE,
)
from ..time_utils import parse_iso_date, to_utc_z
from ..validation import ValidationError
from .pagination import LIKE_ESCAPE, contains_pattern, paginate


TRANSACTION_FILTER_TYPES = ("customer", "date", "item")
TOP_PRODUCTS_LIMIT = 5

EXPORT_HEADERS = ["Transaction ID", "Customer Name", "Date", "Type", "Status", "Amount", "Items"]


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def _parse_day(value: str, field: str) -> date:
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format")
    return parsed


def _branch_transactions(business_id: int, branch_id: int):
    return db.session.query(Transaction).filter_by(business_id=business_id, branch_id=branch_id)


def filter_transactions(query, filter_type: str | None, value: str | None):
    """
    Apply one transactions-view filter:
    - customer: case-insensitive substring of the customer name
    - date: occurred on that calendar day (YYYY-MM-DD, UTC)
    - item: any line name contains the substring
    An empty value leaves the query unfiltered.
    """
    if not value:
        return query
    if filter_type not in TRANSACTION_FILTER_TYPES:
        raise ValidationError(f"filter must be one of: {', '.join(TRANSACTION_FILTER_TYPES)}")

    if filter_type == "customer":
        return query.filter(Transaction.customer_name.ilike(contains_pattern(value), escape=LIKE_ESCAPE))

    if filter_type == "date":
        start, end = _day_bounds(_parse_day(value, "date"))
        return query.filter(Transaction.occurred_at >= start, Transaction.occurred_at < end)

    line_match = (
        db.session.query(TransactionLine.id)
        .filter(
            TransactionLine.transaction_id == Transaction.id,
            TransactionLine.name.ilike(contains_pattern(value), escape=LIKE_ESCAPE),
        )
        .exists()
    )
    return query.filter(line_match)


def list_transactions(
    business_id: int,
    branch_id: int,
    filter_type: str | None = None,
    value: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Branch transactions, newest first, filtered and optionally paginated."""
    query = filter_transactions(_branch_transactions(business_id, branch_id), filter_type, value)
    query = query.order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
    return paginate(query, page, per_page, lambda t: t.to_dict())


def get_transaction(business_id: int, branch_id: int, transaction_id: int) -> Transaction | None:
    return _branch_transactions(business_id, branch_id).filter_by(id=transaction_id).first()


def _sales_sum(query) -> int:
    return int(query.with_entities(func.coalesce(func.sum(Transaction.amount_cents), 0)).scalar() or 0)


def dashboard(business_id: int, branch_id: int, now: datetime) -> dict:
    sales = _branch_transactions(business_id, branch_id).filter(Transaction.type == TRANSACTION_TYPE_SALE)
    start, end = _day_bounds(now.date())
    today = sales.filter(Transaction.occurred_at >= start, Transaction.occurred_at < end)

    return {
        "total_revenue_cents": _sales_sum(sales),
        "sales_today_cents": _sales_sum(today),
        "sales_today_count": today.count(),
        "transaction_count": _branch_transactions(business_id, branch_id).count(),
        "customer_count": db.session.query(Customer).filter_by(business_id=business_id).count(),
    }


def sales_report(business_id: int, branch_id: int, now: datetime) -> dict:
    """Today's figures, the last seven days by day, and this week's top products."""
    sales = (
        _branch_transactions(business_id, branch_id)
        .filter(Transaction.type == TRANSACTION_TYPE_SALE)
        .all()
    )
    today = now.date()

    daily = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        total = sum(t.amount_cents for t in sales if t.occurred_at.date() == day)
        daily.append({"date": day.isoformat(), "name": day.strftime("%a"), "sales_cents": total})

    todays = [t for t in sales if t.occurred_at.date() == today]

    # Week starts on Sunday
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    product_counts: dict = {}
    for t in sales:
        if not (week_start <= t.occurred_at.date() <= today):
            continue
        for line in t.lines:
            key = line.product_id if line.product_id is not None else line.name
            entry = product_counts.setdefault(key, {"product_id": line.product_id, "name": line.name, "quantity": 0})
            entry["quantity"] += line.quantity

    top_products = sorted(product_counts.values(), key=lambda e: e["quantity"], reverse=True)[:TOP_PRODUCTS_LIMIT]

    return {
        "today": {"revenue_cents": sum(t.amount_cents for t in todays), "count": len(todays)},
        "last_7_days": daily,
        "top_products": top_products,
    }


def invoice_payload(business: Business, branch: Branch, txn: Transaction) -> dict:
    currency = txn.currency or business.currency
    lines = []
    for line in txn.lines:
        lines.append({
            "name": line.name,
            "quantity": line.quantity,
            "unit": line.unit or "",
            "unit_price_cents": line.unit_price_cents,
            "line_total_cents": line.line_total_cents,
            "line_total": format_cents(line.line_total_cents, currency),
        })

    return {
        "business": {"name": business.name, "type": business.type},
        "branch": {"name": branch.name, "address": branch.address, "phone": branch.phone},
        "paper_size": business.paper_size,
        "transaction": {
            "id": txn.id,
            "type": txn.type,
            "status": txn.status,
            "customer_name": txn.customer_name,
            "cashier_name": txn.cashier_name,
            "payment_method": txn.payment_method,
            "occurred_at": to_utc_z(txn.occurred_at),
        },
        "currency": currency,
        "lines": lines,
        "totals": {
            "subtotal_cents": txn.subtotal_cents,
            "tax_cents": txn.tax_cents,
            "discount_cents": txn.discount_cents,
            "total_cents": txn.amount_cents,
            "subtotal": format_cents(txn.subtotal_cents, currency),
            "tax": format_cents(txn.tax_cents, currency) if txn.tax_cents > 0 else None,
            "discount": f"-{format_cents(txn.discount_cents, currency)}" if txn.discount_cents > 0 else None,
            "total": format_cents(txn.amount_cents, currency),
        },
    }


def export_rows(
    business_id: int,
    branch_id: int,
    date_from: str,
    date_to: str,
) -> dict:
    """
    Spreadsheet export records for transactions in [date_from, date_to]
    (inclusive calendar days), oldest first.
    """
    if not date_from or not date_to:
        raise ValidationError("date_from and date_to are required")
    start, _ = _day_bounds(_parse_day(date_from, "date_from"))
    _, end = _day_bounds(_parse_day(date_to, "date_to"))
    if start >= end:
        raise ValidationError("date_from must not be after date_to")

    txns = (
        _branch_transactions(business_id, branch_id)
        .filter(Transaction.occurred_at >= start, Transaction.occurred_at < end)
        .order_by(Transaction.occurred_at.asc(), Transaction.id.asc())
        .all()
    )

    rows = []
    for t in txns:
        items = "; ".join(
            f"{line.quantity}x {line.name} @ {format_cents(line.unit_price_cents, t.currency)}"
            for line in t.lines
        )
        rows.append({
            "transaction_id": t.id,
            "customer_name": t.customer_name,
            "date": t.occurred_at.strftime("%Y-%m-%d %H:%M:%S"),
            "type": t.type,
            "status": t.status,
            "amount_cents": t.amount_cents,
            "items": items,
        })

    return {"headers": EXPORT_HEADERS, "rows": rows, "count": len(rows)}
