# Overview: Flask API routes for dashboard and sales report figures.

from flask import Blueprint, g

from ..decorators import require_branch
from ..services import reporting_service
from aruspos.formatting import format_cents
from aruspos.time_utils import utcnow


reports_bp = Blueprint(
    "reports",
    __name__,
    url_prefix="/api/businesses/<int:business_id>/branches/<int:branch_id>/reports",
)


@reports_bp.get("/dashboard")
@require_branch
def dashboard_route(business_id: int, branch_id: int):
    data = reporting_service.dashboard(business_id, branch_id, utcnow())
    currency = g.settings.currency
    data["currency"] = currency
    data["total_revenue"] = format_cents(data["total_revenue_cents"], currency)
    data["sales_today"] = format_cents(data["sales_today_cents"], currency)
    return data


@reports_bp.get("/sales")
@require_branch
def sales_report_route(business_id: int, branch_id: int):
    data = reporting_service.sales_report(business_id, branch_id, utcnow())
    data["currency"] = g.settings.currency
    return data
