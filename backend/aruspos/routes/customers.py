# Overview: Flask API routes for business-wide customers.

from flask import Blueprint, request, current_app

from ..decorators import require_business
from ..services import customers_service
from ..services.customers_service import CustomerNotFoundError
from ..validation import ValidationError


customers_bp = Blueprint("customers", __name__, url_prefix="/api/businesses/<int:business_id>/customers")


@customers_bp.get("")
@require_business
def list_customers_route(business_id: int):
    customers = customers_service.list_customers(business_id, search=request.args.get("q"))
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}


@customers_bp.post("")
@require_business
def create_customer_route(business_id: int):
    try:
        customer = customers_service.create_customer(business_id, request.get_json(silent=True))
        return {"customer": customer.to_dict()}, 201
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500


@customers_bp.delete("/<int:customer_id>")
@require_business
def delete_customer_route(business_id: int, customer_id: int):
    try:
        customers_service.delete_customer(business_id, customer_id)
        return {"ok": True}
    except CustomerNotFoundError:
        return {"error": "Customer not found"}, 404
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return {"error": "Internal server error"}, 500
