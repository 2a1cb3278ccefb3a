# Overview: Flask API routes for customers and loyalty points; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import customer_service, loyalty_service
from ..services.customer_service import CustomerError
from ..services.loyalty_service import LoyaltyError
from ..validation import ValidationError, ConflictError, parse_int


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers_route():
    """Query params: q (name search)"""
    customers = customer_service.list_customers(request.args.get("q"))
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@customers_bp.post("")
def create_customer_route():
    """Body: {"name", "phone"?, "email"?, "id"?}"""
    data = request.get_json(silent=True) or {}
    try:
        customer = customer_service.create_customer(
            data.get("name"),
            phone=data.get("phone"),
            email=data.get("email"),
            customer_id=data.get("id"),
        )
        return jsonify({"customer": customer.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<customer_id>")
def get_customer_route(customer_id: str):
    """Customer with redeemable free hours."""
    try:
        customer = customer_service.get_customer(customer_id)
    except CustomerError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({
        "customer": customer.to_dict(),
        "max_free_hours": loyalty_service.max_free_hours(customer),
    }), 200


@customers_bp.put("/<customer_id>")
def update_customer_route(customer_id: str):
    data = request.get_json(silent=True) or {}
    try:
        customer = customer_service.update_customer(customer_id, data)
        return jsonify({"customer": customer.to_dict()}), 200

    except CustomerError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<customer_id>/points")
def list_points_route(customer_id: str):
    """Loyalty ledger for one customer, newest first."""
    try:
        customer = customer_service.get_customer(customer_id)
    except CustomerError as e:
        return jsonify({"error": str(e)}), 404
    transactions = loyalty_service.list_transactions(customer.id)
    return jsonify({
        "points": customer.points,
        "transactions": [t.to_dict() for t in transactions],
    }), 200


@customers_bp.post("/<customer_id>/points")
def adjust_points_route(customer_id: str):
    """
    Manual signed adjustment.

    Body: {"points": int, "reason": str}
    """
    data = request.get_json(silent=True) or {}
    try:
        customer_service.get_customer(customer_id)
    except CustomerError as e:
        return jsonify({"error": str(e)}), 404

    try:
        points = parse_int(data.get("points"), "points")
        customer = loyalty_service.adjust(customer_id, points, data.get("reason"))
        return jsonify({"customer": customer.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except LoyaltyError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to adjust points")
        return jsonify({"error": "Internal server error"}), 500
