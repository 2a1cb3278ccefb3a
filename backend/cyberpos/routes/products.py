# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import products_service
from ..services.products_service import ProductError
from ..validation import ValidationError, ConflictError, parse_int


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """Query params: q (name search), category"""
    products = products_service.list_products(request.args.get("q"), request.args.get("category"))
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.post("")
def create_product_route():
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(data)
        return jsonify({"product": product.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        product = products_service.get_product(product_id)
    except ProductError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"product": product.to_dict()}), 200


@products_bp.put("/<product_id>")
def update_product_route(product_id: str):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(product_id, data)
        return jsonify({"product": product.to_dict()}), 200

    except ProductError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<product_id>")
def delete_product_route(product_id: str):
    try:
        products_service.delete_product(product_id)
    except ProductError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"deleted": product_id}), 200


@products_bp.post("/<product_id>/stock")
def adjust_stock_route(product_id: str):
    """Body: {"delta": int} (signed; stock may go negative)"""
    data = request.get_json(silent=True) or {}
    try:
        products_service.get_product(product_id)
    except ProductError as e:
        return jsonify({"error": str(e)}), 404

    try:
        delta = parse_int(data.get("delta"), "delta")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    product = products_service.adjust_stock(product_id, delta)
    return jsonify({"product": product.to_dict()}), 200
