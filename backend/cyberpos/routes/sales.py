# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""Counter sales, manual cash entries and the sales ledger."""

from decimal import Decimal

from flask import Blueprint, request, jsonify, current_app

from ..services import checkout_service, sales_service
from ..services.checkout_service import CheckoutError
from ..services.sales_service import SaleError
from ..validation import ValidationError, parse_int, parse_money, parse_optional_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _overlay_args(data: dict) -> dict:
    return {
        "add_vat": bool(data.get("add_vat", False)),
        "clip_term": data.get("clip_term") or "CONTADO",
        "commission_payer": data.get("commission_payer") or "CLIENT",
    }


def _cart_subtotal(items: list) -> Decimal:
    subtotal = Decimal("0")
    for i, item in enumerate(items):
        price = parse_money(item.get("price_at_sale"), f"items[{i}].price_at_sale")
        subtotal += price * parse_int(item.get("quantity", 1), f"items[{i}].quantity", minimum=1)
    return subtotal


@sales_bp.get("")
def list_sales_route():
    """
    List recorded sales, newest first.

    Query params: start, end (ISO-8601), sale_type, payment_method
    """
    try:
        sales = sales_service.list_sales(
            start=parse_optional_datetime(request.args.get("start"), "start"),
            end=parse_optional_datetime(request.args.get("end"), "end"),
            sale_type=request.args.get("sale_type"),
            payment_method=request.args.get("payment_method"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200


@sales_bp.post("/quote")
def quote_route():
    """
    Preview the checkout overlay for a subtotal.

    Body: {"subtotal", "payment_method", "add_vat"?, "clip_term"?,
           "commission_payer"?, "amount_received"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        received = data.get("amount_received")
        quote = checkout_service.quote_checkout(
            parse_money(data.get("subtotal"), "subtotal"),
            (data.get("payment_method") or "CASH").upper(),
            amount_received=parse_money(received, "amount_received") if received not in (None, "") else None,
            **_overlay_args(data),
        )
        return jsonify({"quote": quote.to_dict()}), 200

    except (ValidationError, CheckoutError) as e:
        return jsonify({"error": str(e)}), 400


@sales_bp.post("")
def create_pos_sale_route():
    """
    Counter (POS) checkout.

    Body: {"items": [{"product_id"|"product_ref", "product_name", "quantity",
           "price_at_sale"}], "payment_method", "customer_id"?, "add_vat"?,
           "clip_term"?, "commission_payer"?, "amount_received"?}

    Catalog stock is decremented for each line.
    """
    data = request.get_json(silent=True) or {}
    items = data.get("items") or []
    payment_method = (data.get("payment_method") or "CASH").upper()

    try:
        if not items:
            return jsonify({"error": "items required"}), 400

        received = data.get("amount_received")
        received = parse_money(received, "amount_received") if received not in (None, "") else None

        quote = checkout_service.quote_checkout(
            _cart_subtotal(items), payment_method, amount_received=received, **_overlay_args(data)
        )
        if not checkout_service.is_payment_sufficient(quote, payment_method, received):
            return jsonify({
                "error": "Insufficient payment",
                "details": {"final_total": str(quote.final_total), "amount_received": str(received)},
            }), 400

        sale = sales_service.record_sale(
            list(items) + quote.extra_items,
            "POS",
            payment_method,
            data.get("customer_id"),
        )
        return jsonify({"sale": sale.to_dict(), "quote": quote.to_dict()}), 201

    except (ValidationError, CheckoutError) as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/manual")
def manual_entry_route():
    """Body: {"category": CIBER|SERVICIOS|RECARGAS, "amount"}"""
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.record_manual_entry(data.get("category"), data.get("amount"))
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record manual entry")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except SaleError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.patch("/<int:sale_id>")
def update_sale_route(sale_id: int):
    """
    Admin override: change payment_method or customer_id.

    Items and total are never edited.
    """
    data = request.get_json(silent=True) or {}
    try:
        sales_service.get_sale(sale_id)
    except SaleError as e:
        return jsonify({"error": str(e)}), 404

    try:
        sale = sales_service.update_sale(sale_id, data)
        return jsonify({"sale": sale.to_dict()}), 200
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    """Admin override: remove a sale. Stock and points are not restored."""
    try:
        sales_service.delete_sale(sale_id)
    except SaleError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"deleted": sale_id}), 200
