# Overview: Flask API routes for cash cuts and expenses; parses input and returns JSON responses.

"""
Cash register routes.

One shift ("corte") is open at a time. Closing compares the cash the
cashier counted against initial cash + cash sales - drawer expenses.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import register_service
from ..services.register_service import RegisterError
from ..validation import ValidationError, parse_optional_datetime


registers_bp = Blueprint("registers", __name__, url_prefix="/api/registers")


@registers_bp.get("/cuts")
def list_cuts_route():
    cuts = register_service.list_cuts()
    return jsonify({"cash_cuts": [c.to_dict() for c in cuts]}), 200


@registers_bp.get("/current")
def current_cut_route():
    """Live summary of the open shift (cash_cut is null when closed)."""
    return jsonify(register_service.register_summary()), 200


@registers_bp.post("/open")
def open_register_route():
    """Body: {"initial_cash"}"""
    data = request.get_json(silent=True) or {}
    try:
        cut = register_service.open_register(data.get("initial_cash"))
        return jsonify({"cash_cut": cut.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except RegisterError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to open register")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/close")
def close_register_route():
    """Body: {"declared_cash", "notes"?}"""
    data = request.get_json(silent=True) or {}
    try:
        cut = register_service.close_register(data.get("declared_cash"), data.get("notes"))
        return jsonify({"cash_cut": cut.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except RegisterError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to close register")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/include-orphans")
def include_orphans_route():
    """Pull today's sales made before the shift opened into the shift."""
    try:
        cut = register_service.include_orphaned_sales()
        return jsonify({"cash_cut": cut.to_dict()}), 200
    except RegisterError as e:
        return jsonify({"error": str(e), "details": e.details}), 409


@registers_bp.get("/expenses")
def list_expenses_route():
    """Query params: start, end (ISO-8601)"""
    try:
        expenses = register_service.list_expenses(
            start=parse_optional_datetime(request.args.get("start"), "start"),
            end=parse_optional_datetime(request.args.get("end"), "end"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"expenses": [e.to_dict() for e in expenses]}), 200


@registers_bp.post("/expenses")
def add_expense_route():
    """Body: {"description", "amount", "category"?, "source"?, "affects_cash_box"?}"""
    data = request.get_json(silent=True) or {}
    try:
        expense = register_service.add_expense(data)
        return jsonify({"expense": expense.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add expense")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.put("/expenses/<int:expense_id>")
def update_expense_route(expense_id: int):
    data = request.get_json(silent=True) or {}
    try:
        expense = register_service.update_expense(expense_id, data)
        return jsonify({"expense": expense.to_dict()}), 200

    except RegisterError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@registers_bp.delete("/expenses/<int:expense_id>")
def delete_expense_route(expense_id: int):
    try:
        register_service.delete_expense(expense_id)
    except RegisterError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"deleted": expense_id}), 200
