# Overview: Flask API routes for tariff tables; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import pricing_service, tariff_service
from ..services.tariff_service import TariffError
from ..validation import ValidationError, ConflictError, parse_int, to_money


tariffs_bp = Blueprint("tariffs", __name__, url_prefix="/api/tariffs")


@tariffs_bp.get("")
def list_tariffs_route():
    """Query params: device_type (optional)"""
    tariffs = tariff_service.list_tariffs(request.args.get("device_type"))
    return jsonify({"tariffs": [t.to_dict() for t in tariffs]}), 200


@tariffs_bp.post("")
def create_tariff_route():
    """
    Create a tariff.

    Body: {"name", "device_type", "ranges": [{"min_minutes", "max_minutes", "price"}], "id"?}
    Gaps and overlaps between ranges are accepted.
    """
    data = request.get_json(silent=True) or {}
    try:
        tariff = tariff_service.create_tariff(
            data.get("name"),
            data.get("device_type"),
            data.get("ranges") or [],
            tariff_id=data.get("id"),
        )
        return jsonify({"tariff": tariff.to_dict()}), 201

    except (ValidationError, TariffError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create tariff")
        return jsonify({"error": "Internal server error"}), 500


@tariffs_bp.get("/<tariff_id>")
def get_tariff_route(tariff_id: str):
    try:
        tariff = tariff_service.get_tariff(tariff_id)
    except TariffError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"tariff": tariff.to_dict()}), 200


@tariffs_bp.put("/<tariff_id>")
def update_tariff_route(tariff_id: str):
    """Replace name, device type and/or the full range list."""
    data = request.get_json(silent=True) or {}
    try:
        tariff_service.get_tariff(tariff_id)
    except TariffError as e:
        return jsonify({"error": str(e)}), 404

    try:
        tariff = tariff_service.update_tariff(tariff_id, data)
        return jsonify({"tariff": tariff.to_dict()}), 200
    except (ValidationError, TariffError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update tariff")
        return jsonify({"error": "Internal server error"}), 500


@tariffs_bp.delete("/<tariff_id>")
def delete_tariff_route(tariff_id: str):
    try:
        tariff_service.delete_tariff(tariff_id)
    except TariffError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"deleted": tariff_id}), 200


@tariffs_bp.get("/<tariff_id>/quote")
def quote_minutes_route(tariff_id: str):
    """Price an arbitrary number of minutes. Query params: minutes"""
    try:
        tariff = tariff_service.get_tariff(tariff_id)
    except TariffError as e:
        return jsonify({"error": str(e)}), 404

    try:
        minutes = parse_int(request.args.get("minutes", "0"), "minutes", minimum=0)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    cost = pricing_service.calculate_cost(minutes, tariff)
    return jsonify({"tariff_id": tariff.id, "minutes": minutes, "cost": str(to_money(cost))}), 200
