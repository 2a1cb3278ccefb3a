# Overview: Flask API routes for stations and rental sessions; parses input and returns JSON responses.

"""
Station board routes.

Stations are polled by the front desk (GET /api/stations/<id>/estimate every
second while occupied). Checkout prices the session at the request instant,
applies the VAT / CLIP overlay and records one RENTAL sale.
"""

from decimal import Decimal

from flask import Blueprint, request, jsonify, current_app

from ..services import checkout_service, pricing_service, station_service
from ..services.checkout_service import CheckoutError
from ..services.station_service import SessionError, StationError
from ..services.sales_service import SaleError
from ..validation import ValidationError, ConflictError, parse_money
from ..time_utils import utcnow


stations_bp = Blueprint("stations", __name__, url_prefix="/api/stations")


@stations_bp.get("")
def list_stations_route():
    """List every station with its current session (if any)."""
    stations = station_service.list_stations()
    return jsonify({"stations": [s.to_dict() for s in stations]}), 200


@stations_bp.post("")
def create_station_route():
    """
    Create a station.

    Body: {"name", "device_type", "tariff_id"?, "id"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        station = station_service.create_station(
            data.get("name"),
            data.get("device_type"),
            tariff_id=data.get("tariff_id"),
            station_id=data.get("id"),
        )
        return jsonify({"station": station.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create station")
        return jsonify({"error": "Internal server error"}), 500


@stations_bp.get("/<station_id>")
def get_station_route(station_id: str):
    try:
        station = station_service.get_station(station_id)
    except StationError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"station": station.to_dict()}), 200


@stations_bp.put("/<station_id>")
def update_station_route(station_id: str):
    data = request.get_json(silent=True) or {}
    try:
        station = station_service.update_station(station_id, data)
        return jsonify({"station": station.to_dict()}), 200

    except StationError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update station")
        return jsonify({"error": "Internal server error"}), 500


@stations_bp.delete("/<station_id>")
def delete_station_route(station_id: str):
    """Delete a station. Rejected while a session is open."""
    try:
        station_service.delete_station(station_id)
        return jsonify({"deleted": station_id}), 200

    except StationError as e:
        return jsonify({"error": str(e)}), 404
    except SessionError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete station")
        return jsonify({"error": "Internal server error"}), 500


@stations_bp.post("/<station_id>/maintenance")
def maintenance_route(station_id: str):
    """Body: {"enabled": bool}"""
    data = request.get_json(silent=True) or {}
    try:
        station = station_service.set_maintenance(station_id, bool(data.get("enabled", True)))
        return jsonify({"station": station.to_dict()}), 200

    except StationError as e:
        return jsonify({"error": str(e)}), 404
    except SessionError as e:
        return jsonify({"error": str(e), "details": e.details}), 409


@stations_bp.get("/<station_id>/estimate")
def estimate_route(station_id: str):
    """Live rental + products estimate. Read-only."""
    try:
        station = station_service.get_station(station_id)
    except StationError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(pricing_service.estimate_station(station)), 200


@stations_bp.post("/<station_id>/sessions")
def start_session_route(station_id: str):
    """
    Start a session.

    Body: {"session_type": OPEN|FIXED|FREE, "customer_id"?,
           "prepaid_minutes"? (FIXED), "free_hours"? (FREE)}
    """
    data = request.get_json(silent=True) or {}
    try:
        session = station_service.start_session(
            station_id,
            data.get("session_type"),
            data.get("customer_id"),
            prepaid_minutes=data.get("prepaid_minutes"),
            free_hours=data.get("free_hours"),
        )
        return jsonify({"session": session.to_dict()}), 201

    except StationError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SessionError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to start session")
        return jsonify({"error": "Internal server error"}), 500


@stations_bp.post("/<station_id>/items")
def add_item_route(station_id: str):
    """
    Add to the session tab.

    Catalog: {"product_id", "quantity"?}
    Custom:  {"name", "price", "quantity"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        if data.get("product_id"):
            item = station_service.add_catalog_item(station_id, data["product_id"], data.get("quantity", 1))
        else:
            item = station_service.add_custom_item(
                station_id, data.get("name"), data.get("price"), data.get("quantity", 1)
            )
        return jsonify({"item": item.to_dict()}), 201

    except StationError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SessionError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to add session item")
        return jsonify({"error": "Internal server error"}), 500


@stations_bp.post("/<station_id>/checkout")
def checkout_route(station_id: str):
    """
    Finalize the open session into a RENTAL sale.

    Body: {"payment_method", "customer_id"?, "add_vat"?, "clip_term"?,
           "commission_payer"?, "amount_received"?}

    Cash payments must cover the final total (VAT and client-borne
    commission included); other methods are charged exactly.
    """
    data = request.get_json(silent=True) or {}
    payment_method = (data.get("payment_method") or "CASH").upper()
    now = utcnow()

    try:
        station = station_service.get_station(station_id)
        estimate = pricing_service.estimate_station(station, now)

        received = data.get("amount_received")
        received = parse_money(received, "amount_received") if received not in (None, "") else None

        quote = checkout_service.quote_checkout(
            Decimal(estimate["rental_cost"]) + Decimal(estimate["products_total"]),
            payment_method,
            add_vat=bool(data.get("add_vat", False)),
            clip_term=data.get("clip_term") or "CONTADO",
            commission_payer=data.get("commission_payer") or "CLIENT",
            amount_received=received,
        )
        if not checkout_service.is_payment_sufficient(quote, payment_method, received):
            return jsonify({
                "error": "Insufficient payment",
                "details": {"final_total": str(quote.final_total), "amount_received": str(received)},
            }), 400

        result = station_service.finalize_session(
            station_id,
            payment_method,
            data.get("customer_id"),
            extra_items=quote.extra_items,
            now=now,
        )
        return jsonify({"checkout": result.to_dict(), "quote": quote.to_dict()}), 200

    except StationError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, CheckoutError) as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except SessionError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to check out station")
        return jsonify({"error": "Internal server error"}), 500
