"""
System health endpoint.

Reports database connectivity and a few table counts; used by the front
desk to show a "backend offline" banner.
"""

import time

from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import Station, Tariff, StationSession
from ..time_utils import to_utc_z, utcnow


system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Run a few cheap queries and time them."""
    start_time = time.time()
    try:
        station_count = db.session.query(Station).count()
        tariff_count = db.session.query(Tariff).count()
        open_sessions = db.session.query(StationSession).filter_by(ended_at=None).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stations": station_count,
                "tariffs": tariff_count,
                "open_sessions": open_sessions,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return jsonify({
        "status": database["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }), status_code
