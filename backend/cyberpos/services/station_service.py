"""
Station and rental-session lifecycle.

WHY: Each terminal is a small state machine. Starting a session occupies
it, items are added to the session's tab, and checkout turns the session
into one RENTAL sale and frees the station.

DESIGN PRINCIPLES:
- One open session per station at a time
- Session orders are append-only until checkout
- FIXED sessions freeze their price at start; OPEN sessions are priced at
  the checkout instant with the same rules as the live estimate
- FREE sessions spend loyalty points at start. If the station is never
  checked out the points stay spent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..models import Customer, Product, SessionItem, Station, StationSession, Sale
from ..models.customers import PUBLIC_CUSTOMER_ID
from ..models.stations import (
    ITEM_CATALOG,
    ITEM_CUSTOM,
    SESSION_FIXED,
    SESSION_FREE,
    SESSION_TYPES,
    STATUS_AVAILABLE,
    STATUS_MAINTENANCE,
    STATUS_OCCUPIED,
)
from ..models.sales import CUSTOM_REF, RENTAL_REF
from ..models.tariffs import DEVICE_TYPES
from cyberpos.time_utils import elapsed_ms, utcnow
from cyberpos.validation import ConflictError, ValidationError, parse_choice, parse_int, parse_money, to_money
from . import loyalty_service, sales_service
from .pricing_service import (
    FIXED_MENU_MINUTES,
    calculate_fixed_price,
    resolve_tariff,
    session_rental_cost,
)
from .products_service import adjust_stock, current_cost


logger = logging.getLogger(__name__)


class StationError(Exception):
    """Raised for station management errors."""
    pass


class SessionError(Exception):
    """Raised for rental session errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class FinalizeResult:
    sale: Sale
    rental_cost: Decimal
    products_total: Decimal
    points_accrued: int

    @property
    def total(self) -> Decimal:
        """Rental + products, for the success screen. Not stored anywhere."""
        return self.rental_cost + self.products_total

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(),
            "rental_cost": str(to_money(self.rental_cost)),
            "products_total": str(to_money(self.products_total)),
            "total": str(to_money(self.total)),
            "points_accrued": self.points_accrued,
        }


# =============================================================================
# STATION MANAGEMENT
# =============================================================================

def create_station(
    name: str,
    device_type: str,
    tariff_id: str | None = None,
    station_id: str | None = None,
) -> Station:
    if not name or not name.strip():
        raise ValidationError("name required")
    device_type = parse_choice(device_type, "device_type", DEVICE_TYPES)

    if station_id and db.session.get(Station, station_id):
        raise ConflictError(f"Station '{station_id}' already exists")

    station = Station(name=name.strip(), device_type=device_type, status=STATUS_AVAILABLE, tariff_id=tariff_id or None)
    if station_id:
        station.id = station_id

    db.session.add(station)
    db.session.commit()
    return station


def get_station(station_id: str) -> Station:
    station = db.session.get(Station, station_id)
    if not station:
        raise StationError("Station not found")
    return station


def list_stations() -> list[Station]:
    return db.session.query(Station).order_by(Station.name).all()


def update_station(station_id: str, data: dict) -> Station:
    """Rename, change device type or tariff override. Status is not editable here."""
    station = get_station(station_id)
    if "name" in data:
        name = data["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name cannot be empty")
        station.name = name.strip()
    if "device_type" in data:
        station.device_type = parse_choice(data["device_type"], "device_type", DEVICE_TYPES)
    if "tariff_id" in data:
        station.tariff_id = data["tariff_id"] or None
    db.session.commit()
    return station


def delete_station(station_id: str) -> None:
    """
    Remove a station. Finalized sessions stay as history with station_id
    NULL so their sale and loyalty links keep resolving.
    """
    station = get_station(station_id)
    if station.status == STATUS_OCCUPIED:
        raise SessionError("Cannot delete a station with an open session. Check out first.")
    db.session.delete(station)
    db.session.commit()


def set_maintenance(station_id: str, enabled: bool) -> Station:
    """Toggle AVAILABLE <-> MAINTENANCE. Occupied stations cannot be toggled."""
    station = get_station(station_id)
    if station.status == STATUS_OCCUPIED:
        raise SessionError("Station is occupied")

    station.status = STATUS_MAINTENANCE if enabled else STATUS_AVAILABLE
    db.session.commit()
    logger.info("Station %s -> %s", station.id, station.status)
    return station


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================

def _open_session(station: Station) -> StationSession:
    session = station.current_session
    if station.status != STATUS_OCCUPIED or session is None:
        raise SessionError("Station has no active session", details={"station_id": station.id})
    return session


def start_session(
    station_id: str,
    session_type: str,
    customer_id: str | None = PUBLIC_CUSTOMER_ID,
    *,
    prepaid_minutes: int | None = None,
    free_hours: int | None = None,
    now: datetime | None = None,
) -> StationSession:
    """
    AVAILABLE -> OCCUPIED.

    OPEN: billed from elapsed time at checkout.
    FIXED: prepaid_minutes from the fixed menu, price frozen now.
    FREE: free_hours * 60 prepaid minutes, price 0, points redeemed now.
    """
    station = get_station(station_id)
    if station.status == STATUS_MAINTENANCE:
        raise SessionError("Station is under maintenance")
    if station.status == STATUS_OCCUPIED or station.current_session is not None:
        raise SessionError("Station already has an active session")

    session_type = parse_choice(session_type, "session_type", SESSION_TYPES)

    customer_id = customer_id or PUBLIC_CUSTOMER_ID
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise SessionError("Customer not found", details={"customer_id": customer_id})

    session = StationSession(
        station_id=station.id,
        started_at=now or utcnow(),
        customer_id=customer.id,
        customer_name=customer.name,
        session_type=session_type,
    )

    if session_type == SESSION_FIXED:
        minutes = parse_int(prepaid_minutes, "prepaid_minutes")
        if minutes not in FIXED_MENU_MINUTES:
            raise ValidationError(f"prepaid_minutes must be one of: {', '.join(map(str, FIXED_MENU_MINUTES))}")
        resolution = resolve_tariff(station)
        session.prepaid_minutes = minutes
        session.total_amount = to_money(calculate_fixed_price(minutes, resolution.tariff))

    elif session_type == SESSION_FREE:
        hours = parse_int(free_hours, "free_hours", minimum=1)
        available = loyalty_service.max_free_hours(customer)
        if hours > available:
            raise SessionError(
                "Not enough loyalty points for free time",
                details={"requested_hours": hours, "available_hours": available, "points": customer.points},
            )
        session.prepaid_minutes = hours * 60
        session.total_amount = Decimal("0")

    station.status = STATUS_OCCUPIED
    db.session.add(session)
    db.session.flush()

    if session_type == SESSION_FREE:
        # Spent now, independent of checkout
        loyalty_service.redeem(customer.id, hours, session_id=session.id, commit=False)

    db.session.commit()
    logger.info("Session %s started on %s (%s, customer=%s)", session.id, station.id, session_type, customer.id)
    return session


def add_catalog_item(station_id: str, product_id: str, quantity: int = 1, *, now: datetime | None = None) -> SessionItem:
    """Add a catalog product to the tab at its current price; stock is decremented now."""
    station = get_station(station_id)
    session = _open_session(station)
    quantity = parse_int(quantity, "quantity", minimum=1)

    product = db.session.get(Product, product_id)
    if product is None:
        raise SessionError("Product not found", details={"product_id": product_id})

    item = SessionItem(
        session_id=session.id,
        kind=ITEM_CATALOG,
        product_id=product.id,
        name=product.name,
        price=product.price,
        quantity=quantity,
        added_at=now or utcnow(),
    )
    session.orders.append(item)
    adjust_stock(product.id, -quantity, commit=False)

    db.session.commit()
    return item


def add_custom_item(station_id: str, name: str, price, quantity: int = 1, *, now: datetime | None = None) -> SessionItem:
    """Add a freeform line to the tab (no product, no stock effect)."""
    station = get_station(station_id)
    session = _open_session(station)

    if not name or not name.strip():
        raise ValidationError("name required")

    item = SessionItem(
        session_id=session.id,
        kind=ITEM_CUSTOM,
        product_id=None,
        name=name.strip(),
        price=to_money(parse_money(price, "price")),
        quantity=parse_int(quantity, "quantity", minimum=1),
        added_at=now or utcnow(),
    )
    session.orders.append(item)

    db.session.commit()
    return item


def finalize_session(
    station_id: str,
    payment_method: str,
    customer_id: str | None = None,
    *,
    extra_items: list[dict] | None = None,
    now: datetime | None = None,
) -> FinalizeResult:
    """
    OCCUPIED -> AVAILABLE: convert the session into a RENTAL sale.

    Rental line: always present for FREE sessions (audit of the redemption),
    otherwise only when the rental cost is positive.
    Order lines: price frozen when added; cost basis read from the product
    as it is now.
    Loyalty: +1 point per whole elapsed hour for non-FREE sessions of a
    registered customer, FIXED included.
    """
    now = now or utcnow()
    station = get_station(station_id)
    session = _open_session(station)

    final_customer_id = customer_id or session.customer_id or PUBLIC_CUSTOMER_ID

    resolution = resolve_tariff(station)
    rental_cost = to_money(session_rental_cost(session, resolution.tariff, now))
    products_total = sum((o.price * o.quantity for o in session.orders), Decimal("0"))

    items: list[dict] = []
    if rental_cost > 0 or session.session_type == SESSION_FREE:
        items.append({
            "product_ref": RENTAL_REF,
            "product_name": f"Renta {station.name} ({session.session_type})",
            "quantity": 1,
            "price_at_sale": rental_cost,
            "cost_at_sale": 0,
        })
    for order in session.orders:
        items.append({
            "product_ref": order.product_id or CUSTOM_REF,
            "product_name": order.name,
            "quantity": order.quantity,
            "price_at_sale": order.price,
            "cost_at_sale": current_cost(order.product_id),
        })
    items.extend(extra_items or [])

    try:
        sale = sales_service.record_sale(items, "RENTAL", payment_method, final_customer_id, now=now, commit=False)
    except sales_service.SaleError:
        db.session.rollback()
        raise

    points = 0
    if session.session_type != SESSION_FREE and final_customer_id != PUBLIC_CUSTOMER_ID:
        hours_consumed = elapsed_ms(session.started_at, now) // 3_600_000
        points = loyalty_service.accrue(final_customer_id, hours_consumed, session_id=session.id, commit=False)

    session.ended_at = now
    session.sale_id = sale.id
    station.status = STATUS_AVAILABLE

    db.session.commit()
    logger.info(
        "Session %s on %s finalized: rental=%s products=%s sale=%s",
        session.id, station.id, rental_cost, products_total, sale.id,
    )
    return FinalizeResult(sale=sale, rental_cost=rental_cost, products_total=products_total, points_accrued=points)
