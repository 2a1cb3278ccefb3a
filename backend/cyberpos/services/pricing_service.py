"""
Rental pricing: tiered per-minute tariffs.

HOW A TARIFF PRICES TIME:
- The first partial hour is priced by lookup in the tariff's ranges
  (e.g. 1-15 min = $5, 16-30 = $10, 31-60 = $20).
- Every whole hour is charged at the flat "hourly rule" price: the range
  whose max_minutes is 60, or the last range when none is.
- The remainder after whole hours is looked up again; if no range contains
  it, the first range reaching it is used, and if none reaches it, the
  hourly price is pro-rated linearly.

Tariff editors do not enforce full coverage, so every fallback degrades to a
price instead of raising. A missing tariff prices everything at zero and the
caller is expected to surface a warning.

The functions here are pure with respect to the database except
resolve_tariff/estimate_station, which read the tariff list.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from ..extensions import db
from ..models import Station, Tariff
from ..models.stations import SESSION_FIXED, SESSION_FREE
from cyberpos.time_utils import elapsed_ms, utcnow
from cyberpos.validation import to_money


logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HOURLY_RULE_MAX_MINUTES = 60

# Prepaid blocks offered for FIXED sessions
FIXED_MENU_MINUTES = (30, 60, 120, 180, 300)


def minutes_from_elapsed(elapsed: timedelta | int) -> int:
    """
    Billed minutes for an elapsed duration: partial minutes round UP.

    Accepts a timedelta or a millisecond count. Negative input bills 0.
    """
    if isinstance(elapsed, timedelta):
        ms = elapsed // timedelta(milliseconds=1)
    else:
        ms = int(elapsed)
    if ms <= 0:
        return 0
    return math.ceil(ms / 60000)


def find_hourly_rule(tariff):
    """Range with max_minutes == 60, else the last range, else None."""
    if tariff is None or not tariff.ranges:
        return None
    for r in tariff.ranges:
        if r.max_minutes == HOURLY_RULE_MAX_MINUTES:
            return r
    return tariff.ranges[-1]


def _remainder_price(remainder: int, tariff, hourly_price: Decimal) -> Decimal:
    for r in tariff.ranges:
        if r.min_minutes <= remainder <= r.max_minutes:
            return Decimal(r.price)

    for r in tariff.ranges:
        if r.max_minutes >= remainder:
            return Decimal(r.price)

    return hourly_price * Decimal(remainder) / Decimal(60)


def calculate_cost(total_minutes: int, tariff) -> Decimal:
    """
    Price `total_minutes` of rental against `tariff`.

    Never raises and never returns a negative or NaN amount: no tariff or an
    empty range list yields 0.
    """
    if tariff is None or not tariff.ranges:
        return ZERO

    total_minutes = max(0, int(total_minutes))

    hourly_rule = find_hourly_rule(tariff)
    hourly_price = Decimal(hourly_rule.price) if hourly_rule is not None else ZERO

    hours, remainder = divmod(total_minutes, 60)

    remainder_price = ZERO
    if remainder > 0:
        remainder_price = _remainder_price(remainder, tariff, hourly_price)

    cost = hours * hourly_price + remainder_price
    if cost.is_nan():
        return ZERO
    return cost


def calculate_fixed_price(prepaid_minutes: int, tariff) -> Decimal:
    """Price of a prepaid block; the minute value is used as chosen, no rounding."""
    return calculate_cost(prepaid_minutes, tariff)


@dataclass(frozen=True)
class TariffResolution:
    """Outcome of tariff lookup for a station; tariff is None when nothing matched."""
    tariff: Tariff | None
    source: str  # STATION, DEVICE_TYPE, FIRST_AVAILABLE, NONE

    @property
    def found(self) -> bool:
        return self.tariff is not None


def resolve_tariff(station: Station) -> TariffResolution:
    """
    Ordered lookup used by both the live estimate and checkout:
    station override -> first tariff for the device type -> first tariff -> none.
    """
    if station.tariff_id:
        tariff = db.session.get(Tariff, station.tariff_id)
        if tariff is not None:
            return TariffResolution(tariff, "STATION")

    tariff = (
        db.session.query(Tariff)
        .filter_by(device_type=station.device_type)
        .order_by(Tariff.position, Tariff.id)
        .first()
    )
    if tariff is not None:
        return TariffResolution(tariff, "DEVICE_TYPE")

    tariff = db.session.query(Tariff).order_by(Tariff.position, Tariff.id).first()
    if tariff is not None:
        return TariffResolution(tariff, "FIRST_AVAILABLE")

    logger.warning("No tariff configured for station %s (%s); rental cost is 0", station.id, station.device_type)
    return TariffResolution(None, "NONE")


def session_rental_cost(session, tariff, now: datetime | None = None) -> Decimal:
    """
    Rental cost of a session at `now`.

    FREE costs nothing, FIXED is the amount frozen at start, OPEN is priced
    from the elapsed wall-clock time.
    """
    if session.session_type == SESSION_FREE:
        return ZERO
    if session.session_type == SESSION_FIXED:
        return Decimal(session.total_amount or 0)
    minutes = minutes_from_elapsed(elapsed_ms(session.started_at, now))
    return calculate_cost(minutes, tariff)


def estimate_station(station: Station, now: datetime | None = None) -> dict:
    """
    Read-only live snapshot for the station card (polled every second).

    Never writes to the session; the final charge is recomputed at checkout
    with the same rules.
    """
    now = now or utcnow()
    resolution = resolve_tariff(station)
    session = station.current_session

    result = {
        "station_id": station.id,
        "status": station.status,
        "tariff_id": resolution.tariff.id if resolution.tariff else None,
        "tariff_source": resolution.source,
        "tariff_warning": not resolution.found,
        "elapsed_ms": 0,
        "billed_minutes": 0,
        "remaining_ms": None,
        "rental_cost": str(to_money(0)),
        "products_total": str(to_money(0)),
        "total": str(to_money(0)),
    }
    if session is None:
        return result

    ms = elapsed_ms(session.started_at, now)
    rental = session_rental_cost(session, resolution.tariff, now)
    products = sum((o.price * o.quantity for o in session.orders), ZERO)

    remaining = None
    if session.prepaid_minutes:
        remaining = max(0, session.prepaid_minutes * 60000 - ms)

    result.update({
        "session_id": session.id,
        "session_type": session.session_type,
        "elapsed_ms": ms,
        "billed_minutes": minutes_from_elapsed(ms),
        "remaining_ms": remaining,
        "rental_cost": str(to_money(rental)),
        "products_total": str(to_money(products)),
        "total": str(to_money(rental + products)),
    })
    return result
