# Overview: Service-layer operations for tariffs; validates and stores ordered minute ranges.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Tariff, TariffRange, Station
from ..models.tariffs import DEVICE_TYPES
from cyberpos.validation import ConflictError, ValidationError, parse_choice, parse_int, parse_money


logger = logging.getLogger(__name__)


class TariffError(Exception):
    """Raised for tariff operation errors."""
    pass


def _build_ranges(raw_ranges) -> list[TariffRange]:
    """
    Validate each range on its own. Gaps and overlaps between ranges are
    accepted; the calculator falls back through them.
    """
    if not isinstance(raw_ranges, list):
        raise ValidationError("ranges must be a list")

    ranges = []
    for i, raw in enumerate(raw_ranges):
        if not isinstance(raw, dict):
            raise ValidationError(f"ranges[{i}] must be an object")
        min_minutes = parse_int(raw.get("min_minutes"), f"ranges[{i}].min_minutes", minimum=0)
        max_minutes = parse_int(raw.get("max_minutes"), f"ranges[{i}].max_minutes", minimum=0)
        if min_minutes > max_minutes:
            raise ValidationError(f"ranges[{i}]: min_minutes cannot exceed max_minutes")

        r = TariffRange(
            min_minutes=min_minutes,
            max_minutes=max_minutes,
            price=parse_money(raw.get("price"), f"ranges[{i}].price"),
        )
        ranges.append(r)
    return ranges


def create_tariff(name: str, device_type: str, ranges: list, tariff_id: str | None = None) -> Tariff:
    if not name or not name.strip():
        raise ValidationError("name required")
    device_type = parse_choice(device_type, "device_type", DEVICE_TYPES)

    if tariff_id and db.session.get(Tariff, tariff_id):
        raise ConflictError(f"Tariff '{tariff_id}' already exists")

    last = db.session.query(db.func.max(Tariff.position)).scalar()
    tariff = Tariff(name=name.strip(), device_type=device_type, position=(last or 0) + 1)
    if tariff_id:
        tariff.id = tariff_id
    tariff.ranges.extend(_build_ranges(ranges))

    db.session.add(tariff)
    db.session.commit()
    return tariff


def update_tariff(tariff_id: str, data: dict) -> Tariff:
    """
    Replace name/device type/ranges. Open sessions pick the change up in
    their live estimate; recorded sales are unaffected.
    """
    tariff = get_tariff(tariff_id)
    if "name" in data:
        name = data["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name cannot be empty")
        tariff.name = name.strip()
    if "device_type" in data:
        tariff.device_type = parse_choice(data["device_type"], "device_type", DEVICE_TYPES)
    if "ranges" in data:
        new_ranges = _build_ranges(data["ranges"])
        tariff.ranges.clear()
        db.session.flush()
        tariff.ranges.extend(new_ranges)

    db.session.commit()
    logger.info("Tariff %s updated (%d ranges)", tariff.id, len(tariff.ranges))
    return tariff


def delete_tariff(tariff_id: str) -> None:
    tariff = get_tariff(tariff_id)
    # Stations pointing at it fall back to device-type lookup
    db.session.query(Station).filter_by(tariff_id=tariff.id).update({"tariff_id": None})
    db.session.delete(tariff)
    db.session.commit()


def get_tariff(tariff_id: str) -> Tariff:
    tariff = db.session.get(Tariff, tariff_id)
    if not tariff:
        raise TariffError("Tariff not found")
    return tariff


def list_tariffs(device_type: str | None = None) -> list[Tariff]:
    q = db.session.query(Tariff)
    if device_type:
        q = q.filter_by(device_type=device_type.upper())
    return q.order_by(Tariff.position, Tariff.id).all()
