from __future__ import annotations

import uuid

from sqlalchemy.ext.orderinglist import ordering_list

from ..extensions import db
from cyberpos.time_utils import to_utc_z


DEVICE_TYPES = ("PC", "XBOX", "PS5", "NINTENDO")


def _new_id() -> str:
    return uuid.uuid4().hex


class Tariff(db.Model):
    """
    Named pricing table for one device type.

    Sessions reference the tariff by id (through their station), never by
    value: editing a tariff changes the live estimate of an open session but
    never a sale that has already been recorded.
    """
    __tablename__ = "tariffs"

    id = db.Column(db.String(64), primary_key=True, default=_new_id)
    name = db.Column(db.String(128), nullable=False)
    device_type = db.Column(db.String(16), nullable=False, index=True)

    # Creation order; "first tariff" lookups follow it
    position = db.Column(db.Integer, nullable=False, default=0, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    # List order matters: the calculator's fallbacks pick the "last" and the
    # "first covering" range, so position is kept in sync by ordering_list.
    ranges = db.relationship(
        "TariffRange",
        order_by="TariffRange.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "device_type": self.device_type,
            "ranges": [r.to_dict() for r in self.ranges],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TariffRange(db.Model):
    """Flat price for any billed-minute value inside [min_minutes, max_minutes]."""
    __tablename__ = "tariff_ranges"
    __table_args__ = (
        db.CheckConstraint("min_minutes >= 0", name="ck_tariff_ranges_min_nonneg"),
        db.CheckConstraint("price >= 0", name="ck_tariff_ranges_price_nonneg"),
    )

    id = db.Column(db.String(64), primary_key=True, default=_new_id)
    tariff_id = db.Column(db.String(64), db.ForeignKey("tariffs.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    min_minutes = db.Column(db.Integer, nullable=False)
    max_minutes = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "min_minutes": self.min_minutes,
            "max_minutes": self.max_minutes,
            "price": str(self.price),
        }
