from __future__ import annotations

import uuid

from ..extensions import db
from cyberpos.time_utils import to_utc_z


STATUS_AVAILABLE = "AVAILABLE"
STATUS_OCCUPIED = "OCCUPIED"
STATUS_MAINTENANCE = "MAINTENANCE"

SESSION_OPEN = "OPEN"
SESSION_FIXED = "FIXED"
SESSION_FREE = "FREE"
SESSION_TYPES = (SESSION_OPEN, SESSION_FIXED, SESSION_FREE)

ITEM_CATALOG = "CATALOG"
ITEM_CUSTOM = "CUSTOM"


class Station(db.Model):
    """
    A billable terminal (PC or console).

    STATE MACHINE:
    - AVAILABLE -> OCCUPIED: a session is started
    - OCCUPIED -> AVAILABLE: the session is finalized into a sale
    - AVAILABLE <-> MAINTENANCE: manual toggle

    A station is OCCUPIED exactly when it has one session with ended_at NULL.
    """
    __tablename__ = "stations"

    id = db.Column(db.String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    name = db.Column(db.String(128), nullable=False)
    device_type = db.Column(db.String(16), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_AVAILABLE, index=True)

    # Explicit tariff override; device-type lookup is used when NULL
    tariff_id = db.Column(db.String(64), db.ForeignKey("tariffs.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    tariff = db.relationship("Tariff")

    @property
    def current_session(self) -> "StationSession | None":
        return (
            db.session.query(StationSession)
            .filter_by(station_id=self.id, ended_at=None)
            .first()
        )

    def to_dict(self, include_session: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "device_type": self.device_type,
            "status": self.status,
            "tariff_id": self.tariff_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_session:
            session = self.current_session
            data["current_session"] = session.to_dict() if session else None
        return data


class StationSession(db.Model):
    """
    A rental occupying one station.

    Orders are append-only while the session is open. Once finalized the row
    is kept for history (ended_at, sale_id) but it is no longer the station's
    current session.
    """
    __tablename__ = "station_sessions"
    __table_args__ = (
        db.Index("ix_station_sessions_station_open", "station_id", "ended_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # NULL once the station is deleted; history rows outlive their station
    station_id = db.Column(db.String(64), db.ForeignKey("stations.id", ondelete="SET NULL"), nullable=True, index=True)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)

    customer_id = db.Column(db.String(64), db.ForeignKey("customers.id"), nullable=True)
    customer_name = db.Column(db.String(128), nullable=True)

    session_type = db.Column(db.String(8), nullable=False)  # OPEN, FIXED, FREE
    prepaid_minutes = db.Column(db.Integer, nullable=True)  # FIXED and FREE
    total_amount = db.Column(db.Numeric(12, 2), nullable=True)  # frozen at start for FIXED

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True)

    station = db.relationship("Station", backref=db.backref("sessions", lazy=True))
    orders = db.relationship(
        "SessionItem",
        order_by="SessionItem.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "started_at": to_utc_z(self.started_at),
            "ended_at": to_utc_z(self.ended_at),
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "session_type": self.session_type,
            "prepaid_minutes": self.prepaid_minutes,
            "total_amount": str(self.total_amount) if self.total_amount is not None else None,
            "sale_id": self.sale_id,
            "orders": [o.to_dict() for o in self.orders],
        }


class SessionItem(db.Model):
    """
    One line on a session's running tab.

    Tagged variant:
    - CATALOG: product_id set, price snapshot taken when the line is added
    - CUSTOM: freeform name/price, no product and no stock effect
    """
    __tablename__ = "session_items"
    __table_args__ = (
        db.CheckConstraint(
            "(kind = 'CATALOG' AND product_id IS NOT NULL) OR (kind = 'CUSTOM' AND product_id IS NULL)",
            name="ck_session_items_kind_product",
        ),
        db.CheckConstraint("quantity > 0", name="ck_session_items_quantity_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("station_sessions.id", ondelete="CASCADE"), nullable=False, index=True)

    kind = db.Column(db.String(8), nullable=False)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    added_at = db.Column(db.DateTime(timezone=True), nullable=False)

    @property
    def line_total(self):
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "product_id": self.product_id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity,
            "added_at": to_utc_z(self.added_at),
        }
