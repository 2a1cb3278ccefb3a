from __future__ import annotations

import uuid

from ..extensions import db
from cyberpos.time_utils import to_utc_z


# Walk-in / no-customer sentinel. Never earns or spends points.
PUBLIC_CUSTOMER_ID = "public"


class Customer(db.Model):
    """
    Customer master data and loyalty balance.

    `points` is denormalized: every change is also written to
    LoyaltyTransaction. The balance is allowed to go negative.
    """
    __tablename__ = "customers"

    id = db.Column(db.String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    points = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def is_public(self) -> bool:
        return self.id == PUBLIC_CUSTOMER_ID

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "points": self.points,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LoyaltyTransaction(db.Model):
    """
    Append-only ledger of loyalty point events.

    TRANSACTION TYPES:
    - EARN: +1 point per whole hour of a paid rental
    - REDEEM: -10 points per free hour granted
    - ADJUST: manual correction

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "loyalty_transactions"
    __table_args__ = (
        db.Index("ix_loyalty_txns_customer_occurred", "customer_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.String(64), db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)  # EARN, REDEEM, ADJUST
    points = db.Column(db.Integer, nullable=False)  # Positive for earn, negative for redeem

    session_id = db.Column(db.Integer, db.ForeignKey("station_sessions.id"), nullable=True, index=True)
    reason = db.Column(db.String(255), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    customer = db.relationship("Customer", backref=db.backref("loyalty_transactions", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "transaction_type": self.transaction_type,
            "points": self.points,
            "session_id": self.session_id,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }
