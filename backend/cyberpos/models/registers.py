from __future__ import annotations

from ..extensions import db
from cyberpos.time_utils import to_utc_z


EXPENSE_SOURCES = ("CASH_REGISTER", "PROFIT")


class CashCut(db.Model):
    """
    Cash register shift ("corte de caja").

    LIFECYCLE:
    - OPEN: shift is active; sales inside [started_at, now] belong to it
    - CLOSED: totals are frozen, declared cash compared against system cash

    Only one OPEN cut exists at a time.
    """
    __tablename__ = "cash_cuts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default="OPEN", index=True)  # OPEN, CLOSED

    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)

    initial_cash = db.Column(db.Numeric(12, 2), nullable=False)
    final_cash_system = db.Column(db.Numeric(14, 3), nullable=True)
    final_cash_declared = db.Column(db.Numeric(12, 2), nullable=True)
    difference = db.Column(db.Numeric(14, 3), nullable=True)

    total_sales_cash = db.Column(db.Numeric(14, 3), nullable=True)
    total_sales_card = db.Column(db.Numeric(14, 3), nullable=True)  # CARD + CLIP
    total_sales_transfer = db.Column(db.Numeric(14, 3), nullable=True)
    total_expenses = db.Column(db.Numeric(12, 2), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        def _s(v):
            return str(v) if v is not None else None

        return {
            "id": self.id,
            "status": self.status,
            "started_at": to_utc_z(self.started_at),
            "ended_at": to_utc_z(self.ended_at),
            "initial_cash": _s(self.initial_cash),
            "final_cash_system": _s(self.final_cash_system),
            "final_cash_declared": _s(self.final_cash_declared),
            "difference": _s(self.difference),
            "total_sales_cash": _s(self.total_sales_cash),
            "total_sales_card": _s(self.total_sales_card),
            "total_sales_transfer": _s(self.total_sales_transfer),
            "total_expenses": _s(self.total_expenses),
            "notes": self.notes,
        }


class Expense(db.Model):
    """
    Money leaving the business.

    source=CASH_REGISTER is paid from the drawer; source=PROFIT only reduces
    net profit. affects_cash_box decides whether the register counts it.
    """
    __tablename__ = "expenses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    source = db.Column(db.String(16), nullable=False, default="CASH_REGISTER")
    affects_cash_box = db.Column(db.Boolean, nullable=False, default=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": str(self.amount),
            "category": self.category,
            "source": self.source,
            "affects_cash_box": self.affects_cash_box,
            "occurred_at": to_utc_z(self.occurred_at),
        }
