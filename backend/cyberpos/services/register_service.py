# Overview: Service-layer operations for cash register shifts (cash cuts) and expenses.

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..models import CashCut, Expense, Sale
from ..models.registers import EXPENSE_SOURCES
from cyberpos.time_utils import start_of_day, utcnow
from cyberpos.validation import ValidationError, parse_money, to_money


logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CARD_METHODS = ("CARD", "CLIP")


class RegisterError(Exception):
    """Raised for cash register shift errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


# =============================================================================
# CASH CUTS
# =============================================================================

def get_open_cut() -> CashCut | None:
    return db.session.query(CashCut).filter_by(status="OPEN").order_by(CashCut.id.desc()).first()


def _require_open_cut() -> CashCut:
    cut = get_open_cut()
    if cut is None:
        raise RegisterError("No open cash cut")
    return cut


def list_cuts() -> list[CashCut]:
    return db.session.query(CashCut).order_by(CashCut.started_at.desc(), CashCut.id.desc()).all()


def _window_sales(start: datetime, end: datetime) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter(Sale.created_at >= start, Sale.created_at <= end)
        .all()
    )


def _window_expenses(start: datetime, end: datetime) -> list[Expense]:
    """Expenses that came out of the drawer inside the window."""
    return (
        db.session.query(Expense)
        .filter(
            Expense.occurred_at >= start,
            Expense.occurred_at <= end,
            Expense.affects_cash_box.is_(True),
        )
        .all()
    )


def _totals(sales: list[Sale], expenses: list[Expense]) -> dict:
    def by_method(*methods: str) -> Decimal:
        return sum((Decimal(s.total) for s in sales if s.payment_method in methods), ZERO)

    return {
        "cash": by_method("CASH"),
        "card": by_method(*CARD_METHODS),
        "transfer": by_method("TRANSFER"),
        "revenue": sum((Decimal(s.total) for s in sales), ZERO),
        "cogs": sum((s.total_cost for s in sales), ZERO),
        "expenses": sum((Decimal(e.amount) for e in expenses), ZERO),
    }


def open_register(initial_cash, *, now: datetime | None = None) -> CashCut:
    """Start a shift with the counted opening float. Only one shift may be open."""
    existing = get_open_cut()
    if existing is not None:
        raise RegisterError("A cash cut is already open", details={"cash_cut_id": existing.id})

    cut = CashCut(
        status="OPEN",
        started_at=now or utcnow(),
        initial_cash=to_money(parse_money(initial_cash, "initial_cash")),
    )
    db.session.add(cut)
    db.session.commit()
    logger.info("Cash cut %s opened with %s", cut.id, cut.initial_cash)
    return cut


def close_register(declared_cash, notes: str | None = None, *, now: datetime | None = None) -> CashCut:
    """
    Close the open shift and freeze its totals.

    system cash = initial cash + cash sales - drawer expenses
    difference = declared - system (negative means the drawer is short)
    """
    cut = _require_open_cut()
    declared = to_money(parse_money(declared_cash, "declared_cash"))
    end = now or utcnow()

    totals = _totals(_window_sales(cut.started_at, end), _window_expenses(cut.started_at, end))
    system_cash = Decimal(cut.initial_cash) + totals["cash"] - totals["expenses"]

    cut.ended_at = end
    cut.total_sales_cash = totals["cash"]
    cut.total_sales_card = totals["card"]
    cut.total_sales_transfer = totals["transfer"]
    cut.total_expenses = to_money(totals["expenses"])
    cut.final_cash_system = system_cash
    cut.final_cash_declared = declared
    cut.difference = declared - system_cash
    cut.notes = notes
    cut.status = "CLOSED"

    db.session.commit()
    if cut.difference != 0:
        logger.warning("Cash cut %s closed with difference %s", cut.id, cut.difference)
    else:
        logger.info("Cash cut %s closed balanced", cut.id)
    return cut


def orphaned_sales(*, now: datetime | None = None) -> list[Sale]:
    """Sales recorded today before the open shift started."""
    cut = get_open_cut()
    if cut is None:
        return []
    day_start = start_of_day(now or utcnow())
    return (
        db.session.query(Sale)
        .filter(Sale.created_at >= day_start, Sale.created_at < cut.started_at)
        .order_by(Sale.created_at)
        .all()
    )


def include_orphaned_sales(*, now: datetime | None = None) -> CashCut:
    """Move the open shift's start back to the earliest orphaned sale."""
    cut = _require_open_cut()
    orphans = orphaned_sales(now=now)
    if not orphans:
        return cut

    cut.started_at = orphans[0].created_at
    db.session.commit()
    logger.info("Cash cut %s now starts at %s (%d orphaned sales included)", cut.id, cut.started_at, len(orphans))
    return cut


def register_summary(*, now: datetime | None = None) -> dict:
    """Live numbers for the open shift; an empty summary when none is open."""
    now = now or utcnow()
    cut = get_open_cut()
    if cut is None:
        return {"cash_cut": None}

    totals = _totals(_window_sales(cut.started_at, now), _window_expenses(cut.started_at, now))
    orphans = orphaned_sales(now=now)

    return {
        "cash_cut": cut.to_dict(),
        "total_revenue": str(to_money(totals["revenue"])),
        "total_cogs": str(to_money(totals["cogs"])),
        "total_expenses": str(to_money(totals["expenses"])),
        "net_profit": str(to_money(totals["revenue"] - totals["cogs"] - totals["expenses"])),
        "cash_sales": str(to_money(totals["cash"])),
        "card_sales": str(to_money(totals["card"])),
        "transfer_sales": str(to_money(totals["transfer"])),
        "expected_cash": str(to_money(Decimal(cut.initial_cash) + totals["cash"] - totals["expenses"])),
        "orphaned_sales_count": len(orphans),
        "orphaned_sales_amount": str(to_money(sum((Decimal(s.total) for s in orphans), ZERO))),
    }


# =============================================================================
# EXPENSES
# =============================================================================

def _parse_expense_fields(data: dict, expense: Expense) -> None:
    if "description" in data:
        if not data["description"]:
            raise ValidationError("description required")
        expense.description = data["description"].strip()
    if "amount" in data:
        expense.amount = to_money(parse_money(data["amount"], "amount", allow_zero=False))
    if "category" in data:
        expense.category = data["category"] or None
    if "source" in data:
        if data["source"] not in EXPENSE_SOURCES:
            raise ValidationError(f"source must be one of: {', '.join(EXPENSE_SOURCES)}")
        expense.source = data["source"]
    if "affects_cash_box" in data:
        expense.affects_cash_box = bool(data["affects_cash_box"])


def add_expense(data: dict, *, now: datetime | None = None) -> Expense:
    if not data.get("description"):
        raise ValidationError("description required")
    if data.get("amount") is None:
        raise ValidationError("amount required")

    expense = Expense(source="CASH_REGISTER", affects_cash_box=True, occurred_at=now or utcnow())
    _parse_expense_fields(data, expense)
    # Profit withdrawals never leave the drawer unless stated otherwise
    if "affects_cash_box" not in data and expense.source == "PROFIT":
        expense.affects_cash_box = False

    db.session.add(expense)
    db.session.commit()
    logger.info("Expense %s recorded: %s (%s)", expense.id, expense.amount, expense.source)
    return expense


def get_expense(expense_id: int) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if not expense:
        raise RegisterError("Expense not found")
    return expense


def update_expense(expense_id: int, data: dict) -> Expense:
    expense = get_expense(expense_id)
    _parse_expense_fields(data, expense)
    db.session.commit()
    return expense


def delete_expense(expense_id: int) -> None:
    expense = get_expense(expense_id)
    db.session.delete(expense)
    db.session.commit()


def list_expenses(start: datetime | None = None, end: datetime | None = None) -> list[Expense]:
    q = db.session.query(Expense)
    if start is not None:
        q = q.filter(Expense.occurred_at >= start)
    if end is not None:
        q = q.filter(Expense.occurred_at <= end)
    return q.order_by(Expense.occurred_at.desc(), Expense.id.desc()).all()
