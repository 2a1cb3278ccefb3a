# Overview: Service-layer operations for loyalty points; accrual, redemption and adjustments.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Customer, LoyaltyTransaction
from ..models.customers import PUBLIC_CUSTOMER_ID
from cyberpos.time_utils import utcnow


logger = logging.getLogger(__name__)

POINTS_PER_HOUR = 1
POINTS_PER_FREE_HOUR = 10


class LoyaltyError(Exception):
    """Raised for loyalty operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def max_free_hours(customer: Customer) -> int:
    """Free hours the customer's balance can pay for (0 for walk-ins)."""
    if customer.is_public or customer.points <= 0:
        return 0
    return customer.points // POINTS_PER_FREE_HOUR


def _apply_delta(
    customer_id: str,
    points: int,
    transaction_type: str,
    *,
    session_id: int | None = None,
    reason: str | None = None,
    commit: bool = True,
) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise LoyaltyError("Customer not found", details={"customer_id": customer_id})

    # No floor: balances may go negative (manual multi-redemption)
    customer.points = (customer.points or 0) + points
    db.session.add(LoyaltyTransaction(
        customer_id=customer.id,
        transaction_type=transaction_type,
        points=points,
        session_id=session_id,
        reason=reason,
        occurred_at=utcnow(),
    ))

    logger.info("Loyalty %s %+d for customer %s (balance %d)", transaction_type, points, customer.id, customer.points)

    if commit:
        db.session.commit()
    return customer


def accrue(customer_id: str, hours_consumed: int, *, session_id: int | None = None, commit: bool = True) -> int:
    """
    Credit +1 point per whole hour consumed.

    Walk-in customers and zero-hour rentals earn nothing; returns the points added.
    """
    if customer_id == PUBLIC_CUSTOMER_ID or hours_consumed <= 0:
        return 0
    points = hours_consumed * POINTS_PER_HOUR
    _apply_delta(customer_id, points, "EARN", session_id=session_id, reason=f"{hours_consumed}h rental", commit=commit)
    return points


def redeem(customer_id: str, hours_requested: int, *, session_id: int | None = None, commit: bool = True) -> int:
    """
    Debit 10 points per free hour; returns the (negative) delta applied.

    The balance is not checked here; callers that offer redemption decide
    whether the customer can afford it.
    """
    if customer_id == PUBLIC_CUSTOMER_ID or hours_requested <= 0:
        return 0
    points = -hours_requested * POINTS_PER_FREE_HOUR
    _apply_delta(customer_id, points, "REDEEM", session_id=session_id, reason=f"{hours_requested} free hour(s)", commit=commit)
    return points


def adjust(customer_id: str, points: int, reason: str) -> Customer:
    """Manual correction, signed delta."""
    if not reason:
        raise LoyaltyError("reason required for manual adjustments")
    return _apply_delta(customer_id, points, "ADJUST", reason=reason)


def list_transactions(customer_id: str) -> list[LoyaltyTransaction]:
    return (
        db.session.query(LoyaltyTransaction)
        .filter_by(customer_id=customer_id)
        .order_by(LoyaltyTransaction.occurred_at.desc(), LoyaltyTransaction.id.desc())
        .all()
    )
