"""
Sale ledger service.

WHY: Every completed transaction (counter sale, station rental, manual
entry, streaming, repair) ends up here as one Sale with line items.

INVARIANTS:
- total == sum(price_at_sale * quantity) over the sale's items
- cost_at_sale is captured when the sale is recorded and never recomputed
- Only POS sales decrement stock; rental tabs decrement when items are
  added and synthetic lines never touch inventory
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..models import Customer, Sale, SaleItem
from ..models.customers import PUBLIC_CUSTOMER_ID
from ..models.sales import MANUAL_ENTRY_REF, PAYMENT_METHODS, SALE_TYPES
from cyberpos.time_utils import utcnow
from cyberpos.validation import parse_int, parse_money, to_mills
from .products_service import adjust_stock, current_cost


logger = logging.getLogger(__name__)

MANUAL_ENTRY_DESCRIPTIONS = {
    "CIBER": "Entrada Manual: Ciber",
    "SERVICIOS": "Entrada Manual: Servicios",
    "RECARGAS": "Entrada Manual: Recargas Electrónicas",
}


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _build_item(raw: dict, index: int) -> SaleItem:
    product_ref = raw.get("product_ref") or raw.get("product_id")
    if not product_ref:
        raise SaleError(f"items[{index}]: product_ref required")

    name = raw.get("product_name")
    if not name:
        raise SaleError(f"items[{index}]: product_name required")

    quantity = parse_int(raw.get("quantity", 1), f"items[{index}].quantity", minimum=1)
    price = to_mills(parse_money(raw.get("price_at_sale"), f"items[{index}].price_at_sale"))

    # Snapshot cost now if the caller did not supply one
    if raw.get("cost_at_sale") is not None:
        cost = to_mills(parse_money(raw["cost_at_sale"], f"items[{index}].cost_at_sale"))
    else:
        cost = to_mills(current_cost(product_ref))

    return SaleItem(
        product_ref=str(product_ref),
        product_name=name,
        quantity=quantity,
        price_at_sale=price,
        cost_at_sale=cost,
    )


def record_sale(
    items: list[dict],
    sale_type: str,
    payment_method: str,
    customer_id: str | None = PUBLIC_CUSTOMER_ID,
    *,
    now: datetime | None = None,
    commit: bool = True,
) -> Sale:
    """
    Append a sale to the ledger.

    Each item is a dict with product_ref (or product_id), product_name,
    quantity, price_at_sale and optionally cost_at_sale.
    """
    if sale_type not in SALE_TYPES:
        raise SaleError(f"Unknown sale type {sale_type}")
    if payment_method not in PAYMENT_METHODS:
        raise SaleError(f"Unknown payment method {payment_method}")
    # A RENTAL sale may be empty: OPEN session on a zero tariff with no tab
    if not items and sale_type != "RENTAL":
        raise SaleError("Cannot record a sale with no items")

    customer_id = customer_id or PUBLIC_CUSTOMER_ID
    if customer_id != PUBLIC_CUSTOMER_ID and db.session.get(Customer, customer_id) is None:
        raise SaleError("Customer not found", details={"customer_id": customer_id})

    sale_items = [_build_item(raw, i) for i, raw in enumerate(items)]
    total = sum((item.price_at_sale * item.quantity for item in sale_items), Decimal("0"))

    sale = Sale(
        created_at=now or utcnow(),
        sale_type=sale_type,
        payment_method=payment_method,
        customer_id=customer_id,
        total=total,
    )
    sale.items.extend(sale_items)
    db.session.add(sale)

    if sale_type == "POS":
        for item in sale_items:
            adjust_stock(item.product_ref, -item.quantity, commit=False)

    db.session.flush()
    logger.info("Recorded %s sale %s: total=%s via %s", sale_type, sale.id, total, payment_method)

    if commit:
        db.session.commit()
    return sale


def record_manual_entry(category: str, amount, *, now: datetime | None = None) -> Sale:
    """Cash income typed in by hand (cyber time, services, phone top-ups)."""
    category = (category or "").upper()
    if category not in MANUAL_ENTRY_DESCRIPTIONS:
        raise SaleError(f"category must be one of: {', '.join(MANUAL_ENTRY_DESCRIPTIONS)}")

    return record_sale(
        [{
            "product_ref": MANUAL_ENTRY_REF,
            "product_name": MANUAL_ENTRY_DESCRIPTIONS[category],
            "quantity": 1,
            "price_at_sale": parse_money(amount, "amount", allow_zero=False),
            "cost_at_sale": 0,
        }],
        "MANUAL_ENTRY",
        "CASH",
        PUBLIC_CUSTOMER_ID,
        now=now,
    )


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise SaleError("Sale not found")
    return sale


def list_sales(
    start: datetime | None = None,
    end: datetime | None = None,
    sale_type: str | None = None,
    payment_method: str | None = None,
) -> list[Sale]:
    q = db.session.query(Sale)
    if start is not None:
        q = q.filter(Sale.created_at >= start)
    if end is not None:
        q = q.filter(Sale.created_at <= end)
    if sale_type:
        q = q.filter(Sale.sale_type == sale_type)
    if payment_method:
        q = q.filter(Sale.payment_method == payment_method)
    return q.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


# =============================================================================
# ADMIN OVERRIDES (not part of normal flow)
# =============================================================================

def update_sale(sale_id: int, data: dict) -> Sale:
    """Correct payment method or customer on a recorded sale. Items and total stay frozen."""
    sale = get_sale(sale_id)

    if "payment_method" in data:
        if data["payment_method"] not in PAYMENT_METHODS:
            raise SaleError(f"Unknown payment method {data['payment_method']}")
        sale.payment_method = data["payment_method"]

    if "customer_id" in data:
        customer_id = data["customer_id"] or PUBLIC_CUSTOMER_ID
        if customer_id != PUBLIC_CUSTOMER_ID and db.session.get(Customer, customer_id) is None:
            raise SaleError("Customer not found", details={"customer_id": customer_id})
        sale.customer_id = customer_id

    db.session.commit()
    logger.warning("Sale %s overridden: %s", sale.id, sorted(k for k in data if k in ("payment_method", "customer_id")))
    return sale


def delete_sale(sale_id: int) -> None:
    """Remove a sale from the ledger. Stock and loyalty effects are not reversed."""
    sale = get_sale(sale_id)
    db.session.delete(sale)
    db.session.commit()
    logger.warning("Sale %s deleted by admin override", sale_id)
