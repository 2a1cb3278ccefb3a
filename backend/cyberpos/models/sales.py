from __future__ import annotations

from ..extensions import db
from cyberpos.time_utils import to_utc_z


SALE_TYPES = ("POS", "RENTAL", "MANUAL_ENTRY", "STREAMING", "SERVICE")
PAYMENT_METHODS = ("CASH", "CARD", "TRANSFER", "CLIP")

# Synthetic product references used on sale lines that have no catalog product
RENTAL_REF = "RENTAL"
CUSTOM_REF = "CUSTOM"
MANUAL_ENTRY_REF = "MANUAL_ENTRY"
TAX_REF = "TAX_IVA"
COMMISSION_REF = "COMMISSION_CLIP"


class Sale(db.Model):
    """
    Finalized transaction record.

    Append-only in normal flow: total equals the sum of
    price_at_sale * quantity over its items and is fixed at creation.
    Update/delete exist only as admin overrides.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_type_created", "sale_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    sale_type = db.Column(db.String(16), nullable=False, index=True)
    payment_method = db.Column(db.String(16), nullable=False, index=True)
    customer_id = db.Column(db.String(64), db.ForeignKey("customers.id"), nullable=True, index=True)

    total = db.Column(db.Numeric(14, 3), nullable=False)

    items = db.relationship(
        "SaleItem",
        order_by="SaleItem.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def total_cost(self):
        return sum((i.cost_at_sale or 0) * i.quantity for i in self.items)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": to_utc_z(self.created_at),
            "sale_type": self.sale_type,
            "payment_method": self.payment_method,
            "customer_id": self.customer_id,
            "total": str(self.total),
            "items": [i.to_dict() for i in self.items],
        }


class SaleItem(db.Model):
    """
    Individual line on a sale.

    product_ref is a catalog product id or one of the synthetic refs
    (RENTAL, CUSTOM, MANUAL_ENTRY, TAX_IVA, COMMISSION_CLIP). cost_at_sale
    is a snapshot and must never be recomputed from the current product.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)

    product_ref = db.Column(db.String(64), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    # Three decimals: commission lines keep sub-cent precision
    price_at_sale = db.Column(db.Numeric(14, 3), nullable=False)
    cost_at_sale = db.Column(db.Numeric(14, 3), nullable=True)

    @property
    def line_total(self):
        return self.price_at_sale * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_ref": self.product_ref,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price_at_sale": str(self.price_at_sale),
            "cost_at_sale": str(self.cost_at_sale) if self.cost_at_sale is not None else None,
        }
