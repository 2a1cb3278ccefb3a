from __future__ import annotations

import uuid

from ..extensions import db
from cyberpos.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    `cost` is the current purchase cost. Sales snapshot it into
    SaleItem.cost_at_sale; reports never recompute margins from this column.

    `category` is an open string (shop owners invent their own categories).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.CheckConstraint("price >= 0", name="ck_products_price_nonneg"),
        db.CheckConstraint("cost >= 0", name="ck_products_cost_nonneg"),
    )

    id = db.Column(db.String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    name = db.Column(db.String(255), nullable=False)

    price = db.Column(db.Numeric(12, 2), nullable=False)
    cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Stock may go negative: sales are never blocked on inventory
    stock = db.Column(db.Integer, nullable=False, default=0)
    track_stock = db.Column(db.Boolean, nullable=False, default=True)

    category = db.Column(db.String(64), nullable=False, default="General")
    barcode = db.Column(db.String(64), nullable=True, index=True)
    distributor = db.Column(db.String(128), nullable=True)

    has_warranty = db.Column(db.Boolean, nullable=False, default=False)
    warranty_period = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "cost": str(self.cost),
            "stock": self.stock,
            "track_stock": self.track_stock,
            "category": self.category,
            "barcode": self.barcode,
            "distributor": self.distributor,
            "has_warranty": self.has_warranty,
            "warranty_period": self.warranty_period,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
