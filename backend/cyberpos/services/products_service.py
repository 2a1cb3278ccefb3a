# Overview: Service-layer operations for the product catalog and stock counts.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Product
from cyberpos.validation import ConflictError, ValidationError, parse_int, parse_money


class ProductError(Exception):
    """Raised for product operation errors."""
    pass


_TEXT_FIELDS = ("barcode", "distributor", "warranty_period")
_FLAG_FIELDS = ("track_stock", "has_warranty")


def _parse_flag(value, field: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false")
    return value


def _parse_name(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("name required")
    return value.strip()


def create_product(data: dict) -> Product:
    name = _parse_name(data.get("name"))

    product_id = data.get("id")
    if product_id and db.session.get(Product, product_id):
        raise ConflictError(f"Product '{product_id}' already exists")

    product = Product(
        name=name,
        price=parse_money(data.get("price"), "price"),
        cost=parse_money(data.get("cost", 0), "cost"),
        stock=parse_int(data.get("stock", 0), "stock"),
        category=data.get("category") or "General",
        barcode=data.get("barcode"),
        distributor=data.get("distributor"),
        track_stock=_parse_flag(data.get("track_stock", True), "track_stock"),
        has_warranty=_parse_flag(data.get("has_warranty", False), "has_warranty"),
        warranty_period=data.get("warranty_period"),
    )
    if product_id:
        product.id = product_id

    db.session.add(product)
    db.session.commit()
    return product


def get_product(product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductError("Product not found")
    return product


def update_product(product_id: str, data: dict) -> Product:
    """
    Edit catalog fields. Changing price or cost never touches recorded
    sales; open session tabs keep their price snapshot.
    """
    product = get_product(product_id)
    if "name" in data:
        product.name = _parse_name(data["name"])
    if "category" in data:
        product.category = data["category"] or "General"
    for key in _TEXT_FIELDS:
        if key in data:
            setattr(product, key, data[key] or None)
    for key in _FLAG_FIELDS:
        if key in data:
            setattr(product, key, _parse_flag(data[key], key))
    if "price" in data:
        product.price = parse_money(data["price"], "price")
    if "cost" in data:
        product.cost = parse_money(data["cost"], "cost")
    if "stock" in data:
        product.stock = parse_int(data["stock"], "stock")
    db.session.commit()
    return product


def delete_product(product_id: str) -> None:
    product = get_product(product_id)
    db.session.delete(product)
    db.session.commit()


def list_products(search: str | None = None, category: str | None = None) -> list[Product]:
    q = db.session.query(Product)
    if search:
        q = q.filter(Product.name.ilike(f"%{search}%"))
    if category:
        q = q.filter(Product.category == category)
    return q.order_by(Product.category, Product.name).all()


def adjust_stock(product_id: str, delta: int, *, commit: bool = True) -> Product | None:
    """
    Apply a signed stock delta. Unknown ids are ignored (synthetic sale lines
    such as RENTAL or TAX_IVA have no catalog product).
    """
    product = db.session.get(Product, product_id)
    if product is None:
        return None
    product.stock = (product.stock or 0) + delta
    if commit:
        db.session.commit()
    return product


def current_cost(product_id: str | None) -> Decimal:
    """Current cost basis of a product, 0 when it is not in the catalog."""
    if not product_id:
        return Decimal("0")
    product = db.session.get(Product, product_id)
    return Decimal(product.cost) if product else Decimal("0")
