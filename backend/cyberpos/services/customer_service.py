# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Customer
from ..models.customers import PUBLIC_CUSTOMER_ID
from cyberpos.validation import ConflictError, ValidationError


class CustomerError(Exception):
    """Raised for customer operation errors."""
    pass


def ensure_public_customer() -> Customer:
    """Create the walk-in sentinel customer if it does not exist yet."""
    customer = db.session.get(Customer, PUBLIC_CUSTOMER_ID)
    if customer is None:
        customer = Customer(id=PUBLIC_CUSTOMER_ID, name="Venta al Público", points=0)
        db.session.add(customer)
        db.session.commit()
    return customer


def create_customer(
    name: str,
    phone: str | None = None,
    email: str | None = None,
    points: int = 0,
    customer_id: str | None = None,
) -> Customer:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name required")

    if customer_id and db.session.get(Customer, customer_id):
        raise ConflictError(f"Customer '{customer_id}' already exists")

    customer = Customer(name=name.strip(), phone=phone, email=email, points=points)
    if customer_id:
        customer.id = customer_id
    db.session.add(customer)
    db.session.commit()
    return customer


def get_customer(customer_id: str) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise CustomerError("Customer not found")
    return customer


def list_customers(search: str | None = None) -> list[Customer]:
    q = db.session.query(Customer)
    if search:
        q = q.filter(Customer.name.ilike(f"%{search}%"))
    return q.order_by(Customer.name).all()


def update_customer(customer_id: str, data: dict) -> Customer:
    customer = get_customer(customer_id)
    if "name" in data:
        name = data["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name cannot be empty")
        customer.name = name.strip()
    for key in ("phone", "email"):
        if key in data:
            setattr(customer, key, data[key] or None)
    db.session.commit()
    return customer
