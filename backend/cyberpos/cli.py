# Overview: Flask CLI command groups for bootstrap, demo data and inspection.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables (if missing) and the walk-in "public" customer.
# - python -m flask system seed
#   Load the demo tariffs, stations, products and customers. Existing ids are skipped.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inspection:
# - python -m flask stations list
# - python -m flask tariffs list [--device-type PC]
# - python -m flask tariffs quote --tariff-id t1 --minutes 75
# - python -m flask customers list

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, Product, Station, Tariff
from .services import customer_service, pricing_service, products_service, station_service, tariff_service


DEMO_TARIFFS = [
    {
        "id": "t1", "name": "PC General", "device_type": "PC",
        "ranges": [
            {"min_minutes": 1, "max_minutes": 15, "price": 10},
            {"min_minutes": 16, "max_minutes": 30, "price": 15},
            {"min_minutes": 31, "max_minutes": 60, "price": 20},
            {"min_minutes": 61, "max_minutes": 120, "price": 35},
            {"min_minutes": 121, "max_minutes": 180, "price": 50},
        ],
    },
    {
        "id": "t2", "name": "Consolas (Xbox/PS5)", "device_type": "XBOX",
        "ranges": [
            {"min_minutes": 1, "max_minutes": 30, "price": 20},
            {"min_minutes": 31, "max_minutes": 60, "price": 35},
            {"min_minutes": 61, "max_minutes": 120, "price": 60},
        ],
    },
    {
        "id": "t3", "name": "Nintendo Switch", "device_type": "NINTENDO",
        "ranges": [
            {"min_minutes": 1, "max_minutes": 60, "price": 40},
        ],
    },
]

DEMO_STATIONS = [
    ("pc1", "PC-01 Gamer (RTX 3060)", "PC"),
    ("pc2", "PC-02 Gamer (RTX 3060)", "PC"),
    ("pc3", "PC-03 Standard", "PC"),
    ("pc4", "PC-04 Standard", "PC"),
    ("xb1", "Xbox Series X - 01", "XBOX"),
    ("xb2", "Xbox Series S - 02", "XBOX"),
    ("ps1", "PlayStation 5 - 01", "PS5"),
    ("ns1", "Nintendo Switch OLED", "NINTENDO"),
]
DEMO_MAINTENANCE = ("ps1",)

DEMO_PRODUCTS = [
    {"id": "p1", "name": "Coca Cola 600ml", "price": 25, "cost": 18, "stock": 49, "category": "Bebidas"},
    {"id": "p2", "name": "Pepsi 600ml", "price": 24, "cost": 17, "stock": 24, "category": "Bebidas"},
    {"id": "p3", "name": "Agua Ciel 1L", "price": 18, "cost": 10, "stock": 30, "category": "Bebidas"},
    {"id": "p4", "name": "Monster Energy", "price": 45, "cost": 32, "stock": 12, "category": "Bebidas"},
    {"id": "p5", "name": "Sabritas Original 45g", "price": 18, "cost": 13, "stock": 29, "category": "Botanas"},
    {"id": "p6", "name": "Doritos Nacho 50g", "price": 18, "cost": 13, "stock": 15, "category": "Botanas"},
    {"id": "p7", "name": "Ruffles Queso", "price": 18, "cost": 13, "stock": 8, "category": "Botanas"},
    {"id": "p8", "name": "Maruchan Instantánea", "price": 20, "cost": 12, "stock": 50, "category": "Botanas"},
    {"id": "p9", "name": "Impresión B/N (Carta)", "price": 3, "cost": "0.5", "stock": 1000, "category": "Servicios", "track_stock": False},
    {"id": "p10", "name": "Impresión Color (Carta)", "price": 10, "cost": 2, "stock": 500, "category": "Servicios", "track_stock": False},
    {"id": "p11", "name": "Escaneo de Documento", "price": 5, "cost": 0, "stock": 999, "category": "Servicios", "track_stock": False},
    {"id": "p12", "name": "Copia B/N", "price": 2, "cost": "0.5", "stock": 999, "category": "Servicios", "track_stock": False},
    {"id": "p13", "name": "Mouse Gamer RGB", "price": 350, "cost": 200, "stock": 5, "category": "Accesorios", "has_warranty": True, "warranty_period": "3 meses"},
    {"id": "p14", "name": "Audífonos Básicos", "price": 120, "cost": 60, "stock": 10, "category": "Accesorios", "has_warranty": True, "warranty_period": "1 mes"},
    {"id": "p15", "name": "Cable USB-C 1m", "price": 80, "cost": 30, "stock": 20, "category": "Accesorios", "has_warranty": True, "warranty_period": "1 mes"},
    {"id": "p16", "name": "Memoria USB 32GB", "price": 150, "cost": 90, "stock": 15, "category": "Accesorios", "has_warranty": True, "warranty_period": "6 meses"},
]

DEMO_CUSTOMERS = [
    ("c1", "Juan Pérez", "5512345678", "juan.perez@email.com", 125),
    ("c2", "Maria García", "5587654321", "maria.garcia@email.com", 40),
    ("c3", "Pedro López", "5511223344", "pedro.lopez@email.com", 10),
    ("c4", "Ana Torres", "5544332211", "ana.torres@email.com", 250),
    ("c5", "Carlos Ruiz", "5599887766", "carlos.ruiz@email.com", 0),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create missing tables and the walk-in customer. Safe to re-run."""
    db.create_all()
    customer = customer_service.ensure_public_customer()
    click.echo(f"PASS Schema ready; walk-in customer '{customer.id}' present")


@system_group.command('seed')
@with_appcontext
def seed_demo():
    """Load demo data. Rows whose id already exists are left untouched."""
    customer_service.ensure_public_customer()

    created = {"tariffs": 0, "stations": 0, "products": 0, "customers": 0}

    for t in DEMO_TARIFFS:
        if db.session.get(Tariff, t["id"]) is None:
            tariff_service.create_tariff(t["name"], t["device_type"], t["ranges"], tariff_id=t["id"])
            created["tariffs"] += 1

    for station_id, name, device_type in DEMO_STATIONS:
        if db.session.get(Station, station_id) is None:
            station_service.create_station(name, device_type, station_id=station_id)
            if station_id in DEMO_MAINTENANCE:
                station_service.set_maintenance(station_id, True)
            created["stations"] += 1

    for p in DEMO_PRODUCTS:
        if db.session.get(Product, p["id"]) is None:
            products_service.create_product(p)
            created["products"] += 1

    for customer_id, name, phone, email, points in DEMO_CUSTOMERS:
        if db.session.get(Customer, customer_id) is None:
            customer_service.create_customer(name, phone=phone, email=email, points=points, customer_id=customer_id)
            created["customers"] += 1

    summary = ", ".join(f"{v} {k}" for k, v in created.items())
    click.echo(f"PASS Seeded {summary}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()
    customer_service.ensure_public_customer()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' for demo data.")


@click.group('stations')
def stations_group():
    """Station inspection commands."""


@stations_group.command('list')
@with_appcontext
def list_stations_cli():
    """List stations with status and live rental estimate."""
    stations = station_service.list_stations()
    if not stations:
        click.echo("No stations. Run 'python -m flask system seed'.")
        return

    click.echo(f"{'ID':<10} {'NAME':<28} {'TYPE':<9} {'STATUS':<12} {'TARIFF':<16} {'RENTAL':>9}")
    click.echo("-" * 89)
    for station in stations:
        estimate = pricing_service.estimate_station(station)
        tariff = estimate["tariff_id"] or "(none)"
        click.echo(
            f"{station.id:<10} {station.name[:28]:<28} {station.device_type:<9} "
            f"{station.status:<12} {tariff[:16]:<16} {estimate['rental_cost']:>9}"
        )


@click.group('tariffs')
def tariffs_group():
    """Tariff inspection commands."""


@tariffs_group.command('list')
@click.option('--device-type', default=None, help='Filter by device type')
@with_appcontext
def list_tariffs_cli(device_type):
    for tariff in tariff_service.list_tariffs(device_type):
        click.echo(f"{tariff.id}  {tariff.name} [{tariff.device_type}]")
        for r in tariff.ranges:
            click.echo(f"    {r.min_minutes:>4}-{r.max_minutes:<4} min  ${r.price}")


@tariffs_group.command('quote')
@click.option('--tariff-id', required=True, help='Tariff id')
@click.option('--minutes', required=True, type=click.IntRange(min=0), help='Billed minutes')
@with_appcontext
def quote_tariff_cli(tariff_id, minutes):
    """Price a number of minutes against a tariff."""
    tariff = db.session.get(Tariff, tariff_id)
    if tariff is None:
        raise click.ClickException(f"Tariff '{tariff_id}' not found")
    cost = pricing_service.calculate_cost(minutes, tariff)
    click.echo(f"{minutes} min on {tariff.name}: ${cost}")


@click.group('customers')
def customers_group():
    """Customer inspection commands."""


@customers_group.command('list')
@with_appcontext
def list_customers_cli():
    for customer in customer_service.list_customers():
        click.echo(f"{customer.id:<34} {customer.name:<24} {customer.points:>5} pts")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stations_group)
    app.cli.add_command(tariffs_group)
    app.cli.add_command(customers_group)
