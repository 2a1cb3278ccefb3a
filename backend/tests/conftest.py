"""
Pytest fixtures for CyberPOS backend tests.

Provides test database setup, a test client and a small demo catalog
(tariffs, stations, products, customers) built through the services.
"""

from datetime import datetime

import pytest
from cyberpos import create_app
from cyberpos.extensions import db
from cyberpos.services import customer_service, products_service, station_service, tariff_service


# Fixed clock for session tests; services take `now` explicitly
T0 = datetime(2026, 3, 14, 16, 0, 0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        customer_service.ensure_public_customer()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def pc_tariff(db_session):
    """$5 / $10 / $20 first hour, $20 per hour after that."""
    return tariff_service.create_tariff(
        "PC Estándar",
        "PC",
        [
            {"min_minutes": 1, "max_minutes": 15, "price": 5},
            {"min_minutes": 16, "max_minutes": 30, "price": 10},
            {"min_minutes": 31, "max_minutes": 60, "price": 20},
        ],
        tariff_id="t-pc",
    )


@pytest.fixture(scope='function')
def pc_station(db_session, pc_tariff):
    return station_service.create_station("PC-01", "PC", station_id="pc1")


@pytest.fixture(scope='function')
def xbox_station(db_session):
    """Console with no tariff for its device type."""
    return station_service.create_station("Xbox-01", "XBOX", station_id="xb1")


@pytest.fixture(scope='function')
def soda(db_session):
    return products_service.create_product({
        "id": "p1", "name": "Coca Cola 600ml", "price": 25, "cost": 18, "stock": 10, "category": "Bebidas",
    })


@pytest.fixture(scope='function')
def chips(db_session):
    return products_service.create_product({
        "id": "p5", "name": "Sabritas Original 45g", "price": 18, "cost": 13, "stock": 5, "category": "Botanas",
    })


@pytest.fixture(scope='function')
def juan(db_session):
    """Registered customer with 25 points."""
    return customer_service.create_customer("Juan Pérez", phone="5512345678", points=25, customer_id="c1")


@pytest.fixture(scope='function')
def ana(db_session):
    """Registered customer with enough points for 2 free hours."""
    return customer_service.create_customer("Ana Torres", points=25, customer_id="c4")
