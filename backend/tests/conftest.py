# Overview: Pytest fixtures for the Loko backend.

"""
Pytest fixtures for Loko backend tests.

Provides an in-memory database, one user per role, a product, actors and
auth headers for the test client.
"""

import pytest
from sqlalchemy import text

from loko import create_app
from loko.extensions import db
from loko.models import Product
from loko.permissions import ROLE_ADMIN, ROLE_CLIENT, ROLE_COURIER, ROLE_SELLER
from loko.services import session_service
from loko.services.auth_service import create_user
from loko.services.permission_service import Actor


PASSWORD = "Password123!"

# A point in Abidjan, used as the default drop-off
DESTINATION = {"latitude": 5.3599, "longitude": -4.0083, "description": "Cocody, blue gate"}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh data for each test; the schema is kept."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def strict_off(app, monkeypatch):
    """Legacy permissive transitions."""
    monkeypatch.setitem(app.config, 'DELIVERY_STRICT_TRANSITIONS', False)


def make_user(name: str, role: str, **kwargs):
    email = f"{name.lower().replace(' ', '.')}@loko.test"
    return create_user(name, email, PASSWORD, role, **kwargs)


@pytest.fixture
def client_user(db_session):
    return make_user("Client One", ROLE_CLIENT)


@pytest.fixture
def other_client(db_session):
    return make_user("Client Two", ROLE_CLIENT)


@pytest.fixture
def courier_user(db_session):
    return make_user("Courier A", ROLE_COURIER)


@pytest.fixture
def other_courier(db_session):
    return make_user("Courier B", ROLE_COURIER)


@pytest.fixture
def seller_user(db_session):
    """Seller with a registered pickup location."""
    return make_user(
        "Seller Located",
        ROLE_SELLER,
        city="Abidjan",
        neighborhood="Treichville",
        landmark="Market hall",
        latitude=5.2920,
        longitude=-4.0037,
    )


@pytest.fixture
def seller_no_location(db_session):
    return make_user("Seller Remote", ROLE_SELLER)


@pytest.fixture
def admin_user(db_session):
    return make_user("Admin", ROLE_ADMIN)


@pytest.fixture
def client_actor(client_user):
    return Actor.from_user(client_user)


@pytest.fixture
def courier_actor(courier_user):
    return Actor.from_user(courier_user)


@pytest.fixture
def seller_actor(seller_user):
    return Actor.from_user(seller_user)


@pytest.fixture
def admin_actor(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture
def product(db_session, seller_user):
    product = Product(
        seller_id=seller_user.id,
        name="Widget",
        price_cents=1000,
        stock=10,
    )
    db_session.add(product)
    db_session.commit()
    return product


def auth_headers(user) -> dict:
    """Issue a session for user and build the Authorization header."""
    _session, token = session_service.create_session(user.id)
    return {'Authorization': f'Bearer {token}'}


def get_auth_token(client, email: str, password: str = PASSWORD) -> str | None:
    """Helper to get auth token through the login route."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def place_order(actor, **kwargs):
    """create_order with a default destination and no items."""
    from loko.services import delivery_service

    kwargs.setdefault("destination", dict(DESTINATION))
    return delivery_service.create_order(actor, **kwargs)


def drive_to(delivery_id, status, *, admin, courier):
    """
    Walk a fresh delivery forward along the happy path up to status.

    FAILED is reached straight from CREATED.
    """
    from loko.services import delivery_service
    from loko.services.lifecycle_service import (
        STATUS_ARRIVED_ZONE,
        STATUS_ASSIGNED,
        STATUS_CREATED,
        STATUS_DELIVERED,
        STATUS_FAILED,
        STATUS_IN_TRANSIT,
    )
    from loko.models import Delivery

    if status == STATUS_CREATED:
        return
    if status == STATUS_FAILED:
        delivery_service.advance_status(admin, delivery_id, STATUS_FAILED)
        return

    path = [STATUS_ASSIGNED, STATUS_IN_TRANSIT, STATUS_ARRIVED_ZONE, STATUS_DELIVERED]
    for step in path[: path.index(status) + 1]:
        if step == STATUS_ASSIGNED:
            delivery_service.assign_courier(admin, delivery_id, courier.user_id)
        elif step == STATUS_DELIVERED:
            code = db.session.get(Delivery, delivery_id).confirmation_code
            delivery_service.submit_proof(courier, delivery_id, code, 5.36, -4.01)
        else:
            delivery_service.advance_status(courier, delivery_id, step)


class BrokenUpdate:
    """Stands in for update(Product); the statement it yields fails on execute."""

    def where(self, *args):
        return self

    def values(self, **kwargs):
        return text("UPDATE no_such_table SET stock = 0")
