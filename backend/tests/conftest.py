"""
Pytest fixtures for Armonia backend tests.

Provides test database setup, staff users, bearer tokens and test client.
"""

import uuid

import jwt
import pytest

from armonia import create_app
from armonia.config import TestConfig
from armonia.extensions import db
from armonia.models import User


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(session, name, email, role):
    user = User(id=str(uuid.uuid4()), name=name, email=email, role=role)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Store admin (catalog writes, register history)."""
    return _make_user(db_session, "Ana Admin", "ana@armonia.local", "admin")


@pytest.fixture(scope='function')
def cashier_user(db_session):
    """Cashier working the floor."""
    return _make_user(db_session, "Carlos Cashier", "carlos@armonia.local", "cashier")


@pytest.fixture(scope='function')
def other_cashier(db_session):
    return _make_user(db_session, "Diana Cashier", "diana@armonia.local", "cashier")


def make_token(user, secret=TestConfig.JWT_SECRET) -> str:
    """Bearer token as issued by the auth service."""
    payload = {"id": user.id, "email": user.email, "role": user.role, "name": user.name}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_for():
    """Build Authorization headers for any user (or a token signed with another secret)."""
    def _headers(user, secret=TestConfig.JWT_SECRET):
        return auth_headers(make_token(user, secret))
    return _headers


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(make_token(admin_user))


@pytest.fixture(scope='function')
def cashier_headers(cashier_user):
    return auth_headers(make_token(cashier_user))


@pytest.fixture(scope='function')
def apparel_payload():
    """Size-tracked shirt: S=3, M=5."""
    return {
        "name": "Linen shirt",
        "sku": "SH-001",
        "price": 29.90,
        "cost": 12.00,
        "category": "shirts",
        "product_type": "apparel",
        "barcode": "7501234567890",
        "has_sizes": True,
        "size_type": "letter",
        "sizes": [{"size": "S", "quantity": 3}, {"size": "M", "quantity": 5}],
    }


@pytest.fixture(scope='function')
def simple_payload():
    """Product without sizes."""
    return {
        "name": "Leather belt",
        "sku": "BL-001",
        "price": "15.50",
        "category": "accessories",
        "product_type": "other",
        "stock": 10,
        "has_sizes": False,
    }
