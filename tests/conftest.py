"""Shared pytest fixtures for the storefront API tests."""

from datetime import timedelta
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from shopzify import create_app, db as _db
from shopzify.models import User, Product


SECRET = "test-secret-key-long-enough-for-hs256-signing"

TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": SECRET,
    "JWT_SECRET_KEY": SECRET,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "RATELIMIT_ENABLED": False,
    "ADMIN_EMAIL": "admin@example.com",
}

PASSWORD = "password123"


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


def _make_user(email, is_admin=False):
    user = User(name=email.split("@")[0], email=email, is_admin=is_admin)
    user.set_password(PASSWORD)
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture
def user(app):
    """A regular shopper."""
    return _make_user("shopper@example.com")


@pytest.fixture
def admin(app):
    """Admin by ADMIN_EMAIL match rather than the is_admin flag."""
    return _make_user("admin@example.com")


def bearer(user, **kwargs):
    token = create_access_token(identity=str(user.user_id), **kwargs)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for(app):
    return bearer


@pytest.fixture
def auth_headers(user):
    return bearer(user)


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
def expired_headers(user):
    return bearer(user, expires_delta=timedelta(seconds=-1))


def _make_product(**overrides):
    fields = dict(
        image="https://img.example.com/p.jpg",
        name="Product",
        discounted_price=Decimal("100.00"),
        original_price=Decimal("150.00"),
        description="Description",
        quantity=10,
        gender="unisex",
        category="misc",
        status=True,
        badge="new",
    )
    fields.update(overrides)
    product = Product(**fields)
    _db.session.add(product)
    return product


@pytest.fixture
def products(app):
    """A small catalog keyed by role in the tests."""
    catalog = {
        "shirt": _make_product(
            name="Classic Oxford Shirt",
            description="A crisp cotton shirt for MEN",
            category="Shirts",
            gender="male",
            badge="sale",
            discounted_price=Decimal("400.00"),
            original_price=Decimal("500.00"),
        ),
        "dress": _make_product(
            name="Floral Summer Dress",
            description="Light summer dress for women",
            category="dresses",
            gender="female",
            discounted_price=Decimal("750.00"),
            original_price=Decimal("900.00"),
        ),
        "care_kit": _make_product(
            name="Garment Care Kit",
            description="Keeps garments fresh",
            category="accessories",
            gender="unisex",
            badge="sale",
            quantity=2,
        ),
        "retired": _make_product(
            name="Retired Sneaker",
            description="No longer sold",
            category="shoes",
            gender="male",
            status=False,
        ),
    }
    _db.session.commit()
    return catalog
