# tests/conftest.py
from datetime import timedelta
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.model import Address, Coupon, Product, ProductVariant, User
from storefront.utils.dates import utcnow


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _user(email, role="customer"):
    u = User(email=email, name=email.split("@")[0], role=role,
             password_hash=generate_password_hash("secret123"))
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def customer(app):
    return _user("asha@example.com")


@pytest.fixture
def admin(app):
    return _user("admin@example.com", role="admin")


def auth_header(user):
    return {"Authorization": f"Bearer {create_access_token(identity=str(user.id))}"}


@pytest.fixture
def customer_headers(customer):
    return auth_header(customer)


@pytest.fixture
def admin_headers(admin):
    return auth_header(admin)


@pytest.fixture
def catalog(app):
    """Whey (base ₹2000, two variants) and a shaker (₹150, no variants)."""
    whey = Product(name="Titan Whey", slug="titan-whey", price=Decimal("2000.00"), stock_quantity=50, is_active=True)
    shaker = Product(name="Shaker Bottle", slug="shaker", price=Decimal("150.00"), stock_quantity=100, is_active=True)
    db.session.add_all([whey, shaker])
    db.session.flush()
    choc = ProductVariant(product_id=whey.id, variant_name="Chocolate 1kg", size="1kg", flavor="Chocolate",
                          price=Decimal("1799.00"), original_price=Decimal("2499.00"), stock_quantity=20, is_active=True)
    vanilla = ProductVariant(product_id=whey.id, variant_name="Vanilla 2kg", size="2kg", flavor="Vanilla",
                             price=Decimal("3299.50"), stock_quantity=10, is_active=True)
    db.session.add_all([choc, vanilla])
    db.session.commit()
    return {"whey": whey, "shaker": shaker, "choc": choc, "vanilla": vanilla}


@pytest.fixture
def make_coupon(app):
    def _make(code="SAVE10", **kw):
        fields = dict(
            code=code,
            discount_type="percentage",
            discount_value=Decimal("10"),
            minimum_order_amount=Decimal("0"),
            used_count=0,
            is_active=True,
            valid_from=utcnow() - timedelta(days=1),
        )
        fields.update(kw)
        c = Coupon(**fields)
        db.session.add(c)
        db.session.commit()
        return c
    return _make


ADDRESS = {
    "first_name": "Asha",
    "last_name": "Verma",
    "address_line_1": "12 MG Road",
    "city": "Pune",
    "state": "MH",
    "postal_code": "411001",
    "country": "India",
    "phone": "9876543210",
}


@pytest.fixture
def address():
    return dict(ADDRESS)


@pytest.fixture
def saved_address(customer):
    a = Address(user_id=customer.id, is_default=True, **ADDRESS)
    db.session.add(a)
    db.session.commit()
    return a
