"""
Pytest fixtures for furnishop backend tests.

Provides the test app (in-memory SQLite), a per-test clean database, entity
factories and login helpers.
"""

import pytest

from furnishop import create_app
from furnishop.config import TestConfig
from furnishop.extensions import db
from furnishop.models import Branch, Customer
from furnishop.services.auth_service import create_user
from furnishop.services.inventory_service import receive_product
from furnishop.services.products_service import create_product


DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app(TestConfig)
    app.config.update({
        'MEDIA_ROOT': str(tmp_path_factory.mktemp("media")),
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

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_branch(name, code):
    branch = Branch(name=name, code=code)
    db.session.add(branch)
    db.session.commit()
    return branch


def make_user(username, role, branch_id):
    user = create_user(
        username=username,
        email=f"{username}@test.local",
        password=DEFAULT_PASSWORD,
        full_name=username.capitalize(),
        role=role,
        branch_id=branch_id,
        bcrypt_rounds=4,
    )
    db.session.commit()
    return user


def make_product(branch_id, code, *, price_cents=100000, stock=0, unit_cost_cents=60000, min_stock_level=1):
    """Catalog entry at `branch_id`, optionally received with `stock` units."""
    product = create_product(
        patch={
            "code": code,
            "name": f"Product {code}",
            "category": "sofa",
            "price_cents": price_cents,
            "min_stock_level": min_stock_level,
        },
        default_branch_id=branch_id,
    )
    db.session.commit()
    if stock:
        add_stock(product.id, branch_id, stock, unit_cost_cents=unit_cost_cents)
    return product


def add_stock(product_id, branch_id, quantity, *, unit_cost_cents=60000):
    receive_product(
        product_id=product_id,
        quantity=quantity,
        unit_cost_cents=unit_cost_cents,
        user_id=None,
        branch_id=branch_id,
    )
    db.session.commit()


def make_customer(name="Somchai Jaidee", phone="0812345678", customer_type="hire-purchase"):
    customer = Customer(name=name, phone=phone, customer_type=customer_type)
    db.session.add(customer)
    db.session.commit()
    return customer


@pytest.fixture(scope='function')
def branch_a(db_session):
    """Main branch."""
    return make_branch("Main Branch", "MAIN")


@pytest.fixture(scope='function')
def branch_b(db_session):
    """Second branch."""
    return make_branch("North Branch", "NORTH")


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Head-office admin (no branch)."""
    return make_user("admin", "admin", None)


@pytest.fixture(scope='function')
def manager_a(branch_a):
    return make_user("manager_a", "manager", branch_a.id)


@pytest.fixture(scope='function')
def sales_a(branch_a):
    return make_user("sales_a", "sales", branch_a.id)


@pytest.fixture(scope='function')
def cashier_a(branch_a):
    return make_user("cashier_a", "cashier", branch_a.id)


@pytest.fixture(scope='function')
def warehouse_a(branch_a):
    return make_user("warehouse_a", "warehouse", branch_a.id)


@pytest.fixture(scope='function')
def warehouse_b(branch_b):
    return make_user("warehouse_b", "warehouse", branch_b.id)


@pytest.fixture(scope='function')
def customer(db_session):
    return make_customer()


def get_auth_token(client, username, password=DEFAULT_PASSWORD):
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password,
    })
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def auth_headers(token):
    """Helper to create auth headers."""
    return {'Authorization': f'Bearer {token}'}


def login(client, user):
    return auth_headers(get_auth_token(client, user.username))
