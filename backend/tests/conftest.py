"""
Pytest fixtures for CounterPOS backend tests.

Provides test database setup, accounts for every role, a small catalogue
and logged-in test clients.
"""

import pytest
from counterpos import create_app
from counterpos.extensions import db
from counterpos.models import Customer, Product
from counterpos.models.auth import (
    ROLE_ADMIN,
    ROLE_CASHIER,
    ROLE_PHONE_REPAIR,
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_CANCELED,
)
from counterpos.services.auth_service import create_user


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET': 'test-secret-key-for-signing-session-tokens',
        'BCRYPT_ROUNDS': 4,
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


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Active ADMIN account."""
    return create_user("admin@example.com", PASSWORD, name="Admin", role=ROLE_ADMIN,
                       subscription_status=SUBSCRIPTION_ACTIVE)


@pytest.fixture(scope='function')
def cashier_user(db_session, admin_user):
    """CASHIER account."""
    return create_user("cashier@example.com", PASSWORD, name="Cashier", role=ROLE_CASHIER,
                       subscription_status=SUBSCRIPTION_ACTIVE)


@pytest.fixture(scope='function')
def repair_user(db_session):
    """PHONE_REPAIR account (no POS access)."""
    return create_user("repair@example.com", PASSWORD, name="Repair", role=ROLE_PHONE_REPAIR,
                       subscription_status=SUBSCRIPTION_ACTIVE)


@pytest.fixture(scope='function')
def expired_trial_user(db_session):
    """ADMIN whose trial ended yesterday."""
    return create_user("expired@example.com", PASSWORD, name="Expired", role=ROLE_ADMIN,
                       trial_days=-1)


@pytest.fixture(scope='function')
def canceled_user(db_session):
    """ADMIN with a canceled subscription."""
    return create_user("canceled@example.com", PASSWORD, name="Canceled", role=ROLE_ADMIN,
                       subscription_status=SUBSCRIPTION_CANCELED)


def make_product(db_session, user, name="Widget", barcode="100001", price_cents=1000, stock=5):
    """Helper to insert a product for an account."""
    product = Product(
        user_id=user.id,
        name=name,
        barcode=barcode,
        price_cents=price_cents,
        stock=stock,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product(db_session, admin_user):
    """Widget: stock 5 at 1000 cents, barcode 100001."""
    return make_product(db_session, admin_user)


@pytest.fixture(scope='function')
def second_product(db_session, admin_user):
    """Gadget: stock 2 at 250 cents, barcode 100002."""
    return make_product(db_session, admin_user, name="Gadget", barcode="100002", price_cents=250, stock=2)


@pytest.fixture(scope='function')
def customer(db_session, admin_user):
    """Credit customer owned by the admin account."""
    customer = Customer(user_id=admin_user.id, name="Jane Doe", phone="555-0100")
    db_session.add(customer)
    db_session.commit()
    return customer


def login(client, email: str, password: str = PASSWORD, remember_me: bool = False):
    """Helper to log a test client in; the session cookie stays on the client."""
    return client.post('/api/auth/login', json={
        'email': email,
        'password': password,
        'rememberMe': remember_me,
    })


@pytest.fixture(scope='function')
def admin_client(app, admin_user):
    """Test client logged in as the admin."""
    client = app.test_client()
    response = login(client, admin_user.email)
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def cashier_client(app, cashier_user):
    """Test client logged in as the cashier."""
    client = app.test_client()
    response = login(client, cashier_user.email)
    assert response.status_code == 200
    return client


def sale_item(product, quantity, price_cents=None):
    """One cart line as the POS client submits it."""
    return {
        'product_id': product.id,
        'quantity': quantity,
        'price_cents': product.price_cents if price_cents is None else price_cents,
        'name': product.name,
    }
