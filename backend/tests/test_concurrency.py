# Overview: Pytest coverage for concurrent checkouts against one product.

"""
Concurrency Tests

Checkouts racing for the same stock run in separate threads against a
file-backed SQLite database (in-memory SQLite is a single shared
connection and cannot show the race).
"""

import threading

import pytest

from counterpos import create_app
from counterpos.extensions import db
from counterpos.models import Product, Sale, User
from counterpos.services import sales_service
from counterpos.services.sales_service import SaleError
from counterpos.validation import SaleItemInput


@pytest.fixture
def file_app(tmp_path):
    db_path = tmp_path / "concurrency.db"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.drop_all()
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()


def seed(app, stock):
    with app.app_context():
        user = User(email="concurrent@example.com", password_hash="dummy", role="ADMIN",
                    subscription_status="ACTIVE", is_active=True)
        db.session.add(user)
        db.session.commit()

        product = Product(user_id=user.id, name="Concurrent Product", barcode="CONCUR-1",
                          price_cents=1000, stock=stock)
        db.session.add(product)
        db.session.commit()
        return user.id, product.id


def run_checkouts(app, user_id, product_id, quantities):
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(len(quantities))

    def worker(quantity):
        with app.app_context():
            try:
                barrier.wait()
                sales_service.complete_sale(user_id, [
                    SaleItemInput(product_id=product_id, quantity=quantity, price_cents=1000, name="Concurrent Product"),
                ])
                with lock:
                    results.append("completed")
            except Exception as exc:
                with lock:
                    results.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(q,)) for q in quantities]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def current_state(app, product_id):
    with app.app_context():
        stock = db.session.get(Product, product_id).stock
        sales = db.session.query(Sale).count()
        return stock, sales


class TestConcurrentCheckout:

    def test_two_checkouts_for_more_than_available(self, file_app):
        """Stock 10, two carts of 6: one sale at most, never negative stock."""
        user_id, product_id = seed(file_app, stock=10)

        results = run_checkouts(file_app, user_id, product_id, [6, 6])

        completed = sum(1 for r in results if r == "completed")
        failures = [r for r in results if r != "completed"]
        stock, sales = current_state(file_app, product_id)

        assert completed == 1
        assert all(isinstance(f, SaleError) for f in failures)
        assert stock == 4
        assert sales == 1

    def test_many_single_unit_checkouts(self, file_app):
        """Stock 3, five carts of 1: exactly three sales."""
        user_id, product_id = seed(file_app, stock=3)

        results = run_checkouts(file_app, user_id, product_id, [1] * 5)

        completed = sum(1 for r in results if r == "completed")
        stock, sales = current_state(file_app, product_id)

        assert completed == 3
        assert stock == 0
        assert sales == 3
