# Overview: Pytest coverage for sale completion, stock decrements and sales history.

"""
Sale Completion Tests

A sale either commits with all of its lines and stock decrements, or
leaves the database exactly as it found it.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import event

from counterpos.extensions import db
from counterpos.models import Customer, Product, Sale, SaleLine
from counterpos.models.sales import PAYMENT_CARD, PAYMENT_CREDIT
from counterpos.services.concurrency import decrement_stock_if_available
from counterpos.services.sales_service import SaleError, complete_sale, get_sale_for_receipt, list_sales
from counterpos.time_utils import utcnow
from counterpos.validation import SaleItemInput

from conftest import make_product


def item(product, quantity, price_cents=None):
    return SaleItemInput(
        product_id=product.id,
        quantity=quantity,
        price_cents=product.price_cents if price_cents is None else price_cents,
        name=product.name,
    )


def sale_count():
    return db.session.query(Sale).count()


class TestCompleteSale:
    """Happy path and receipt contents."""

    def test_sale_persisted_and_stock_decremented(self, db_session, admin_user, product):
        sale = complete_sale(admin_user.id, [item(product, 3)])

        assert sale.total_amount_cents == 3000
        assert sale.amount_paid_cents == 3000
        assert len(sale.lines) == 1
        assert sale.lines[0].quantity == 3
        assert sale.lines[0].unit_price_cents == 1000
        assert db_session.get(Product, product.id).stock == 2

    def test_multiple_lines(self, db_session, admin_user, product, second_product):
        sale = complete_sale(
            admin_user.id,
            [item(product, 1), item(second_product, 2)],
            payment_type=PAYMENT_CARD,
        )

        assert sale.total_amount_cents == 1000 + 2 * 250
        assert sale.payment_type == PAYMENT_CARD
        assert [line.product_id for line in sale.lines] == [product.id, second_product.id]
        assert db_session.get(Product, second_product.id).stock == 0

    def test_price_taken_from_cart_line(self, db_session, admin_user, product):
        sale = complete_sale(admin_user.id, [item(product, 1, price_cents=800)])
        assert sale.total_amount_cents == 800
        assert sale.lines[0].unit_price_cents == 800

    def test_receipt_contains_product_names(self, db_session, admin_user, product):
        sale = complete_sale(admin_user.id, [item(product, 2)])

        receipt = get_sale_for_receipt(admin_user.id, sale.id).to_receipt_dict()

        assert receipt["id"] == sale.id
        assert receipt["total_amount_cents"] == 2000
        assert receipt["items"][0]["product"]["name"] == "Widget"
        assert receipt["items"][0]["line_total_cents"] == 2000
        assert receipt["customer"] is None
        assert receipt["sale_date"].endswith("Z")

    def test_discount_applied_to_amount_paid(self, db_session, admin_user, product):
        sale = complete_sale(admin_user.id, [item(product, 2)], discount_cents=500)
        assert sale.total_amount_cents == 2000
        assert sale.discount_cents == 500
        assert sale.amount_paid_cents == 1500

    def test_exact_stock_allowed(self, db_session, admin_user, product):
        complete_sale(admin_user.id, [item(product, 5)])
        assert db_session.get(Product, product.id).stock == 0


class TestSaleRejected:
    """Nothing is written when a sale fails."""

    def test_insufficient_stock(self, db_session, admin_user):
        product = make_product(db_session, admin_user, stock=2)

        with pytest.raises(SaleError) as exc:
            complete_sale(admin_user.id, [item(product, 3)])

        message = str(exc.value)
        assert "Widget" in message
        assert "Available: 2" in message
        assert "Requested: 3" in message
        assert exc.value.details == {"product_id": product.id, "available": 2, "requested": 3}
        assert sale_count() == 0
        assert db_session.query(SaleLine).count() == 0
        assert db_session.get(Product, product.id).stock == 2

    def test_duplicate_lines_aggregated(self, db_session, admin_user, product):
        with pytest.raises(SaleError) as exc:
            complete_sale(admin_user.id, [item(product, 3), item(product, 3)])

        assert exc.value.details["requested"] == 6
        assert db_session.get(Product, product.id).stock == 5

    def test_one_short_line_fails_whole_sale(self, db_session, admin_user, product, second_product):
        with pytest.raises(SaleError):
            complete_sale(admin_user.id, [item(product, 1), item(second_product, 3)])

        assert sale_count() == 0
        assert db_session.get(Product, product.id).stock == 5
        assert db_session.get(Product, second_product.id).stock == 2

    def test_empty_cart(self, db_session, admin_user):
        user_id = admin_user.id
        statements = []

        def count_statement(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(db.engine, "before_cursor_execute", count_statement)
        try:
            with pytest.raises(SaleError, match="Cart is empty"):
                complete_sale(user_id, [])
        finally:
            event.remove(db.engine, "before_cursor_execute", count_statement)

        assert statements == []
        assert sale_count() == 0

    def test_unknown_product(self, db_session, admin_user):
        ghost = SaleItemInput(product_id=99999, quantity=1, price_cents=100, name="Ghost")

        with pytest.raises(SaleError) as exc:
            complete_sale(admin_user.id, [ghost])

        assert exc.value.details == {"missing_product_ids": [99999]}

    def test_other_account_product_not_found(self, db_session, admin_user, repair_user):
        foreign = make_product(db_session, repair_user, barcode="200001")

        with pytest.raises(SaleError) as exc:
            complete_sale(admin_user.id, [item(foreign, 1)])

        assert exc.value.details["missing_product_ids"] == [foreign.id]
        assert db_session.get(Product, foreign.id).stock == 5

    def test_discount_larger_than_total(self, db_session, admin_user, product):
        with pytest.raises(SaleError):
            complete_sale(admin_user.id, [item(product, 1)], discount_cents=1001)
        assert sale_count() == 0

    def test_failed_decrement_rolls_back_sale(self, db_session, admin_user, product, monkeypatch):
        """Stock taken by someone else between pre-check and write."""
        from counterpos.services import sales_service

        monkeypatch.setattr(sales_service, "decrement_stock_if_available", lambda *a: False)

        with pytest.raises(SaleError, match="Not enough stock"):
            complete_sale(admin_user.id, [item(product, 1)])

        assert sale_count() == 0
        assert db_session.query(SaleLine).count() == 0


class TestCreditSales:

    def test_unpaid_remainder_added_to_balance(self, db_session, admin_user, product, customer):
        sale = complete_sale(
            admin_user.id,
            [item(product, 2)],
            payment_type=PAYMENT_CREDIT,
            customer_id=customer.id,
            amount_paid_cents=500,
        )

        assert sale.customer_id == customer.id
        assert sale.to_receipt_dict()["customer"] == {"name": "Jane Doe", "phone": "555-0100"}
        assert db_session.get(Customer, customer.id).balance_cents == 1500

    def test_unknown_customer(self, db_session, admin_user, product):
        with pytest.raises(SaleError, match="Customer not found"):
            complete_sale(admin_user.id, [item(product, 1)], payment_type=PAYMENT_CREDIT, customer_id=424242)
        assert db_session.get(Product, product.id).stock == 5

    def test_customer_ignored_for_cash(self, db_session, admin_user, product, customer):
        sale = complete_sale(admin_user.id, [item(product, 1)], customer_id=customer.id)
        assert sale.customer_id is None
        assert db_session.get(Customer, customer.id).balance_cents == 0


class TestDecrementStock:

    def test_decrement_when_available(self, db_session, product):
        assert decrement_stock_if_available(product.id, 5) is True
        db_session.commit()
        assert db_session.get(Product, product.id).stock == 0

    def test_no_decrement_when_short(self, db_session, product):
        assert decrement_stock_if_available(product.id, 6) is False
        db_session.rollback()
        assert db_session.get(Product, product.id).stock == 5


class TestListSales:

    def test_newest_first_and_scoped(self, db_session, admin_user, repair_user, product):
        first = complete_sale(admin_user.id, [item(product, 1)])
        second = complete_sale(admin_user.id, [item(product, 1)])
        other = make_product(db_session, repair_user, barcode="200001")
        complete_sale(repair_user.id, [item(other, 1)])

        sales = list_sales(admin_user.id)

        assert [s.id for s in sales] == [second.id, first.id]

    def test_date_bounds_inclusive(self, db_session, admin_user, product):
        sale = complete_sale(admin_user.id, [item(product, 1)])
        today = utcnow().date()

        assert [s.id for s in list_sales(admin_user.id, date_from=today, date_to=today)] == [sale.id]
        assert list_sales(admin_user.id, date_to=today - timedelta(days=1)) == []
        assert list_sales(admin_user.id, date_from=date(2999, 1, 1)) == []
