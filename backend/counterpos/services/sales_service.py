"""
Sales Service - checkout completion and stock reconciliation

WHY: A sale is only real once its lines are persisted and every product it
touched has been decremented. Both happen in one database transaction, so a
failure anywhere leaves no sale, no lines and no stock change behind.

STOCK SAFETY: The pre-check gives the cashier a readable error before any
write. The authoritative check is the conditional decrement inside the
transaction (stock >= quantity); two checkouts racing for the last units of
a product cannot both pass it.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import Customer, Product, Sale, SaleLine
from ..models.sales import PAYMENT_CASH, PAYMENT_CREDIT
from ..validation import SaleItemInput
from counterpos.time_utils import end_of_day, start_of_day, utcnow
from .concurrency import begin_write_transaction, decrement_stock_if_available
from .products_service import get_products_by_ids


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _insufficient_stock_error(name: str, available: int, requested: int, product_id: int) -> SaleError:
    return SaleError(
        f"Not enough stock for {name}. Available: {available}, Requested: {requested}",
        details={
            "product_id": product_id,
            "available": available,
            "requested": requested,
        },
    )


def _requested_by_product(items: list[SaleItemInput]) -> dict[int, int]:
    totals: dict[int, int] = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


def _validate_on_hand(items: list[SaleItemInput], products: dict[int, Product]) -> None:
    """Raise on the first product whose current stock cannot cover the cart."""
    for product_id, requested in _requested_by_product(items).items():
        product = products[product_id]
        if product.stock < requested:
            raise _insufficient_stock_error(product.name, product.stock, requested, product_id)


def calculate_total_cents(items: list[SaleItemInput]) -> int:
    return sum(item.price_cents * item.quantity for item in items)


def complete_sale(
    user_id: int,
    items: list[SaleItemInput],
    *,
    payment_type: str = PAYMENT_CASH,
    customer_id: int | None = None,
    amount_paid_cents: int | None = None,
    discount_cents: int = 0,
) -> Sale:
    """
    Persist a checkout: sale row, its lines and the stock decrements, atomically.

    Unit prices are taken from the submitted lines (price at add-to-cart time).

    Raises:
        SaleError: empty cart, unknown product, insufficient stock, bad
            discount or credit customer. Nothing has been written.
    """
    if not items:
        raise SaleError("Cart is empty")

    total_amount_cents = calculate_total_cents(items)
    if discount_cents > total_amount_cents:
        raise SaleError("Discount cannot exceed the sale total")

    net_amount_cents = total_amount_cents - discount_cents
    paid_cents = net_amount_cents if amount_paid_cents is None else amount_paid_cents

    products = get_products_by_ids(user_id, (item.product_id for item in items))
    missing = sorted({item.product_id for item in items} - products.keys())
    if missing:
        raise SaleError(
            "One or more products in the cart could not be found.",
            details={"missing_product_ids": missing},
        )

    _validate_on_hand(items, products)

    if payment_type == PAYMENT_CREDIT:
        customer = (
            db.session.query(Customer)
            .filter(Customer.id == customer_id, Customer.user_id == user_id)
            .first()
        )
        if customer is None:
            raise SaleError("Customer not found or access denied.")

    try:
        begin_write_transaction()

        sale = Sale(
            user_id=user_id,
            sale_date=utcnow(),
            total_amount_cents=total_amount_cents,
            discount_cents=discount_cents,
            amount_paid_cents=paid_cents,
            payment_type=payment_type,
            customer_id=customer_id if payment_type == PAYMENT_CREDIT else None,
        )
        for item in items:
            sale.lines.append(SaleLine(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price_cents=item.price_cents,
            ))
        db.session.add(sale)
        db.session.flush()

        for item in items:
            if not decrement_stock_if_available(item.product_id, item.quantity):
                available = (
                    db.session.query(Product.stock)
                    .filter(Product.id == item.product_id)
                    .scalar()
                )
                raise _insufficient_stock_error(
                    products[item.product_id].name, available or 0, item.quantity, item.product_id
                )

        if payment_type == PAYMENT_CREDIT:
            debt_cents = net_amount_cents - paid_cents
            if debt_cents > 0:
                db.session.query(Customer).filter(
                    Customer.id == customer_id, Customer.user_id == user_id
                ).update(
                    {
                        Customer.balance_cents: Customer.balance_cents + debt_cents,
                        Customer.version_id: Customer.version_id + 1,
                    },
                    synchronize_session=False,
                )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return get_sale_for_receipt(user_id, sale.id)


def get_sale_for_receipt(user_id: int, sale_id: int) -> Sale | None:
    """Sale with its lines, each line's product and the customer, loaded eagerly."""
    return (
        db.session.query(Sale)
        .options(
            selectinload(Sale.lines).joinedload(SaleLine.product),
            joinedload(Sale.customer),
        )
        .filter(Sale.id == sale_id, Sale.user_id == user_id)
        .first()
    )


def list_sales(
    user_id: int,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[Sale]:
    """
    Sales history, newest first.

    Both bounds are whole days and inclusive.
    """
    query = (
        db.session.query(Sale)
        .options(
            selectinload(Sale.lines).joinedload(SaleLine.product),
            joinedload(Sale.customer),
        )
        .filter(Sale.user_id == user_id)
    )
    if date_from is not None:
        query = query.filter(Sale.sale_date >= start_of_day(date_from))
    if date_to is not None:
        query = query.filter(Sale.sale_date <= end_of_day(date_to))

    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()
