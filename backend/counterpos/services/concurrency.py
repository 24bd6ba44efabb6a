# Overview: Service-layer helpers for transaction boundaries and atomic stock updates.

from __future__ import annotations

from sqlalchemy import text

from ..extensions import db
from ..models import Product


def begin_write_transaction() -> None:
    """
    Take the database write lock up front.

    NOTE: SQLite only locks on first write with a deferred BEGIN; BEGIN IMMEDIATE
    makes concurrent writers queue on the busy timeout instead of failing on
    lock upgrade. Other databases rely on row locks taken by the UPDATEs.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_conn = db.session.connection().connection.driver_connection
    # pysqlite opens its implicit transaction on the first DML; only reads so far
    if not dbapi_conn.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def decrement_stock_if_available(product_id: int, quantity: int) -> bool:
    """
    Atomically decrement Product.stock by quantity when enough is on hand.

    Runs as a single conditional UPDATE:
        UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q

    Returns False when no row matched (not enough stock, or no such product);
    the caller must roll back.
    """
    updated = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.stock >= quantity)
        .update(
            {
                Product.stock: Product.stock - quantity,
                Product.version_id: Product.version_id + 1,
            },
            synchronize_session=False,
        )
    )
    return updated == 1
