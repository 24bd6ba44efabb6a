from __future__ import annotations

from ..extensions import db
from counterpos.time_utils import to_utc_z, utcnow


PAYMENT_CASH = "CASH"
PAYMENT_CARD = "CARD"
PAYMENT_CREDIT = "CREDIT"
PAYMENT_TYPES = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_CREDIT)


class Sale(db.Model):
    """
    Completed checkout.

    Sales are written once, together with their lines and the matching stock
    decrements, and are only read afterwards (receipts, history).
    """
    __tablename__ = "sales"
    __table_args__ = (
        # Composite index for account-scoped history queries by date
        db.Index("ix_sales_user_sale_date", "user_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # All amounts in cents
    total_amount_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_type = db.Column(db.String(16), nullable=False, default=PAYMENT_CASH, index=True)  # CASH, CARD, CREDIT

    # Only set for CREDIT sales
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    user = db.relationship("User", backref=db.backref("sales", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "sale_date": to_utc_z(self.sale_date),
            "total_amount_cents": self.total_amount_cents,
            "discount_cents": self.discount_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "payment_type": self.payment_type,
            "customer_id": self.customer_id,
        }

    def to_receipt_dict(self) -> dict:
        """Sale with lines, product names and customer, as rendered on a receipt."""
        data = self.to_dict()
        data["items"] = [line.to_receipt_dict() for line in self.lines]
        data["customer"] = (
            {"name": self.customer.name, "phone": self.customer.phone}
            if self.customer else None
        )
        return data


class SaleLine(db.Model):
    """Individual line items on a sale."""
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Price the line was sold at, independent of later product price edits
    unit_price_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship(
        "Sale",
        backref=db.backref("lines", lazy=True, order_by="SaleLine.id"),
    )
    product = db.relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }

    def to_receipt_dict(self) -> dict:
        data = self.to_dict()
        data["product"] = {"name": self.product.name, "unit": self.product.unit}
        return data
