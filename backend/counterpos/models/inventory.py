from __future__ import annotations

from ..extensions import db
from counterpos.time_utils import to_utc_z


UNITS = ("EACH", "KG", "G", "L", "ML")


class Product(db.Model):
    """
    Product master data and the on-hand stock counter.

    MULTI-TENANT: Products are scoped to the owning account via user_id.

    STOCK: Product.stock is the single source of truth for on-hand quantity.
    Sales decrement it, purchases and manual edits change it directly. Sale
    completion only ever decrements with a conditional update
    (stock >= quantity), so the sale path never drives it below zero.

    LOOKUP PATTERN:
    - Barcode lookup: Product.query.filter_by(user_id=X, barcode=Y)
    """
    __tablename__ = "products"
    __table_args__ = (
        # Barcodes are unique within an account
        db.UniqueConstraint("user_id", "barcode", name="uq_products_user_barcode"),
        db.Index("ix_products_user_name", "user_id", "name"),
        db.Index("ix_products_user_active", "user_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)
    unit = db.Column(db.String(8), nullable=False, default="EACH")

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode={self.barcode!r} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "barcode": self.barcode,
            "unit": self.unit,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "stock": self.stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
