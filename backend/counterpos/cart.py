# Overview: Cart accumulator for the POS screen: reducer, multi-cart drafts and versioned persistence.

"""
Cart state for a checkout session.

A Cart is immutable; every change goes through reduce_cart(cart, action),
which returns the next cart and an optional CartNotice ("cannot add ...")
for the cashier. Nothing here touches the database: stock figures are the
snapshot taken when the product was added, and the authoritative check
happens when the sale is submitted.

MultiCart holds up to MAX_CARTS parked carts (one per waiting customer)
and round-trips through dump_carts/load_carts. The stored document is
versioned; older versions are upgraded step by step on load.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, replace
from typing import Any, Callable

CART_SCHEMA_VERSION = 2
MAX_CARTS = 9


class CartSchemaError(ValueError):
    """Stored cart document is malformed or from an unknown version."""


@dataclass(frozen=True)
class ProductSnapshot:
    """What the cart needs to know about a product at add time."""
    id: int
    name: str
    price_cents: int
    stock: int

    @classmethod
    def from_product(cls, product) -> "ProductSnapshot":
        """Accepts a Product model or its to_dict() output."""
        if isinstance(product, dict):
            return cls(
                id=product["id"],
                name=product["name"],
                price_cents=product["price_cents"],
                stock=product["stock"],
            )
        return cls(id=product.id, name=product.name, price_cents=product.price_cents, stock=product.stock)


@dataclass(frozen=True)
class CartLine:
    product_id: int
    name: str
    unit_price_cents: int
    quantity: int
    stock_at_add_time: int

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class CartNotice:
    product_id: int
    title: str
    message: str


# Actions

@dataclass(frozen=True)
class AddItem:
    product: ProductSnapshot


@dataclass(frozen=True)
class SetQuantity:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class RemoveItem:
    product_id: int


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Cart:
    lines: tuple[CartLine, ...] = ()

    @property
    def subtotal_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    @property
    def total_amount_cents(self) -> int:
        # No tax or discount model at cart level
        return self.subtotal_cents

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find(self, product_id: int) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def to_sale_items(self) -> list[dict]:
        """Payload lines for POST /api/pos/sales."""
        return [
            {
                "product_id": line.product_id,
                "quantity": line.quantity,
                "price_cents": line.unit_price_cents,
                "name": line.name,
            }
            for line in self.lines
        ]


def _add_item(cart: Cart, product: ProductSnapshot) -> tuple[Cart, CartNotice | None]:
    existing = cart.find(product.id)
    if existing is not None:
        if existing.quantity < product.stock:
            lines = tuple(
                replace(line, quantity=line.quantity + 1, stock_at_add_time=product.stock)
                if line.product_id == product.id else line
                for line in cart.lines
            )
            return Cart(lines), None
        return cart, CartNotice(product.id, "Out of stock", f"Cannot add more {product.name}.")

    if product.stock > 0:
        line = CartLine(
            product_id=product.id,
            name=product.name,
            unit_price_cents=product.price_cents,
            quantity=1,
            stock_at_add_time=product.stock,
        )
        return Cart(cart.lines + (line,)), None
    return cart, CartNotice(product.id, "Out of stock", f"{product.name} is out of stock.")


def _set_quantity(cart: Cart, product_id: int, quantity: int) -> Cart:
    if quantity <= 0:
        return _remove_item(cart, product_id)
    return Cart(tuple(
        replace(line, quantity=min(quantity, line.stock_at_add_time))
        if line.product_id == product_id else line
        for line in cart.lines
    ))


def _remove_item(cart: Cart, product_id: int) -> Cart:
    return Cart(tuple(line for line in cart.lines if line.product_id != product_id))


def reduce_cart(cart: Cart, action) -> tuple[Cart, CartNotice | None]:
    """Apply one action. Returns (next_cart, notice); notice is set only when an add was refused."""
    if isinstance(action, AddItem):
        return _add_item(cart, action.product)
    if isinstance(action, SetQuantity):
        return _set_quantity(cart, action.product_id, action.quantity), None
    if isinstance(action, RemoveItem):
        return _remove_item(cart, action.product_id), None
    if isinstance(action, Clear):
        return Cart(), None
    raise TypeError(f"Unknown cart action: {action!r}")


class MultiCart:
    """
    Parked carts plus the active index. Item actions apply to the active cart.

    There is always at least one cart.
    """

    def __init__(self, carts: list[Cart] | None = None, active_index: int = 0):
        self.carts: list[Cart] = list(carts) if carts else [Cart()]
        if len(self.carts) > MAX_CARTS:
            raise ValueError(f"At most {MAX_CARTS} carts are supported")
        self.active_index = min(max(active_index, 0), len(self.carts) - 1)

    @property
    def active_cart(self) -> Cart:
        return self.carts[self.active_index]

    def dispatch(self, action) -> CartNotice | None:
        cart, notice = reduce_cart(self.active_cart, action)
        self.carts[self.active_index] = cart
        return notice

    def add_item(self, product) -> CartNotice | None:
        if not isinstance(product, ProductSnapshot):
            product = ProductSnapshot.from_product(product)
        return self.dispatch(AddItem(product))

    def set_quantity(self, product_id: int, quantity: int) -> None:
        self.dispatch(SetQuantity(product_id, quantity))

    def remove_item(self, product_id: int) -> None:
        self.dispatch(RemoveItem(product_id))

    def clear(self) -> None:
        self.dispatch(Clear())

    def add_cart(self) -> bool:
        """Open a new empty cart and make it active. False when MAX_CARTS are open."""
        if len(self.carts) >= MAX_CARTS:
            return False
        self.carts.append(Cart())
        self.active_index = len(self.carts) - 1
        return True

    def remove_cart(self, index: int) -> bool:
        """Drop the cart at index. The last remaining cart is never removed."""
        if len(self.carts) <= 1 or not 0 <= index < len(self.carts):
            return False
        del self.carts[index]
        if self.active_index >= index:
            self.active_index = max(0, self.active_index - 1)
        return True

    def switch_cart(self, index: int) -> bool:
        if 0 <= index < len(self.carts):
            self.active_index = index
            return True
        return False


# Persistence

def _to_cents(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CartSchemaError("price must be a number")
    # json.loads accepts NaN and Infinity
    if not math.isfinite(value):
        raise CartSchemaError("price must be a finite number")
    return int(round(value * 100))


def _upgrade_v1(doc: dict) -> dict:
    """v1 stored camelCase lines under "items" with a float "price" and a "stock" snapshot."""
    raw_carts = doc.get("carts", [])
    if not isinstance(raw_carts, list):
        raise CartSchemaError("carts must be a list")
    carts = []
    for cart in raw_carts:
        if not isinstance(cart, dict):
            raise CartSchemaError("cart must be an object")
        items = cart.get("items", [])
        if not isinstance(items, list):
            raise CartSchemaError("cart items must be a list")
        lines = []
        for item in items:
            if not isinstance(item, dict):
                raise CartSchemaError("cart item must be an object")
            lines.append({
                "product_id": item.get("productId"),
                "name": item.get("name"),
                "unit_price_cents": _to_cents(item.get("price")),
                "quantity": item.get("quantity"),
                "stock_at_add_time": item.get("stock"),
            })
        carts.append({"lines": lines})
    return {"version": 2, "active": doc.get("active", 0), "carts": carts}


_UPGRADES: dict[int, Callable[[dict], dict]] = {
    1: _upgrade_v1,
}


def _require_int(value: Any, field: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise CartSchemaError(f"{field} must be an integer >= {minimum}")
    return value


def _parse_line(raw: Any) -> CartLine:
    if not isinstance(raw, dict):
        raise CartSchemaError("cart line must be an object")
    name = raw.get("name")
    if not isinstance(name, str):
        raise CartSchemaError("name must be a string")
    return CartLine(
        product_id=_require_int(raw.get("product_id"), "product_id", 1),
        name=name,
        unit_price_cents=_require_int(raw.get("unit_price_cents"), "unit_price_cents", 0),
        quantity=_require_int(raw.get("quantity"), "quantity", 1),
        stock_at_add_time=_require_int(raw.get("stock_at_add_time"), "stock_at_add_time", 0),
    )


def dump_carts(multi_cart: MultiCart) -> str:
    doc = {
        "version": CART_SCHEMA_VERSION,
        "active": multi_cart.active_index,
        "carts": [
            {
                "lines": [
                    {
                        "product_id": line.product_id,
                        "name": line.name,
                        "unit_price_cents": line.unit_price_cents,
                        "quantity": line.quantity,
                        "stock_at_add_time": line.stock_at_add_time,
                    }
                    for line in cart.lines
                ]
            }
            for cart in multi_cart.carts
        ],
    }
    return json.dumps(doc, separators=(",", ":"))


def load_carts(text: str) -> MultiCart:
    """
    Rebuild a MultiCart from dump_carts output (any known version).

    Raises CartSchemaError for invalid JSON, unknown versions or bad fields.
    """
    try:
        doc = json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise CartSchemaError("cart document is not valid JSON") from e
    if not isinstance(doc, dict):
        raise CartSchemaError("cart document must be an object")

    version = doc.get("version")
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise CartSchemaError("cart document has no valid version")
    if version > CART_SCHEMA_VERSION:
        raise CartSchemaError(f"cart document version {version} is newer than supported ({CART_SCHEMA_VERSION})")

    while version < CART_SCHEMA_VERSION:
        doc = _UPGRADES[version](doc)
        version = doc["version"]

    raw_carts = doc.get("carts")
    if not isinstance(raw_carts, list) or not raw_carts:
        raise CartSchemaError("carts must be a non-empty list")
    if len(raw_carts) > MAX_CARTS:
        raise CartSchemaError(f"at most {MAX_CARTS} carts are supported")

    carts = []
    for raw in raw_carts:
        if not isinstance(raw, dict) or not isinstance(raw.get("lines"), list):
            raise CartSchemaError("cart must be an object with a lines list")
        carts.append(Cart(tuple(_parse_line(line) for line in raw["lines"])))

    active = doc.get("active", 0)
    if isinstance(active, bool) or not isinstance(active, int):
        raise CartSchemaError("active must be an integer")
    return MultiCart(carts, active_index=active)
