from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models.sales import PAYMENT_CASH, PAYMENT_CREDIT, PAYMENT_TYPES


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Largest quantity accepted on one sale line
MAX_LINE_QUANTITY = 1_000_000


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class SaleItemInput:
    """One submitted cart line, after validation."""
    product_id: int
    quantity: int
    price_cents: int
    name: str


@dataclass(frozen=True)
class SaleRequest:
    """
    Normalized sale-completion request.

    amount_paid_cents is None when the client did not send it; the sale
    handler then treats the sale as fully paid.
    """
    items: list[SaleItemInput]
    payment_type: str = PAYMENT_CASH
    customer_id: int | None = None
    amount_paid_cents: int | None = None
    discount_cents: int = 0


def coerce_int(key: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _optional_int(key: str, value: Any) -> int | None:
    if value is None or value == "":
        return None
    return coerce_int(key, value)


def enforce_price(key: str, price: int) -> None:
    if price < 0:
        raise ValidationError(f"{key} must be >= 0")
    if price > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")


def parse_sale_item(raw: Any, index: int) -> SaleItemInput:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")

    for field in ("product_id", "quantity", "price_cents"):
        if raw.get(field) is None:
            raise ValidationError(f"items[{index}].{field} is required")

    product_id = coerce_int(f"items[{index}].product_id", raw["product_id"])
    quantity = coerce_int(f"items[{index}].quantity", raw["quantity"])
    price_cents = coerce_int(f"items[{index}].price_cents", raw["price_cents"])

    if product_id <= 0:
        raise ValidationError(f"items[{index}].product_id must be positive")
    if quantity < 1:
        raise ValidationError(f"items[{index}].quantity must be >= 1")
    if quantity > MAX_LINE_QUANTITY:
        raise ValidationError(f"items[{index}].quantity cannot exceed {MAX_LINE_QUANTITY}")
    enforce_price(f"items[{index}].price_cents", price_cents)

    name = str(raw.get("name") or "").strip() or f"product #{product_id}"
    return SaleItemInput(product_id=product_id, quantity=quantity, price_cents=price_cents, name=name)


def parse_sale_items(raw_items: Any) -> list[SaleItemInput]:
    """
    Validate the submitted cart lines. An empty list is returned as-is;
    the sale handler owns the "cart is empty" rule.
    """
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    return [parse_sale_item(raw, i) for i, raw in enumerate(raw_items)]


def parse_sale_request(payload: Any) -> SaleRequest:
    """
    Accepts either a bare JSON array of cart lines or an object:

        {"items": [...], "payment_type": "CASH", "customer_id": 3,
         "amount_paid_cents": 1000, "discount_cents": 0}
    """
    if isinstance(payload, list):
        return SaleRequest(items=parse_sale_items(payload))
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = parse_sale_items(payload.get("items"))

    payment_type = str(payload.get("payment_type") or PAYMENT_CASH).strip().upper()
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(f"payment_type must be one of: {', '.join(PAYMENT_TYPES)}")

    customer_id = _optional_int("customer_id", payload.get("customer_id"))
    if payment_type == PAYMENT_CREDIT and customer_id is None:
        raise ValidationError("customer_id is required for CREDIT sales")

    amount_paid_cents = _optional_int("amount_paid_cents", payload.get("amount_paid_cents"))
    if amount_paid_cents is not None:
        enforce_price("amount_paid_cents", amount_paid_cents)

    discount_cents = _optional_int("discount_cents", payload.get("discount_cents")) or 0
    enforce_price("discount_cents", discount_cents)

    return SaleRequest(
        items=items,
        payment_type=payment_type,
        customer_id=customer_id,
        amount_paid_cents=amount_paid_cents,
        discount_cents=discount_cents,
    )
