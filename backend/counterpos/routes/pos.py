# Overview: Flask API routes for point-of-sale checkout; parses input and returns JSON responses.

# backend/counterpos/routes/pos.py
"""Checkout API. Gate: ADMIN, CASHIER."""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..services.sales_service import SaleError
from ..validation import ValidationError, parse_sale_request
from ..decorators import require_auth


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


@pos_bp.post("/sales")
@require_auth
def complete_sale_route():
    """
    Complete a sale from the submitted cart.

    Body: a JSON array of cart lines, or
        {"items": [{"product_id", "quantity", "price_cents", "name"}, ...],
         "payment_type": "CASH" | "CARD" | "CREDIT",
         "customer_id": int?, "amount_paid_cents": int?, "discount_cents": int?}

    Returns 201 {"success": true, "sale": {..., "items": [...]}} or
    {"success": false, "error": ...}. The client keeps its cart on failure.
    """
    try:
        sale_request = parse_sale_request(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        sale = sales_service.complete_sale(
            g.user_id,
            sale_request.items,
            payment_type=sale_request.payment_type,
            customer_id=sale_request.customer_id,
            amount_paid_cents=sale_request.amount_paid_cents,
            discount_cents=sale_request.discount_cents,
        )
    except SaleError as e:
        return jsonify({"success": False, "error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Sale completion failed")
        return jsonify({"success": False, "error": "Sale completion failed"}), 500

    current_app.logger.info(
        "Sale %s completed: %s line(s), total %s cents",
        sale.id, len(sale.lines), sale.total_amount_cents,
    )
    return jsonify({"success": True, "sale": sale.to_receipt_dict()}), 201
