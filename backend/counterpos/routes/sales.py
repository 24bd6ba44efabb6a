# Overview: Flask API routes for sales history and receipts; parses input and returns JSON responses.

# backend/counterpos/routes/sales.py
"""Sales history API. Gate: ADMIN."""

from flask import Blueprint, request, jsonify, g

from ..services import sales_service
from ..decorators import require_auth
from counterpos.time_utils import parse_iso_date


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Sales history, newest first.

    Query params:
    - date_from: YYYY-MM-DD (optional, inclusive)
    - date_to: YYYY-MM-DD (optional, inclusive)
    """
    try:
        date_from = parse_iso_date(request.args.get("date_from"))
        date_to = parse_iso_date(request.args.get("date_to"))
    except ValueError:
        return jsonify({"error": "date_from/date_to must be YYYY-MM-DD"}), 400

    sales = sales_service.list_sales(g.user_id, date_from=date_from, date_to=date_to)
    return jsonify({
        "sales": [sale.to_receipt_dict() for sale in sales],
        "count": len(sales),
    }), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Sale with lines and product names, for re-printing a receipt."""
    sale = sales_service.get_sale_for_receipt(g.user_id, sale_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_receipt_dict()}), 200
