# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/counterpos/routes/products.py
"""
Product read routes for the POS screen.

MULTI-TENANT: All lookups are scoped to the caller's account (g.user_id,
set by @require_auth). Gate: ADMIN, CASHIER.
"""
from flask import Blueprint, request, g, jsonify

from ..services.products_service import get_product_by_barcode, list_products as list_products_service
from ..decorators import require_auth


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List active products with optional search and pagination.

    Query params:
    - q: str (optional) - name contains / barcode equals
    - in_stock: "1"/"true" (optional) - only products with stock > 0
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    in_stock = (request.args.get("in_stock") or "").lower() in ("1", "true", "yes")
    return list_products_service(
        user_id=g.user_id,
        q=request.args.get("q"),
        in_stock=in_stock,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<string:barcode>")
@require_auth
def get_product_by_barcode_route(barcode: str):
    """Resolve a scanned barcode. 404 if the account has no such product."""
    product = get_product_by_barcode(g.user_id, barcode)
    if product is None:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict()), 200
