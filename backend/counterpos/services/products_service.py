# backend/counterpos/services/products_service.py
"""
Products read-model with per-account scoping.

MULTI-TENANT: Every lookup filters on user_id. A product that exists but
belongs to another account is indistinguishable from a missing one.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product


def get_product_by_barcode(user_id: int, barcode: str) -> Product | None:
    """Resolve a scanned barcode to the account's product, or None."""
    barcode = (barcode or "").strip()
    if not barcode:
        return None
    return (
        db.session.query(Product)
        .filter(Product.user_id == user_id, Product.barcode == barcode)
        .first()
    )


def get_products_by_ids(user_id: int, product_ids) -> dict[int, Product]:
    """
    Bulk-read products for a set of ids in one query.

    Returns {product_id: Product}; ids that are missing or owned by another
    account are simply absent from the result.
    """
    ids = {int(pid) for pid in product_ids}
    if not ids:
        return {}
    rows = (
        db.session.query(Product)
        .filter(Product.user_id == user_id, Product.id.in_(ids))
        .all()
    )
    return {p.id: p for p in rows}


def list_products(
    user_id: int,
    q: str | None = None,
    in_stock: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Account-scoped product listing for the POS grid, with optional pagination.

    Args:
        user_id: Owning account
        q: Case-insensitive match on name, or exact barcode
        in_stock: Only products with stock > 0
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = (
        db.session.query(Product)
        .filter(Product.user_id == user_id, Product.is_active.is_(True))
    )

    if q:
        term = q.strip()
        base_query = base_query.filter(
            db.or_(Product.name.ilike(f"%{term}%"), Product.barcode == term)
        )

    if in_stock:
        base_query = base_query.filter(Product.stock > 0)

    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    # Pagination logic
    per_page = max(1, min(per_page or 20, 100))  # Default 20, between 1 and 100
    page = max(page, 1)  # Ensure page >= 1

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
