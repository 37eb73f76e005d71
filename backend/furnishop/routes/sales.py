# backend/furnishop/routes/sales.py
"""
Cash sale routes.

SECURITY: All routes require authentication.
- Cart preview and commit require CREATE_SALE permission
- Listing and receipts require VIEW_SALES permission

The branch of a sale is the caller's branch unless the payload names one
(head-office users have no branch and must name it).
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import sales_service
from ..services.cart import CartError
from ..services.concurrency import commit_with_retry
from ..decorators import require_auth, require_permission
from ..time_utils import parse_iso_date


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _resolve_branch_id(data: dict):
    branch_id = data.get("branch_id") or g.branch_id
    if branch_id is None:
        return None, (jsonify({"error": "branch_id is required for users without a branch"}), 400)
    return branch_id, None


@sales_bp.post("/cart")
@require_auth
@require_permission("CREATE_SALE")
def preview_cart():
    """
    Price a cart against current stock without writing anything.

    Request body:
    {
        "items": [{"product_id": int, "quantity": int}],
        "branch_id": int (optional),
        "merge_duplicates": bool (optional, default true)
    }
    """
    data = request.get_json(silent=True) or {}
    branch_id, error = _resolve_branch_id(data)
    if error:
        return error

    try:
        cart = sales_service.build_cart(
            data.get("items"),
            branch_id=branch_id,
            merge_duplicates=bool(data.get("merge_duplicates", True)),
        )
    except CartError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"branch_id": branch_id, **cart.to_dict()})


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def commit_sale():
    """
    Commit a cash sale.

    Request body:
    {
        "items": [{"product_id": int, "quantity": int}],
        "payment_method": "cash" | "transfer" | "credit_card" | "qr_code",
        "customer_id": int (optional, walk-in when omitted),
        "sales_person_id": int (optional, default the caller),
        "branch_id": int (optional)
    }

    Returns:
        201: Sale committed (receipt payload)
        400: Empty cart, unknown product, insufficient stock, bad payment method
    """
    data = request.get_json(silent=True) or {}
    branch_id, error = _resolve_branch_id(data)
    if error:
        return error

    try:
        sale = sales_service.commit_cash_sale(
            branch_id=branch_id,
            items=data.get("items"),
            payment_method=data.get("payment_method") or "cash",
            user_id=g.current_user.id,
            customer_id=data.get("customer_id"),
            sales_person_id=data.get("sales_person_id"),
        )
        commit_with_retry()
        return jsonify(sales_service.get_sale_receipt(sale.id)), 201

    except sales_service.SaleError as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to commit cash sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales():
    """
    Query params:
    - branch_id: int
    - start, end: YYYY-MM-DD (inclusive sale dates)
    - limit: int (default 100, max 500)
    """
    try:
        start = parse_iso_date(request.args.get("start"))
        end = parse_iso_date(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be YYYY-MM-DD dates"}), 400

    sales = sales_service.list_sales(
        branch_id=request.args.get("branch_id", type=int),
        start=start,
        end=end,
        limit=request.args.get("limit", 100, type=int),
    )
    return jsonify({"sales": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale(sale_id: int):
    """Receipt view: header, lines, customer and branch."""
    receipt = sales_service.get_sale_receipt(sale_id)
    if receipt is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify(receipt)
