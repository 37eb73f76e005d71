# backend/furnishop/routes/inventory.py
"""
Stock receiving and the movement log.

SECURITY: All routes require authentication.
- Receive requires RECEIVE_INVENTORY permission
- Movement history and stock levels require VIEW_PRODUCTS permission
"""
from flask import Blueprint, request, g, current_app

from ..extensions import db
from ..services import inventory_service, products_service
from ..services.concurrency import commit_with_retry
from ..validation import ValidationError, coerce_int
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/receive")
@require_auth
@require_permission("RECEIVE_INVENTORY")
def receive_inventory_route():
    """
    Receive stock into a branch.

    Request body:
    {
        "product_id": int,
        "quantity": int (> 0),
        "unit_cost_cents": int (>= 0),
        "branch_id": int (optional, default the user's branch, then the
                          product's home branch),
        "notes": str (optional)
    }

    The movement, the product's average cost and the cost_of_goods expense
    are written together.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product_id = coerce_int("product_id", payload.get("product_id"))
        quantity = coerce_int("quantity", payload.get("quantity"))
        unit_cost_cents = coerce_int("unit_cost_cents", payload.get("unit_cost_cents", 0))
        branch_id = payload.get("branch_id")
        if branch_id is not None:
            branch_id = coerce_int("branch_id", branch_id)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        result = inventory_service.receive_product(
            product_id=product_id,
            quantity=quantity,
            unit_cost_cents=unit_cost_cents,
            user_id=g.current_user.id,
            branch_id=branch_id or g.branch_id,
            notes=payload.get("notes"),
        )
        commit_with_retry()
    except inventory_service.InventoryError as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to receive inventory")
        return {"error": "Internal server error"}, 500

    movement = result["movement"]
    return {
        "movement": movement.to_dict(),
        "expense": result["expense"].to_dict() if result["expense"] else None,
        "product": products_service.product_to_dict(result["product"], branch_id=movement.branch_id),
        "total_cost_cents": result["total_cost_cents"],
    }, 201


@inventory_bp.get("/movements")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_movements_route():
    """
    Query params:
    - product_id: int
    - branch_id: int
    - movement_type: in | out | transfer_out | transfer_in | transfer_cancelled | product_removed
    - limit: int (default 50, max 500)
    """
    try:
        movements = inventory_service.list_movements(
            product_id=request.args.get("product_id", type=int),
            branch_id=request.args.get("branch_id", type=int),
            movement_type=request.args.get("movement_type") or None,
            limit=request.args.get("limit", 50, type=int),
        )
    except inventory_service.InventoryError as e:
        return {"error": str(e)}, 400
    return {"movements": [m.to_dict() for m in movements], "count": len(movements)}


@inventory_bp.get("/stock/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def stock_route(product_id: int):
    """Derived on-hand quantity per branch (sum of movements)."""
    if products_service.get_product(product_id) is None:
        return {"error": "Product not found"}, 404

    by_branch = inventory_service.get_stock_by_branch(product_id)
    return {
        "product_id": product_id,
        "total": sum(by_branch.values()),
        "by_branch": [{"branch_id": b, "quantity": q} for b, q in sorted(by_branch.items())],
    }
