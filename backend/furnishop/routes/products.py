# backend/furnishop/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS permission
- Create/update/image require MANAGE_PRODUCTS permission
- Removal requires REMOVE_PRODUCTS permission (a reason is mandatory)
"""
from flask import Blueprint, request, g, current_app

from ..extensions import db
from ..models import Product
from ..services import products_service, inventory_service, storage_service
from ..services.concurrency import commit_with_retry
from ..validation import (
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_permission

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    Query params:
    - search: str (name, code or category substring)
    - category: str
    - branch_id: int (stock at that branch; default all branches)
    - low_stock: bool (only products at or below min_stock_level)
    - include_inactive: bool
    """
    items = products_service.list_products(
        search=request.args.get("search"),
        category=request.args.get("category"),
        branch_id=request.args.get("branch_id", type=int),
        low_stock_only=request.args.get("low_stock", "false").lower() == "true",
        include_inactive=request.args.get("include_inactive", "false").lower() == "true",
    )
    return {"items": items, "count": len(items)}


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product(product_id: int):
    p = products_service.get_product(product_id)
    if not p:
        return {"error": "Product not found"}, 404

    by_branch = inventory_service.get_stock_by_branch(product_id)
    return {
        **products_service.product_to_dict(p, stock_quantity=sum(by_branch.values())),
        "stock_by_branch": [
            {"branch_id": branch_id, "quantity": qty} for branch_id, qty in sorted(by_branch.items())
        ],
    }


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product():
    """
    Create a catalog entry. Stock starts at zero; use /api/inventory/receive.

    Without branch_id the product's home branch is the caller's branch.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Product, payload=payload, policy=products_service.PRODUCT_POLICY, partial=False
        )
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        p = products_service.create_product(patch=patch, default_branch_id=g.branch_id)
        commit_with_retry()
        return products_service.product_to_dict(p, stock_quantity=0), 201
    except ConflictError as e:
        db.session.rollback()
        return {"error": str(e)}, 409
    except products_service.ProductError as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Product, payload=payload, policy=products_service.PRODUCT_POLICY, partial=True
        )
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        p = products_service.update_product(product_id=product_id, patch=patch)
        if not p:
            return {"error": "Product not found"}, 404
        commit_with_retry()
        return products_service.product_to_dict(p)
    except ConflictError as e:
        db.session.rollback()
        return {"error": str(e)}, 409
    except products_service.ProductError as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500


@products_bp.post("/<int:product_id>/image")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def upload_product_image(product_id: int):
    """Multipart upload, field name "image"."""
    upload = request.files.get("image")
    if upload is None or not upload.filename:
        return {"error": "image file is required"}, 400

    stored_path = None
    try:
        p = products_service.set_product_image(
            product_id=product_id, filename=upload.filename, data=upload.read()
        )
        stored_path = p.image_path
        commit_with_retry()
        return products_service.product_to_dict(p)
    except products_service.ProductError as e:
        db.session.rollback()
        return {"error": str(e)}, 404
    except storage_service.StorageError as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        if stored_path:
            storage_service.discard(storage_service.PRODUCT_BUCKET, stored_path)
        current_app.logger.exception("Failed to upload product image")
        return {"error": "Internal server error"}, 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("REMOVE_PRODUCTS")
def remove_product(product_id: int):
    """
    Remove a product from the catalog.

    Request body:
    {
        "reason": str
    }

    Cleanup problems (expenses, image, removal movement) do not block the
    removal; they are reported in "warnings".
    """
    data = request.get_json(silent=True) or {}
    if products_service.get_product(product_id) is None:
        return {"error": "Product not found"}, 404

    try:
        result = inventory_service.remove_product(
            product_id=product_id,
            reason=data.get("reason"),
            user_id=g.current_user.id,
        )
        commit_with_retry()
        return {"ok": True, **result}
    except inventory_service.InventoryError as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to remove product")
        return {"error": "Internal server error"}, 500
