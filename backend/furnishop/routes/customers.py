# backend/furnishop/routes/customers.py
"""
Customer records and image galleries.

SECURITY: All routes require authentication.
- Read operations require VIEW_CUSTOMERS permission
- Writes (including images) require MANAGE_CUSTOMERS permission
"""
from flask import Blueprint, request, current_app

from ..extensions import db
from ..models import Customer
from ..services import customer_service, storage_service
from ..services.concurrency import commit_with_retry
from ..validation import validate_payload, enforce_rules_customer, ValidationError
from ..decorators import require_auth, require_permission


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_customers():
    """
    Query params:
    - search: str (name, phone or national ID substring)
    - customer_type: cash | hire-purchase
    """
    items = customer_service.list_customers(
        search=request.args.get("search"),
        customer_type=request.args.get("customer_type"),
    )
    return {"items": items, "count": len(items)}


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer(customer_id: int):
    customer = customer_service.get_customer(customer_id)
    if not customer:
        return {"error": "Customer not found"}, 404

    return {
        **customer_service.customer_to_dict(customer),
        "images": [
            customer_service.image_to_dict(img)
            for img in customer_service.list_customer_images(customer_id)
        ],
    }


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Customer, payload=payload, policy=customer_service.CUSTOMER_POLICY, partial=False
        )
        enforce_rules_customer(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        customer = customer_service.create_customer(patch)
        commit_with_retry()
        return customer_service.customer_to_dict(customer), 201
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer(customer_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Customer, payload=payload, policy=customer_service.CUSTOMER_POLICY, partial=True
        )
        enforce_rules_customer(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        customer = customer_service.update_customer(customer_id, patch)
        if not customer:
            return {"error": "Customer not found"}, 404
        commit_with_retry()
        return customer_service.customer_to_dict(customer)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update customer")
        return {"error": "Internal server error"}, 500


@customers_bp.get("/<int:customer_id>/images")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_images(customer_id: int):
    if not customer_service.get_customer(customer_id):
        return {"error": "Customer not found"}, 404
    images = customer_service.list_customer_images(customer_id)
    return {"images": [customer_service.image_to_dict(img) for img in images]}


@customers_bp.post("/<int:customer_id>/images")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def upload_image(customer_id: int):
    """
    Multipart upload, field name "image". Form field "primary=true" makes
    it the primary image; a customer's first image is always primary.
    """
    if not customer_service.get_customer(customer_id):
        return {"error": "Customer not found"}, 404

    upload = request.files.get("image")
    if upload is None or not upload.filename:
        return {"error": "image file is required"}, 400

    stored_path = None
    try:
        image = customer_service.add_customer_image(
            customer_id=customer_id,
            filename=upload.filename,
            data=upload.read(),
            make_primary=request.form.get("primary", "false").lower() == "true",
        )
        stored_path = image.image_path
        commit_with_retry()
        return customer_service.image_to_dict(image), 201
    except (customer_service.CustomerError, storage_service.StorageError) as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        if stored_path:
            storage_service.discard(storage_service.CUSTOMER_BUCKET, stored_path)
        current_app.logger.exception("Failed to upload customer image")
        return {"error": "Internal server error"}, 500


@customers_bp.post("/<int:customer_id>/images/<int:image_id>/primary")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def set_primary_image(customer_id: int, image_id: int):
    try:
        image = customer_service.set_primary_image(customer_id=customer_id, image_id=image_id)
        commit_with_retry()
        return customer_service.image_to_dict(image)
    except customer_service.CustomerError as e:
        db.session.rollback()
        return {"error": str(e)}, 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to set primary image")
        return {"error": "Internal server error"}, 500


@customers_bp.delete("/<int:customer_id>/images/<int:image_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def delete_image(customer_id: int, image_id: int):
    try:
        customer_service.delete_customer_image(customer_id=customer_id, image_id=image_id)
        commit_with_retry()
        return {"ok": True}
    except customer_service.CustomerError as e:
        db.session.rollback()
        return {"error": str(e)}, 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete customer image")
        return {"error": "Internal server error"}, 500
