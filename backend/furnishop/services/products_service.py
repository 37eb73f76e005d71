# backend/furnishop/services/products_service.py
"""
Product catalog.

The catalog is shared by all branches; each product has a home branch
where it is received by default. Stock is never stored on the product
(see inventory_service), so listings attach the derived stock_quantity.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Branch, Product
from ..validation import ConflictError, ModelValidationPolicy
from . import storage_service
from .inventory_service import get_quantity_on_hand, get_stock_levels, get_total_on_hand


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "branch_id", "code", "name", "category", "price_cents", "cost_cents",
        "min_stock_level", "brand", "model", "description", "location",
        "serial_number", "warranty_months", "is_active",
    },
    required_on_create={"code", "name", "category", "price_cents", "min_stock_level"},
)

PRODUCT_MUTABLE_FIELDS = PRODUCT_POLICY.writable_fields


class ProductError(Exception):
    """Raised when a product cannot be created or updated."""
    pass


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def product_to_dict(p: Product, *, branch_id: int | None = None, stock_quantity: int | None = None) -> dict:
    """Serialize with derived stock (at `branch_id`, or across all branches)."""
    if stock_quantity is None:
        stock_quantity = (
            get_quantity_on_hand(p.id, branch_id) if branch_id is not None else get_total_on_hand(p.id)
        )
    return p.to_dict(
        stock_quantity=stock_quantity,
        image_url=storage_service.public_url(storage_service.PRODUCT_BUCKET, p.image_path),
    )


def _ensure_unique_code(code: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Product).filter(Product.code == code)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first():
        raise ConflictError(f"Product code already exists: {code}")


def _ensure_branch(branch_id: int) -> None:
    if db.session.get(Branch, branch_id) is None:
        raise ProductError(f"Branch {branch_id} not found")


def create_product(*, patch: dict, default_branch_id: int | None = None) -> Product:
    """
    Create a product from a validated patch. New products hold no stock
    until they are received.
    """
    branch_id = patch.get("branch_id") or default_branch_id
    if branch_id is None:
        first = db.session.query(Branch).order_by(Branch.id.asc()).first()
        if first is None:
            raise ProductError("No branch available. Create a branch first.")
        branch_id = first.id
    _ensure_branch(branch_id)
    _ensure_unique_code(patch["code"])

    p = Product(branch_id=branch_id)
    apply_product_patch(p, patch)
    p.branch_id = branch_id

    db.session.add(p)
    db.session.flush()
    return p


def update_product(*, product_id: int, patch: dict) -> Product | None:
    p = db.session.get(Product, product_id)
    if p is None:
        return None

    if "code" in patch:
        _ensure_unique_code(patch["code"], exclude_id=product_id)
    if "branch_id" in patch:
        _ensure_branch(patch["branch_id"])

    apply_product_patch(p, patch)
    db.session.flush()
    return p


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def list_products(
    *,
    search: str | None = None,
    category: str | None = None,
    branch_id: int | None = None,
    low_stock_only: bool = False,
    include_inactive: bool = False,
) -> list[dict]:
    """
    Catalog listing, ordered by name.

    search matches name, code or category (case-insensitive substring).
    With branch_id, stock_quantity is the balance at that branch; otherwise
    across all branches.
    """
    q = db.session.query(Product)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Product.name.ilike(like), Product.code.ilike(like), Product.category.ilike(like)))
    if category:
        q = q.filter(Product.category == category)

    products = q.order_by(Product.name.asc(), Product.id.asc()).all()
    levels = get_stock_levels([p.id for p in products], branch_id=branch_id)

    items = [product_to_dict(p, stock_quantity=levels.get(p.id, 0)) for p in products]
    if low_stock_only:
        items = [item for item in items if item["is_low_stock"]]
    return items


def set_product_image(*, product_id: int, filename: str, data: bytes) -> Product:
    """Store a new product image, replacing (and deleting) the previous one."""
    p = db.session.get(Product, product_id)
    if p is None:
        raise ProductError(f"Product {product_id} not found")

    path = storage_service.make_object_path(str(p.id), filename)

    previous = p.image_path
    p.image_path = path
    db.session.flush()
    storage_service.put(storage_service.PRODUCT_BUCKET, path, data)

    if previous:
        storage_service.discard(storage_service.PRODUCT_BUCKET, previous)
    return p
