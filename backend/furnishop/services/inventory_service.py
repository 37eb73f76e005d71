# Overview: Ledger-derived stock, receiving and product removal.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import (
    Branch,
    BranchExpense,
    CashSaleItem,
    HirePurchaseItem,
    InventoryMovement,
    Product,
    ProductTransfer,
)
from furnishop.time_utils import local_today
from . import storage_service
from .concurrency import lock_for_update, run_with_retry
"""
Inventory invariants

- Stock is ledger-derived from InventoryMovement rows; never stored as a
  mutable quantity field. On hand = SUM(quantity), per branch or overall.
- On hand at a branch may never go negative.
- Every stock change is one movement carrying its reference
  (sale, hire_purchase, receive, transfer, product_removal).
- Receiving updates the product's weighted average cost:
    (on_hand * cost + qty * unit_cost) / (on_hand + qty), half-up to the cent
"""


MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"
MOVEMENT_TRANSFER_OUT = "transfer_out"
MOVEMENT_TRANSFER_IN = "transfer_in"
MOVEMENT_TRANSFER_CANCELLED = "transfer_cancelled"
MOVEMENT_PRODUCT_REMOVED = "product_removed"

MOVEMENT_TYPES = (
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_TRANSFER_OUT,
    MOVEMENT_TRANSFER_IN,
    MOVEMENT_TRANSFER_CANCELLED,
    MOVEMENT_PRODUCT_REMOVED,
)

COST_OF_GOODS_CATEGORY = "cost_of_goods"


class InventoryError(Exception):
    """Raised when a stock operation would break an inventory rule."""
    pass


def get_quantity_on_hand(product_id: int, branch_id: int) -> int:
    q = db.session.query(
        func.coalesce(func.sum(InventoryMovement.quantity), 0)
    ).filter(
        InventoryMovement.product_id == product_id,
        InventoryMovement.branch_id == branch_id,
    )
    return int(q.scalar() or 0)


def get_total_on_hand(product_id: int) -> int:
    q = db.session.query(
        func.coalesce(func.sum(InventoryMovement.quantity), 0)
    ).filter(InventoryMovement.product_id == product_id)
    return int(q.scalar() or 0)


def get_stock_by_branch(product_id: int) -> dict[int, int]:
    """{branch_id: on_hand} for every branch with a non-zero balance."""
    rows = (
        db.session.query(InventoryMovement.branch_id, func.sum(InventoryMovement.quantity))
        .filter(InventoryMovement.product_id == product_id)
        .group_by(InventoryMovement.branch_id)
        .all()
    )
    return {branch_id: int(qty) for branch_id, qty in rows if qty}


def get_stock_levels(product_ids, branch_id: int | None = None) -> dict[int, int]:
    """Bulk on-hand lookup for listings: {product_id: on_hand}."""
    ids = list(product_ids)
    if not ids:
        return {}
    q = (
        db.session.query(InventoryMovement.product_id, func.sum(InventoryMovement.quantity))
        .filter(InventoryMovement.product_id.in_(ids))
    )
    if branch_id is not None:
        q = q.filter(InventoryMovement.branch_id == branch_id)
    levels = {pid: 0 for pid in ids}
    for pid, qty in q.group_by(InventoryMovement.product_id).all():
        levels[pid] = int(qty or 0)
    return levels


def lock_product(product_id: int) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise InventoryError(f"Product {product_id} not found")
    return product


def _record_movement(
    product: Product,
    *,
    branch_id: int,
    movement_type: str,
    quantity: int,
    user_id: int | None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
    unit_cost_cents: int | None = None,
) -> InventoryMovement:
    movement = InventoryMovement(
        product_id=product.id,
        product_code=product.code,
        product_name=product.name,
        branch_id=branch_id,
        movement_type=movement_type,
        quantity=quantity,
        unit_cost_cents=unit_cost_cents,
        notes=notes,
        reference_type=reference_type,
        reference_id=reference_id,
        created_by_user_id=user_id,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def increase_product_stock(
    product_id: int,
    branch_id: int,
    quantity: int,
    *,
    movement_type: str = MOVEMENT_IN,
    user_id: int | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
    unit_cost_cents: int | None = None,
) -> InventoryMovement:
    """
    Add `quantity` units at a branch by appending a positive movement.

    Runs inside the caller's transaction; nothing is committed here.
    """
    if quantity <= 0:
        raise InventoryError("quantity must be > 0")
    product = lock_product(product_id)
    return _record_movement(
        product,
        branch_id=branch_id,
        movement_type=movement_type,
        quantity=quantity,
        user_id=user_id,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        unit_cost_cents=unit_cost_cents,
    )


def decrease_product_stock(
    product_id: int,
    branch_id: int,
    quantity: int,
    *,
    movement_type: str = MOVEMENT_OUT,
    user_id: int | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
) -> InventoryMovement:
    """
    Remove `quantity` units at a branch by appending a negative movement.

    The product row is locked before the balance is read, so two concurrent
    decreases cannot both pass the check. Raises InventoryError when the
    branch does not hold enough stock.
    """
    if quantity <= 0:
        raise InventoryError("quantity must be > 0")
    product = lock_product(product_id)
    on_hand = get_quantity_on_hand(product_id, branch_id)
    if on_hand - quantity < 0:
        raise InventoryError(
            f"Insufficient stock for {product.name}: {on_hand} on hand, {quantity} requested"
        )
    return _record_movement(
        product,
        branch_id=branch_id,
        movement_type=movement_type,
        quantity=-quantity,
        user_id=user_id,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
    )


def _weighted_average_cost(on_hand: int, cost_cents: int | None, quantity: int, unit_cost_cents: int) -> int:
    current_units = max(on_hand, 0)
    total_units = current_units + quantity
    total_cost = current_units * (cost_cents or 0) + quantity * unit_cost_cents
    # nearest-cent rounding (half-up)
    return (total_cost + (total_units // 2)) // total_units


def receive_product(
    *,
    product_id: int,
    quantity: int,
    unit_cost_cents: int,
    user_id: int | None,
    branch_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Receive stock into a branch.

    One transaction: `in` movement, weighted average cost update on the
    product, and a cost_of_goods expense for quantity * unit_cost at the
    receiving branch. Without an explicit branch the product's home branch
    is used.
    """
    def _op():
        if quantity is None or quantity <= 0:
            raise InventoryError("quantity must be > 0")
        if unit_cost_cents is None or unit_cost_cents < 0:
            raise InventoryError("unit_cost_cents must be >= 0")

        product = lock_product(product_id)
        if not product.is_active:
            raise InventoryError(f"Product {product.code} is inactive")

        target_branch_id = branch_id or product.branch_id
        if db.session.get(Branch, target_branch_id) is None:
            raise InventoryError(f"Branch {target_branch_id} not found")

        on_hand = get_total_on_hand(product.id)
        product.cost_cents = _weighted_average_cost(on_hand, product.cost_cents, quantity, unit_cost_cents)

        movement = _record_movement(
            product,
            branch_id=target_branch_id,
            movement_type=MOVEMENT_IN,
            quantity=quantity,
            user_id=user_id,
            reference_type="receive",
            notes=notes,
            unit_cost_cents=unit_cost_cents,
        )

        total_cost_cents = quantity * unit_cost_cents
        expense = None
        if total_cost_cents > 0:
            expense = BranchExpense(
                branch_id=target_branch_id,
                product_id=product.id,
                amount_cents=total_cost_cents,
                description=f"Stock received: {product.code} {product.name} x{quantity}",
                category=COST_OF_GOODS_CATEGORY,
                expense_date=local_today(),
                created_by_user_id=user_id,
            )
            db.session.add(expense)
        db.session.flush()

        return {
            "movement": movement,
            "expense": expense,
            "product": product,
            "total_cost_cents": total_cost_cents,
        }

    return run_with_retry(_op)


def _detach_product_references(product_id: int) -> None:
    """Null out product_id on rows that outlive the product (snapshots keep code/name)."""
    for model in (InventoryMovement, CashSaleItem, HirePurchaseItem, ProductTransfer, BranchExpense):
        db.session.query(model).filter(model.product_id == product_id).update(
            {model.product_id: None}, synchronize_session=False
        )


def remove_product(*, product_id: int, reason: str, user_id: int | None) -> dict:
    """
    Remove a product from the catalog.

    Steps, in order (after deactivating the product):
    1. delete the cost_of_goods (and other) expenses tagged with the product
    2. delete the product image from the object store (best effort)
    3. write a product_removed movement per branch holding stock, bringing
       each balance to zero (a single zero-quantity row at the home branch
       when nothing is held); notes carry the reason
    4. delete the product row

    Failures in steps 1-3 are returned as warnings and do not stop the
    removal. Step 4 failing raises and the caller rolls everything back.
    """
    clean_reason = (reason or "").strip()
    if not clean_reason:
        raise InventoryError("A reason is required to remove a product")

    product = lock_product(product_id)

    pending = db.session.query(ProductTransfer).filter_by(product_id=product_id, status="pending").count()
    if pending:
        raise InventoryError(f"Product {product.code} has {pending} pending transfer(s)")

    warnings: list[str] = []
    snapshot = {"id": product.id, "code": product.code, "name": product.name}

    # The product is deactivated with a plain UPDATE first, so the savepoints
    # below always nest inside an open write transaction (pysqlite only begins
    # one on DML). Sales and receiving reject it from here on.
    db.session.query(Product).filter_by(id=product_id).update(
        {Product.is_active: False}, synchronize_session="fetch"
    )

    try:
        with db.session.begin_nested():
            deleted = (
                db.session.query(BranchExpense)
                .filter(BranchExpense.product_id == product_id)
                .delete(synchronize_session=False)
            )
        snapshot["expenses_deleted"] = deleted
    except SQLAlchemyError as exc:
        current_app.logger.warning("Could not delete expenses for product %s: %s", product.code, exc)
        warnings.append(f"Expenses were not deleted: {exc}")

    if product.image_path:
        try:
            storage_service.delete(storage_service.PRODUCT_BUCKET, product.image_path)
        except (storage_service.StorageError, OSError) as exc:
            current_app.logger.warning("Could not delete image for product %s: %s", product.code, exc)
            warnings.append(f"Image was not deleted: {exc}")

    try:
        with db.session.begin_nested():
            balances = get_stock_by_branch(product_id)
            if not balances:
                balances = {product.branch_id: 0}
            for stock_branch_id, on_hand in sorted(balances.items()):
                _record_movement(
                    product,
                    branch_id=stock_branch_id,
                    movement_type=MOVEMENT_PRODUCT_REMOVED,
                    quantity=-on_hand,
                    user_id=user_id,
                    reference_type="product_removal",
                    reference_id=product.id,
                    notes=f"{clean_reason} (last stock: {on_hand})",
                )
        snapshot["last_stock_quantity"] = sum(balances.values())
    except SQLAlchemyError as exc:
        current_app.logger.warning("Could not log removal movement for product %s: %s", product.code, exc)
        warnings.append(f"Removal movement was not recorded: {exc}")

    _detach_product_references(product_id)
    db.session.delete(product)
    db.session.flush()

    current_app.logger.info("Product %s removed (%d warning(s))", snapshot["code"], len(warnings))
    return {"product": snapshot, "warnings": warnings}


def list_movements(
    *,
    product_id: int | None = None,
    branch_id: int | None = None,
    movement_type: str | None = None,
    limit: int = 50,
) -> list[InventoryMovement]:
    """Movement history, newest first."""
    q = db.session.query(InventoryMovement)
    if product_id is not None:
        q = q.filter(InventoryMovement.product_id == product_id)
    if branch_id is not None:
        q = q.filter(InventoryMovement.branch_id == branch_id)
    if movement_type is not None:
        if movement_type not in MOVEMENT_TYPES:
            raise InventoryError(f"movement_type must be one of: {', '.join(MOVEMENT_TYPES)}")
        q = q.filter(InventoryMovement.movement_type == movement_type)
    limit = max(1, min(limit, 500))
    return (
        q.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
        .limit(limit)
        .all()
    )
