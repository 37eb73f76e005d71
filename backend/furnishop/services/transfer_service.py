# backend/furnishop/services/transfer_service.py
"""
Inter-branch product transfers.

LIFECYCLE:
1. pending: initiated by the origin branch; origin stock decreased
   (transfer_out movement)
2. completed: destination confirmed receipt; destination stock increased
   (transfer_in movement)
3. cancelled: origin withdrew a pending transfer; origin stock restored
   (transfer_cancelled movement)

While pending, the quantity is counted at neither branch.
"""
from __future__ import annotations

from flask import current_app

from furnishop.extensions import db
from furnishop.models import Branch, Product, ProductTransfer, User
from furnishop.services.concurrency import lock_for_update, run_with_retry
from furnishop.services.document_service import next_document_number
from furnishop.services.inventory_service import (
    MOVEMENT_TRANSFER_CANCELLED,
    MOVEMENT_TRANSFER_IN,
    MOVEMENT_TRANSFER_OUT,
    InventoryError,
    decrease_product_stock,
    get_quantity_on_hand,
    increase_product_stock,
)
from furnishop.time_utils import utcnow


TRANSFER_STATUS_PENDING = "pending"
TRANSFER_STATUS_COMPLETED = "completed"
TRANSFER_STATUS_CANCELLED = "cancelled"

TRANSFER_STATUSES = (TRANSFER_STATUS_PENDING, TRANSFER_STATUS_COMPLETED, TRANSFER_STATUS_CANCELLED)


class TransferError(Exception):
    """Raised when transfer operations fail."""
    pass


def _acting_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise TransferError(f"User {user_id} not found")
    return user


def _lock_transfer(transfer_id: int) -> ProductTransfer:
    transfer = lock_for_update(db.session.query(ProductTransfer).filter_by(id=transfer_id)).first()
    if not transfer:
        raise TransferError(f"Transfer {transfer_id} not found")
    return transfer


def initiate_transfer(
    *,
    product_id: int,
    quantity: int,
    to_branch_id: int,
    user_id: int,
    notes: str | None = None,
) -> ProductTransfer:
    """
    Send stock from the acting user's branch to another branch.

    Raises:
        TransferError: unknown origin branch, same branch, bad quantity,
            unknown product/destination, insufficient origin stock
    """
    def _op():
        user = _acting_user(user_id)
        from_branch_id = user.branch_id
        if from_branch_id is None:
            raise TransferError("Your user is not assigned to a branch; cannot determine the origin branch")
        if from_branch_id == to_branch_id:
            raise TransferError("Cannot transfer to the same branch")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise TransferError("Quantity must be positive")
        if db.session.get(Branch, to_branch_id) is None:
            raise TransferError(f"Branch {to_branch_id} not found")

        product = db.session.get(Product, product_id)
        if product is None:
            raise TransferError(f"Product {product_id} not found")

        on_hand = get_quantity_on_hand(product_id, from_branch_id)
        if on_hand < quantity:
            raise TransferError(
                f"Insufficient stock at origin: {on_hand} on hand, {quantity} requested"
            )

        transfer = ProductTransfer(
            transfer_number=next_document_number(branch_id=from_branch_id, document_type="transfer"),
            product_id=product_id,
            quantity=quantity,
            from_branch_id=from_branch_id,
            to_branch_id=to_branch_id,
            status=TRANSFER_STATUS_PENDING,
            notes=notes,
            transferred_by_user_id=user_id,
        )
        db.session.add(transfer)
        db.session.flush()

        try:
            decrease_product_stock(
                product_id,
                from_branch_id,
                quantity,
                movement_type=MOVEMENT_TRANSFER_OUT,
                user_id=user_id,
                reference_type="transfer",
                reference_id=transfer.id,
                notes=f"Transfer {transfer.transfer_number} to branch {to_branch_id}",
            )
        except InventoryError as exc:
            raise TransferError(str(exc)) from exc

        return transfer

    return run_with_retry(_op)


def complete_transfer(*, transfer_id: int, user_id: int) -> ProductTransfer:
    """
    Confirm receipt at the destination branch.

    Only a user of the destination branch (or an admin) may complete, and
    only while the transfer is still pending.
    """
    def _op():
        user = _acting_user(user_id)
        transfer = _lock_transfer(transfer_id)

        if transfer.status != TRANSFER_STATUS_PENDING:
            raise TransferError(f"Cannot complete transfer in {transfer.status} status")
        if user.role != "admin" and user.branch_id != transfer.to_branch_id:
            raise TransferError("Only the destination branch can confirm this transfer")
        if transfer.product_id is None:
            raise TransferError("The transferred product no longer exists")

        increase_product_stock(
            transfer.product_id,
            transfer.to_branch_id,
            transfer.quantity,
            movement_type=MOVEMENT_TRANSFER_IN,
            user_id=user_id,
            reference_type="transfer",
            reference_id=transfer.id,
            notes=f"Transfer {transfer.transfer_number} from branch {transfer.from_branch_id}",
        )

        transfer.status = TRANSFER_STATUS_COMPLETED
        transfer.received_by_user_id = user_id
        transfer.completed_at = utcnow()
        db.session.flush()

        current_app.logger.info(
            "Transfer %s completed: %d unit(s) of product %s into branch %s",
            transfer.transfer_number, transfer.quantity, transfer.product_id, transfer.to_branch_id,
        )
        return transfer

    return run_with_retry(_op)


def cancel_transfer(*, transfer_id: int, user_id: int, reason: str | None = None) -> ProductTransfer:
    """
    Withdraw a pending transfer. The origin branch (or an admin) gets its
    stock back.
    """
    def _op():
        user = _acting_user(user_id)
        transfer = _lock_transfer(transfer_id)

        if transfer.status != TRANSFER_STATUS_PENDING:
            raise TransferError(f"Cannot cancel transfer in {transfer.status} status")
        if user.role != "admin" and user.branch_id != transfer.from_branch_id:
            raise TransferError("Only the origin branch can cancel this transfer")

        if transfer.product_id is not None:
            increase_product_stock(
                transfer.product_id,
                transfer.from_branch_id,
                transfer.quantity,
                movement_type=MOVEMENT_TRANSFER_CANCELLED,
                user_id=user_id,
                reference_type="transfer",
                reference_id=transfer.id,
                notes=f"Transfer {transfer.transfer_number} cancelled",
            )

        transfer.status = TRANSFER_STATUS_CANCELLED
        transfer.cancelled_by_user_id = user_id
        transfer.cancelled_at = utcnow()
        transfer.cancellation_reason = reason
        db.session.flush()
        return transfer

    return run_with_retry(_op)


def get_transfer(transfer_id: int) -> ProductTransfer | None:
    return db.session.get(ProductTransfer, transfer_id)


def list_transfers(
    *,
    branch_id: int | None = None,
    direction: str | None = None,
    status: str | None = None,
) -> list[ProductTransfer]:
    """
    direction: "incoming" (to branch_id), "outgoing" (from branch_id) or
    None (either side).
    """
    q = db.session.query(ProductTransfer)
    if branch_id is not None:
        if direction == "incoming":
            q = q.filter(ProductTransfer.to_branch_id == branch_id)
        elif direction == "outgoing":
            q = q.filter(ProductTransfer.from_branch_id == branch_id)
        else:
            q = q.filter(db.or_(
                ProductTransfer.to_branch_id == branch_id,
                ProductTransfer.from_branch_id == branch_id,
            ))
    if status:
        if status not in TRANSFER_STATUSES:
            raise TransferError(f"status must be one of: {', '.join(TRANSFER_STATUSES)}")
        q = q.filter(ProductTransfer.status == status)
    return q.order_by(ProductTransfer.created_at.desc(), ProductTransfer.id.desc()).all()
