"""
Branch transfer tests.

Verifies:
- Initiating moves stock out of the origin immediately
- Completing credits the destination; cancelling restores the origin
- Only the destination (or admin) completes, only the origin (or admin) cancels
- Terminal transfers cannot change again
"""

import pytest

from furnishop.extensions import db
from furnishop.models import InventoryMovement
from furnishop.services.inventory_service import get_quantity_on_hand
from furnishop.services.transfer_service import (
    TransferError,
    cancel_transfer,
    complete_transfer,
    initiate_transfer,
    list_transfers,
)

from conftest import add_stock, make_product


@pytest.fixture
def stocked(branch_a, branch_b):
    """Product with 10 units at branch A and 3 at branch B."""
    product = make_product(branch_a.id, "WRD-1", stock=10)
    add_stock(product.id, branch_b.id, 3)
    return product


def _send(product, user, to_branch, quantity=5):
    transfer = initiate_transfer(
        product_id=product.id, quantity=quantity, to_branch_id=to_branch.id, user_id=user.id
    )
    db.session.commit()
    return transfer


class TestInitiateTransfer:

    def test_origin_stock_leaves_immediately(self, stocked, branch_a, branch_b, warehouse_a):
        transfer = _send(stocked, warehouse_a, branch_b)

        assert transfer.status == "pending"
        assert transfer.from_branch_id == branch_a.id
        assert transfer.transfer_number == f"TR-{branch_a.id:03d}-0001"
        assert get_quantity_on_hand(stocked.id, branch_a.id) == 5
        assert get_quantity_on_hand(stocked.id, branch_b.id) == 3

        out = db.session.query(InventoryMovement).filter_by(movement_type="transfer_out").one()
        assert out.quantity == -5
        assert out.reference_type == "transfer"
        assert out.reference_id == transfer.id

    def test_numbers_are_sequential_per_branch(self, stocked, branch_a, branch_b, warehouse_a):
        _send(stocked, warehouse_a, branch_b, quantity=1)
        second = _send(stocked, warehouse_a, branch_b, quantity=1)
        assert second.transfer_number == f"TR-{branch_a.id:03d}-0002"

    def test_same_branch_rejected(self, stocked, branch_a, warehouse_a):
        with pytest.raises(TransferError, match="same branch"):
            _send(stocked, warehouse_a, branch_a)

    def test_insufficient_origin_stock(self, stocked, branch_b, warehouse_a):
        with pytest.raises(TransferError, match="Insufficient stock"):
            _send(stocked, warehouse_a, branch_b, quantity=11)
        db.session.rollback()
        assert get_quantity_on_hand(stocked.id, warehouse_a.branch_id) == 10

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_quantity_must_be_positive(self, stocked, branch_b, warehouse_a, quantity):
        with pytest.raises(TransferError, match="positive"):
            _send(stocked, warehouse_a, branch_b, quantity=quantity)

    def test_user_without_branch_cannot_send(self, stocked, branch_b, admin_user):
        with pytest.raises(TransferError, match="not assigned to a branch"):
            _send(stocked, admin_user, branch_b)


class TestCompleteTransfer:

    def test_destination_receives(self, stocked, branch_a, branch_b, warehouse_a, warehouse_b):
        transfer = _send(stocked, warehouse_a, branch_b)

        complete_transfer(transfer_id=transfer.id, user_id=warehouse_b.id)
        db.session.commit()

        assert transfer.status == "completed"
        assert transfer.received_by_user_id == warehouse_b.id
        assert transfer.completed_at is not None
        assert get_quantity_on_hand(stocked.id, branch_a.id) == 5
        assert get_quantity_on_hand(stocked.id, branch_b.id) == 8

    def test_origin_cannot_complete(self, stocked, branch_b, warehouse_a):
        transfer = _send(stocked, warehouse_a, branch_b)
        with pytest.raises(TransferError, match="destination branch"):
            complete_transfer(transfer_id=transfer.id, user_id=warehouse_a.id)

    def test_admin_can_complete(self, stocked, branch_b, warehouse_a, admin_user):
        transfer = _send(stocked, warehouse_a, branch_b)
        complete_transfer(transfer_id=transfer.id, user_id=admin_user.id)
        db.session.commit()
        assert get_quantity_on_hand(stocked.id, branch_b.id) == 8

    def test_completed_is_terminal(self, stocked, branch_b, warehouse_a, warehouse_b):
        transfer = _send(stocked, warehouse_a, branch_b)
        complete_transfer(transfer_id=transfer.id, user_id=warehouse_b.id)
        db.session.commit()

        with pytest.raises(TransferError, match="completed"):
            complete_transfer(transfer_id=transfer.id, user_id=warehouse_b.id)
        with pytest.raises(TransferError, match="completed"):
            cancel_transfer(transfer_id=transfer.id, user_id=warehouse_a.id)


class TestCancelTransfer:

    def test_cancel_restores_origin(self, stocked, branch_a, branch_b, warehouse_a):
        transfer = _send(stocked, warehouse_a, branch_b)

        cancel_transfer(transfer_id=transfer.id, user_id=warehouse_a.id, reason="Wrong item")
        db.session.commit()

        assert transfer.status == "cancelled"
        assert transfer.cancellation_reason == "Wrong item"
        assert get_quantity_on_hand(stocked.id, branch_a.id) == 10
        assert get_quantity_on_hand(stocked.id, branch_b.id) == 3

    def test_destination_cannot_cancel(self, stocked, branch_b, warehouse_a, warehouse_b):
        transfer = _send(stocked, warehouse_a, branch_b)
        with pytest.raises(TransferError, match="origin branch"):
            cancel_transfer(transfer_id=transfer.id, user_id=warehouse_b.id)

    def test_cancelled_cannot_complete(self, stocked, branch_b, warehouse_a, warehouse_b):
        transfer = _send(stocked, warehouse_a, branch_b)
        cancel_transfer(transfer_id=transfer.id, user_id=warehouse_a.id)
        db.session.commit()
        with pytest.raises(TransferError, match="cancelled"):
            complete_transfer(transfer_id=transfer.id, user_id=warehouse_b.id)


class TestListTransfers:

    def test_direction_and_status_filters(self, stocked, branch_a, branch_b, warehouse_a, warehouse_b):
        first = _send(stocked, warehouse_a, branch_b, quantity=1)
        _send(stocked, warehouse_a, branch_b, quantity=1)
        complete_transfer(transfer_id=first.id, user_id=warehouse_b.id)
        db.session.commit()

        assert len(list_transfers(branch_id=branch_a.id, direction="outgoing")) == 2
        assert len(list_transfers(branch_id=branch_a.id, direction="incoming")) == 0
        assert len(list_transfers(branch_id=branch_b.id, direction="incoming", status="pending")) == 1
        assert len(list_transfers(branch_id=branch_b.id)) == 2

    def test_unknown_status_rejected(self, branch_a):
        with pytest.raises(TransferError, match="status"):
            list_transfers(status="lost")
