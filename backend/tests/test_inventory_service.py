"""
Inventory tests.

Verifies:
- Stock is derived from the movement ledger, per branch and overall
- Receiving writes a movement, updates weighted average cost and books a
  cost_of_goods expense
- Decreases never take a branch below zero
- Product removal zeroes stock, keeps snapshots and reports warnings
"""

import pytest
from sqlalchemy.exc import IntegrityError

from furnishop.extensions import db
from furnishop.models import BranchExpense, InventoryMovement, Product, ProductTransfer
from furnishop.services import inventory_service, storage_service
from furnishop.services.inventory_service import (
    InventoryError,
    decrease_product_stock,
    get_quantity_on_hand,
    get_stock_by_branch,
    get_total_on_hand,
    list_movements,
    receive_product,
    remove_product,
)

from conftest import add_stock, make_product


class TestLedgerStock:

    def test_new_product_holds_no_stock(self, branch_a):
        product = make_product(branch_a.id, "SOFA-1")
        assert get_total_on_hand(product.id) == 0
        assert get_stock_by_branch(product.id) == {}

    def test_stock_is_sum_of_movements_per_branch(self, branch_a, branch_b):
        product = make_product(branch_a.id, "SOFA-1", stock=10)
        add_stock(product.id, branch_b.id, 3)

        assert get_quantity_on_hand(product.id, branch_a.id) == 10
        assert get_quantity_on_hand(product.id, branch_b.id) == 3
        assert get_total_on_hand(product.id) == 13
        assert get_stock_by_branch(product.id) == {branch_a.id: 10, branch_b.id: 3}

    def test_decrease_cannot_go_negative(self, branch_a):
        product = make_product(branch_a.id, "SOFA-1", stock=2)
        with pytest.raises(InventoryError, match="Insufficient stock"):
            decrease_product_stock(product.id, branch_a.id, 3)
        db.session.rollback()
        assert get_quantity_on_hand(product.id, branch_a.id) == 2

    def test_decrease_writes_negative_movement(self, branch_a):
        product = make_product(branch_a.id, "SOFA-1", stock=5)
        movement = decrease_product_stock(product.id, branch_a.id, 2, reference_type="sale", reference_id=99)
        db.session.commit()

        assert movement.quantity == -2
        assert movement.movement_type == "out"
        assert movement.product_code == "SOFA-1"
        assert get_quantity_on_hand(product.id, branch_a.id) == 3

    def test_non_positive_quantity_rejected(self, branch_a):
        product = make_product(branch_a.id, "SOFA-1", stock=5)
        with pytest.raises(InventoryError):
            decrease_product_stock(product.id, branch_a.id, 0)
        with pytest.raises(InventoryError):
            inventory_service.increase_product_stock(product.id, branch_a.id, -1)


class TestReceiveProduct:

    def test_receive_books_movement_cost_and_expense(self, branch_a, warehouse_a):
        product = make_product(branch_a.id, "BED-1")
        result = receive_product(
            product_id=product.id, quantity=10, unit_cost_cents=60000, user_id=warehouse_a.id
        )
        db.session.commit()

        assert result["movement"].movement_type == "in"
        assert result["movement"].quantity == 10
        assert result["movement"].branch_id == branch_a.id
        assert result["total_cost_cents"] == 600000
        assert result["product"].cost_cents == 60000

        expense = db.session.query(BranchExpense).one()
        assert expense.category == "cost_of_goods"
        assert expense.amount_cents == 600000
        assert expense.product_id == product.id
        assert expense.branch_id == branch_a.id

    def test_weighted_average_cost(self, branch_a):
        product = make_product(branch_a.id, "BED-1", stock=10, unit_cost_cents=60000)
        receive_product(product_id=product.id, quantity=10, unit_cost_cents=70000, user_id=None)
        db.session.commit()

        assert db.session.get(Product, product.id).cost_cents == 65000
        assert get_total_on_hand(product.id) == 20

    def test_weighted_average_rounds_half_up(self, branch_a):
        product = make_product(branch_a.id, "BED-1", stock=2, unit_cost_cents=100)
        receive_product(product_id=product.id, quantity=1, unit_cost_cents=101, user_id=None)
        db.session.commit()
        # (2*100 + 101) / 3 = 100.33
        assert db.session.get(Product, product.id).cost_cents == 100

    def test_receive_into_other_branch(self, branch_a, branch_b):
        product = make_product(branch_a.id, "BED-1")
        receive_product(product_id=product.id, quantity=4, unit_cost_cents=1000, user_id=None, branch_id=branch_b.id)
        db.session.commit()
        assert get_stock_by_branch(product.id) == {branch_b.id: 4}

    def test_zero_cost_writes_no_expense(self, branch_a):
        product = make_product(branch_a.id, "BED-1")
        result = receive_product(product_id=product.id, quantity=3, unit_cost_cents=0, user_id=None)
        db.session.commit()
        assert result["expense"] is None
        assert db.session.query(BranchExpense).count() == 0

    @pytest.mark.parametrize("quantity,unit_cost", [(0, 100), (-2, 100), (1, -1)])
    def test_invalid_receipt_rejected(self, branch_a, quantity, unit_cost):
        product = make_product(branch_a.id, "BED-1")
        with pytest.raises(InventoryError):
            receive_product(product_id=product.id, quantity=quantity, unit_cost_cents=unit_cost, user_id=None)
        db.session.rollback()
        assert db.session.query(InventoryMovement).count() == 0

    def test_inactive_product_rejected(self, branch_a):
        product = make_product(branch_a.id, "BED-1")
        product.is_active = False
        db.session.commit()
        with pytest.raises(InventoryError, match="inactive"):
            receive_product(product_id=product.id, quantity=1, unit_cost_cents=100, user_id=None)


class TestRemoveProduct:

    def test_remove_zeroes_stock_and_keeps_snapshots(self, branch_a, branch_b, manager_a):
        product = make_product(branch_a.id, "TBL-1", stock=5)
        add_stock(product.id, branch_b.id, 3)
        product_id = product.id

        result = remove_product(product_id=product_id, reason="Discontinued", user_id=manager_a.id)
        db.session.commit()

        assert result["warnings"] == []
        assert result["product"]["code"] == "TBL-1"
        assert result["product"]["last_stock_quantity"] == 8
        assert result["product"]["expenses_deleted"] == 2
        assert db.session.get(Product, product_id) is None
        assert db.session.query(BranchExpense).count() == 0

        removed = (
            db.session.query(InventoryMovement)
            .filter_by(movement_type="product_removed")
            .order_by(InventoryMovement.branch_id)
            .all()
        )
        assert [m.quantity for m in removed] == [-5, -3]
        assert all(m.product_id is None for m in removed)
        assert all(m.product_code == "TBL-1" for m in removed)
        assert "Discontinued" in removed[0].notes

        # the ledger still balances to zero per branch for the removed product
        remaining = (
            db.session.query(db.func.sum(InventoryMovement.quantity))
            .filter(InventoryMovement.product_code == "TBL-1")
            .scalar()
        )
        assert remaining == 0

    def test_remove_without_stock_writes_single_zero_row(self, branch_a):
        product = make_product(branch_a.id, "TBL-1")
        remove_product(product_id=product.id, reason="Entered by mistake", user_id=None)
        db.session.commit()

        removed = db.session.query(InventoryMovement).filter_by(movement_type="product_removed").all()
        assert len(removed) == 1
        assert removed[0].quantity == 0
        assert removed[0].branch_id == branch_a.id

    def test_image_cleanup_failure_is_a_warning(self, branch_a, monkeypatch):
        product = make_product(branch_a.id, "TBL-1", stock=2)
        product.image_path = "TBL-1/photo.png"
        db.session.commit()
        product_id = product.id

        def fail_delete(bucket, path):
            raise storage_service.StorageError(f"Could not delete {bucket}/{path}: disk is read-only")

        monkeypatch.setattr(storage_service, "delete", fail_delete)

        result = remove_product(product_id=product_id, reason="Discontinued", user_id=None)
        db.session.commit()

        assert len(result["warnings"]) == 1
        assert "Image was not deleted" in result["warnings"][0]
        assert db.session.get(Product, product_id) is None
        assert db.session.query(BranchExpense).count() == 0
        removed = db.session.query(InventoryMovement).filter_by(movement_type="product_removed").one()
        assert removed.quantity == -2

    def test_failed_row_deletion_rolls_everything_back(self, branch_a, monkeypatch):
        product = make_product(branch_a.id, "TBL-1", stock=2)
        product_id = product.id

        def fail_detach(pid):
            raise IntegrityError("DELETE FROM products", {}, Exception("FOREIGN KEY constraint failed"))

        monkeypatch.setattr(inventory_service, "_detach_product_references", fail_detach)

        with pytest.raises(IntegrityError):
            remove_product(product_id=product_id, reason="Discontinued", user_id=None)
        db.session.rollback()

        assert db.session.get(Product, product_id) is not None
        assert get_quantity_on_hand(product_id, branch_a.id) == 2
        assert db.session.query(BranchExpense).filter_by(product_id=product_id).count() == 1
        assert db.session.query(InventoryMovement).filter_by(movement_type="product_removed").count() == 0

    def test_reason_required(self, branch_a):
        product = make_product(branch_a.id, "TBL-1")
        with pytest.raises(InventoryError, match="reason"):
            remove_product(product_id=product.id, reason="   ", user_id=None)

    def test_pending_transfer_blocks_removal(self, branch_a, branch_b, warehouse_a):
        product = make_product(branch_a.id, "TBL-1", stock=5)
        db.session.add(ProductTransfer(
            transfer_number="TR-001-0001",
            product_id=product.id,
            quantity=1,
            from_branch_id=branch_a.id,
            to_branch_id=branch_b.id,
            status="pending",
            transferred_by_user_id=warehouse_a.id,
        ))
        db.session.commit()

        with pytest.raises(InventoryError, match="pending transfer"):
            remove_product(product_id=product.id, reason="Discontinued", user_id=None)
        db.session.rollback()
        assert db.session.get(Product, product.id) is not None


class TestListMovements:

    def test_newest_first_with_filters(self, branch_a, branch_b):
        product = make_product(branch_a.id, "CHR-1", stock=5)
        add_stock(product.id, branch_b.id, 2)
        decrease_product_stock(product.id, branch_a.id, 1)
        db.session.commit()

        rows = list_movements(product_id=product.id)
        assert [m.quantity for m in rows] == [-1, 2, 5]

        assert [m.quantity for m in list_movements(branch_id=branch_b.id)] == [2]
        assert [m.quantity for m in list_movements(movement_type="out")] == [-1]
        assert len(list_movements(limit=1)) == 1

    def test_unknown_movement_type_rejected(self, branch_a):
        with pytest.raises(InventoryError, match="movement_type"):
            list_movements(movement_type="teleport")
