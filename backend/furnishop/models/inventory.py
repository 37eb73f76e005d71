from __future__ import annotations

from ..extensions import db
from furnishop.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    STOCK DESIGN DECISION:
    Stock is not a column. Quantity on hand is SUM(quantity) over the
    product's InventoryMovement rows, per branch or across all branches.
    Every stock change is a movement, so the audit trail always reconciles
    with stock.

    cost_cents is the weighted average receiving cost, updated on receive.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Home branch: where the product is received unless told otherwise
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False)

    price_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=True)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)

    brand = db.Column(db.String(120), nullable=True)
    model = db.Column(db.String(120), nullable=True)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(120), nullable=True)
    serial_number = db.Column(db.String(120), nullable=True)
    warranty_months = db.Column(db.Integer, nullable=True)

    # Object store path inside the "products" bucket
    image_path = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branch = db.relationship("Branch", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self, *, stock_quantity: int | None = None, image_url: str | None = None) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "code": self.code,
            "name": self.name,
            "category": self.category,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "min_stock_level": self.min_stock_level,
            "stock_quantity": stock_quantity,
            "is_low_stock": (
                stock_quantity <= self.min_stock_level if stock_quantity is not None else None
            ),
            "brand": self.brand,
            "model": self.model,
            "description": self.description,
            "location": self.location,
            "serial_number": self.serial_number,
            "warranty_months": self.warranty_months,
            "image_path": self.image_path,
            "image_url": image_url,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Append-only stock ledger.

    quantity is signed: positive adds stock at branch_id, negative removes it.
    product_code/product_name are snapshots so the trail survives product
    removal (product_id is set NULL by the database when the product row goes).
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_invmov_branch_product_created", "branch_id", "product_id", "created_at"),
        db.Index("ix_invmov_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    product_code = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    # in, out, transfer_out, transfer_in, transfer_cancelled, product_removed
    movement_type = db.Column(db.String(32), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    # sale, hire_purchase, receive, transfer, product_removal
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    branch = db.relationship("Branch")
    created_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "branch_id": self.branch_id,
            "branch_name": self.branch.name if self.branch else None,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "notes": self.notes,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "created_by_user_id": self.created_by_user_id,
            "created_by_name": self.created_by.full_name if self.created_by else None,
            "created_at": to_utc_z(self.created_at),
        }


class ProductTransfer(db.Model):
    """
    Two-phase stock transfer between branches.

    LIFECYCLE:
    1. pending: created by the origin branch; origin stock already decreased
    2. completed: destination confirmed receipt; destination stock increased
    3. cancelled: origin withdrew a pending transfer; origin stock restored

    While pending, the quantity is counted in neither branch.
    """
    __tablename__ = "product_transfers"
    __table_args__ = (
        db.UniqueConstraint("from_branch_id", "transfer_number", name="uq_transfers_branch_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transfer_number = db.Column(db.String(64), nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    from_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    to_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    notes = db.Column(db.Text, nullable=True)

    transferred_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    received_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product")
    from_branch = db.relationship("Branch", foreign_keys=[from_branch_id])
    to_branch = db.relationship("Branch", foreign_keys=[to_branch_id])
    transferred_by = db.relationship("User", foreign_keys=[transferred_by_user_id])
    received_by = db.relationship("User", foreign_keys=[received_by_user_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_number": self.transfer_number,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "product_code": self.product.code if self.product else None,
            "quantity": self.quantity,
            "from_branch_id": self.from_branch_id,
            "from_branch_name": self.from_branch.name if self.from_branch else None,
            "to_branch_id": self.to_branch_id,
            "to_branch_name": self.to_branch.name if self.to_branch else None,
            "status": self.status,
            "notes": self.notes,
            "transferred_by_user_id": self.transferred_by_user_id,
            "transferred_by_name": self.transferred_by.full_name if self.transferred_by else None,
            "received_by_user_id": self.received_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
            "version_id": self.version_id,
        }
