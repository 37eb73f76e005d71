from __future__ import annotations

from ..extensions import db
from furnishop.time_utils import to_utc_z, to_iso_date


PAYMENT_METHODS = ("cash", "transfer", "credit_card", "qr_code")


class CashSale(db.Model):
    """
    Committed cash sale.

    A sale is written once, complete: header, lines and the stock movements
    for every line are created in the same transaction, so there is no
    draft state.
    """
    __tablename__ = "cash_sales"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "sale_number", name="uq_cash_sales_branch_number"),
        db.Index("ix_cash_sales_sale_number", "sale_number"),
        db.Index("ix_cash_sales_branch_date", "branch_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    # Human-readable number allocated server-side (e.g., "CS-001-0042")
    sale_number = db.Column(db.String(64), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    sales_person_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    sale_date = db.Column(db.Date, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    branch = db.relationship("Branch")
    customer = db.relationship("Customer")
    items = db.relationship("CashSaleItem", backref="sale", lazy=True, order_by="CashSaleItem.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "sale_number": self.sale_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "sales_person_id": self.sales_person_id,
            "cashier_id": self.cashier_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "sale_date": to_iso_date(self.sale_date),
            "created_at": to_utc_z(self.created_at),
        }


class CashSaleItem(db.Model):
    """Line item on a cash sale. total_price_cents == quantity * unit_price_cents."""
    __tablename__ = "cash_sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    cash_sale_id = db.Column(db.Integer, db.ForeignKey("cash_sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_code = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cash_sale_id": self.cash_sale_id,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }
