from __future__ import annotations

from ..extensions import db
from furnishop.time_utils import to_utc_z, to_iso_date


CONTRACT_STATUSES = ("active", "completed", "defaulted", "cancelled")
INSTALLMENT_STATUSES = ("pending", "partial", "paid", "overdue")
INSTALLMENT_PAYMENT_METHODS = ("cash", "transfer", "credit_card")
SUPPORTED_TERMS = (6, 12, 18, 24, 36)


class HirePurchaseContract(db.Model):
    """
    Installment sale contract.

    LIFECYCLE:
    - active: created with its full installment schedule
    - completed: every installment paid
    - defaulted: customer stopped paying (may be reactivated)
    - cancelled: terminal

    remaining_amount_cents starts at total - down payment and is reduced by
    every applied installment payment.
    """
    __tablename__ = "hire_purchase_contracts"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "contract_number", name="uq_hp_contracts_branch_number"),
        db.Index("ix_hp_contracts_contract_number", "contract_number"),
        db.Index("ix_hp_contracts_branch_status", "branch_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    contract_number = db.Column(db.String(64), nullable=False)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sales_person_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    contract_date = db.Column(db.Date, nullable=False, index=True)
    first_payment_date = db.Column(db.Date, nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    interest_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    down_payment_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount_cents = db.Column(db.Integer, nullable=False)
    monthly_payment_cents = db.Column(db.Integer, nullable=False)
    installment_months = db.Column(db.Integer, nullable=False)
    interest_rate_bps = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    status_changed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    branch = db.relationship("Branch")
    customer = db.relationship("Customer", backref=db.backref("contracts", lazy=True))
    items = db.relationship("HirePurchaseItem", backref="contract", lazy=True, order_by="HirePurchaseItem.id")
    installments = db.relationship(
        "InstallmentPayment",
        backref="contract",
        lazy=True,
        order_by="InstallmentPayment.installment_number",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<HirePurchaseContract id={self.id} number={self.contract_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "contract_number": self.contract_number,
            "branch_id": self.branch_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "customer_phone": self.customer.phone if self.customer else None,
            "sales_person_id": self.sales_person_id,
            "contract_date": to_iso_date(self.contract_date),
            "first_payment_date": to_iso_date(self.first_payment_date),
            "subtotal_cents": self.subtotal_cents,
            "interest_cents": self.interest_cents,
            "total_amount_cents": self.total_amount_cents,
            "down_payment_cents": self.down_payment_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "monthly_payment_cents": self.monthly_payment_cents,
            "installment_months": self.installment_months,
            "interest_rate_bps": self.interest_rate_bps,
            "status": self.status,
            "status_changed_at": to_utc_z(self.status_changed_at) if self.status_changed_at else None,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class HirePurchaseItem(db.Model):
    __tablename__ = "hire_purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    contract_id = db.Column(db.Integer, db.ForeignKey("hire_purchase_contracts.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_code = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "contract_id": self.contract_id,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }


class InstallmentPayment(db.Model):
    """
    One scheduled month of a contract.

    STATE MACHINE:
    - pending -> partial | paid | overdue
    - partial -> paid | overdue
    - overdue -> partial | paid
    - paid: terminal, further payments rejected
    """
    __tablename__ = "installment_payments"
    __table_args__ = (
        db.UniqueConstraint("contract_id", "installment_number", name="uq_installments_contract_number"),
        db.Index("ix_installments_status_due", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    contract_id = db.Column(db.Integer, db.ForeignKey("hire_purchase_contracts.id"), nullable=False, index=True)
    installment_number = db.Column(db.Integer, nullable=False)

    due_date = db.Column(db.Date, nullable=False, index=True)
    amount_due_cents = db.Column(db.Integer, nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_date = db.Column(db.Date, nullable=True)
    payment_method = db.Column(db.String(16), nullable=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "contract_id": self.contract_id,
            "installment_number": self.installment_number,
            "due_date": to_iso_date(self.due_date),
            "amount_due_cents": self.amount_due_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "payment_date": to_iso_date(self.payment_date),
            "payment_method": self.payment_method,
            "cashier_id": self.cashier_id,
            "status": self.status,
            "version_id": self.version_id,
        }


class InstallmentReceipt(db.Model):
    """
    Append-only record of money received against an installment.

    Income reporting sums these rows by received_date, so a partially paid
    installment contributes each payment exactly once.
    """
    __tablename__ = "installment_receipts"
    __table_args__ = (
        db.Index("ix_installment_receipts_branch_date", "branch_id", "received_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    installment_id = db.Column(db.Integer, db.ForeignKey("installment_payments.id"), nullable=False, index=True)
    contract_id = db.Column(db.Integer, db.ForeignKey("hire_purchase_contracts.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    received_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    received_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    installment = db.relationship("InstallmentPayment", backref=db.backref("receipts", lazy=True))
    contract = db.relationship("HirePurchaseContract")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "installment_id": self.installment_id,
            "contract_id": self.contract_id,
            "contract_number": self.contract.contract_number if self.contract else None,
            "installment_number": self.installment.installment_number if self.installment else None,
            "branch_id": self.branch_id,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "received_by_user_id": self.received_by_user_id,
            "received_date": to_iso_date(self.received_date),
            "created_at": to_utc_z(self.created_at),
        }
