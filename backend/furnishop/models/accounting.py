from __future__ import annotations

from ..extensions import db
from furnishop.time_utils import to_utc_z, to_iso_date


class BranchExpense(db.Model):
    """
    Money spent by a branch.

    Receiving stock writes a cost_of_goods row tagged with the product, so a
    product's removal can find and delete the expenses it created.
    """
    __tablename__ = "branch_expenses"
    __table_args__ = (
        db.Index("ix_branch_expenses_branch_date", "branch_id", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=False, default="other")
    expense_date = db.Column(db.Date, nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    branch = db.relationship("Branch")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "branch_name": self.branch.name if self.branch else None,
            "product_id": self.product_id,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "category": self.category,
            "expense_date": to_iso_date(self.expense_date),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
