from __future__ import annotations

from datetime import date

from furnishop.extensions import db
from furnishop.models import Branch, BranchExpense
from furnishop.validation import ModelValidationPolicy


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"branch_id", "amount_cents", "description", "category", "expense_date"},
    required_on_create={"branch_id", "amount_cents", "description", "category", "expense_date"},
)


class ExpenseError(Exception):
    """Raised when an expense cannot be recorded."""
    pass


def record_expense(patch: dict, *, user_id: int | None) -> BranchExpense:
    if db.session.get(Branch, patch["branch_id"]) is None:
        raise ExpenseError(f"Branch {patch['branch_id']} not found")

    expense = BranchExpense(created_by_user_id=user_id, **patch)
    db.session.add(expense)
    db.session.flush()
    return expense


def list_expenses(
    *,
    branch_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    category: str | None = None,
) -> list[BranchExpense]:
    q = db.session.query(BranchExpense)
    if branch_id is not None:
        q = q.filter(BranchExpense.branch_id == branch_id)
    if start is not None:
        q = q.filter(BranchExpense.expense_date >= start)
    if end is not None:
        q = q.filter(BranchExpense.expense_date <= end)
    if category:
        q = q.filter(BranchExpense.category == category)
    return q.order_by(BranchExpense.expense_date.desc(), BranchExpense.id.desc()).all()
