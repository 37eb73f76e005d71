# backend/furnishop/routes/expenses.py
"""
Branch expenses.

SECURITY: All routes require authentication.
- Listing requires VIEW_ACCOUNTING permission
- Recording requires MANAGE_EXPENSES permission
"""
from flask import Blueprint, request, g, current_app

from ..extensions import db
from ..models import BranchExpense
from ..services import expense_service
from ..services.concurrency import commit_with_retry
from ..time_utils import local_today, parse_iso_date
from ..validation import validate_payload, enforce_rules_expense, ValidationError
from ..decorators import require_auth, require_permission


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_permission("VIEW_ACCOUNTING")
def list_expenses():
    """
    Query params:
    - branch_id: int
    - start, end: YYYY-MM-DD (inclusive)
    - category: str
    """
    try:
        start = parse_iso_date(request.args.get("start"))
        end = parse_iso_date(request.args.get("end"))
    except ValueError:
        return {"error": "start and end must be YYYY-MM-DD dates"}, 400

    expenses = expense_service.list_expenses(
        branch_id=request.args.get("branch_id", type=int),
        start=start,
        end=end,
        category=request.args.get("category") or None,
    )
    return {"expenses": [e.to_dict() for e in expenses], "count": len(expenses)}


@expenses_bp.post("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def record_expense():
    """
    Request body:
    {
        "amount_cents": int (> 0),
        "description": str,
        "category": str (optional, default "other"),
        "expense_date": "YYYY-MM-DD" (optional, default today),
        "branch_id": int (optional, default the caller's branch)
    }
    """
    payload = dict(request.get_json(silent=True) or {})
    payload.setdefault("branch_id", g.branch_id)
    payload.setdefault("category", "other")
    payload.setdefault("expense_date", local_today().isoformat())

    try:
        patch = validate_payload(
            model=BranchExpense, payload=payload, policy=expense_service.EXPENSE_POLICY, partial=False
        )
        enforce_rules_expense(patch)
        if patch.get("branch_id") is None:
            raise ValidationError("branch_id is required for users without a branch")
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        expense = expense_service.record_expense(patch, user_id=g.current_user.id)
        commit_with_retry()
        return expense.to_dict(), 201
    except expense_service.ExpenseError as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record expense")
        return {"error": "Internal server error"}, 500
