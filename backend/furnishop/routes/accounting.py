# backend/furnishop/routes/accounting.py
"""
Income/expense summary and transaction list.

SECURITY: All routes require authentication and VIEW_ACCOUNTING permission.
Takes the same range params as the reports (period or start/end, branch_id).
"""
from flask import Blueprint, request, current_app

from ..services import accounting_service, reporting_service
from ..decorators import require_auth, require_permission


accounting_bp = Blueprint("accounting", __name__, url_prefix="/api/accounting")


def _range():
    return reporting_service.resolve_range(
        period=request.args.get("period"),
        start=request.args.get("start"),
        end=request.args.get("end"),
    )


@accounting_bp.get("/summary")
@require_auth
@require_permission("VIEW_ACCOUNTING")
def summary():
    try:
        start, end = _range()
        return accounting_service.accounting_summary(
            start=start, end=end, branch_id=request.args.get("branch_id", type=int)
        )
    except reporting_service.ReportError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to build accounting summary")
        return {"error": "Internal server error"}, 500


@accounting_bp.get("/transactions")
@require_auth
@require_permission("VIEW_ACCOUNTING")
def transactions():
    """Income and expense entries, newest first (limit default 200)."""
    try:
        start, end = _range()
        entries = accounting_service.list_transactions(
            start=start,
            end=end,
            branch_id=request.args.get("branch_id", type=int),
            limit=request.args.get("limit", 200, type=int),
        )
        return {"transactions": entries, "count": len(entries)}
    except reporting_service.ReportError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return {"error": "Internal server error"}, 500
