# backend/furnishop/routes/reports.py
"""
Dashboard and reports.

SECURITY: All routes require authentication and VIEW_REPORTS permission.

Range selection (query params):
- period: today | thisWeek | thisMonth | thisYear (default thisMonth)
- start, end: YYYY-MM-DD; when given they override period
- branch_id: int (default all branches)
"""
from flask import Blueprint, request, current_app

from ..services import reporting_service
from ..decorators import require_auth, require_permission


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_REPORTS")
def dashboard():
    try:
        return reporting_service.dashboard_summary(branch_id=request.args.get("branch_id", type=int))
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return {"error": "Internal server error"}, 500


@reports_bp.get("/<report_type>")
@require_auth
@require_permission("VIEW_REPORTS")
def report(report_type: str):
    """report_type: sales | products | customers | hirePurchase"""
    if report_type not in reporting_service.REPORT_TYPES:
        return {"error": f"Unknown report type: {report_type}"}, 404

    try:
        start, end = reporting_service.resolve_range(
            period=request.args.get("period"),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return reporting_service.build_report(
            report_type,
            start=start,
            end=end,
            branch_id=request.args.get("branch_id", type=int),
        )
    except reporting_service.ReportError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to build %s report", report_type)
        return {"error": "Internal server error"}, 500
