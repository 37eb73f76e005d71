# backend/furnishop/routes/branches.py
"""
Branch records.

SECURITY: All routes require authentication.
- Listing and reading: any authenticated user (needed for transfer forms)
- Create/update require MANAGE_BRANCHES permission
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..decorators import require_auth, require_permission
from ..services import branch_service
from ..services.concurrency import commit_with_retry
from ..validation import ConflictError


branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


@branches_bp.get("")
@require_auth
def list_branches():
    branches = branch_service.list_branches()
    return jsonify({"branches": [b.to_dict() for b in branches], "count": len(branches)})


@branches_bp.get("/<int:branch_id>")
@require_auth
def get_branch(branch_id: int):
    branch = branch_service.get_branch(branch_id)
    if not branch:
        return jsonify({"error": "Branch not found"}), 404
    return jsonify(branch.to_dict())


@branches_bp.post("")
@require_auth
@require_permission("MANAGE_BRANCHES")
def create_branch():
    """
    Request body:
    {
        "name": str,
        "code": str (optional),
        "address": str (optional),
        "phone": str (optional),
        "manager_id": int (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        branch = branch_service.create_branch(
            data.get("name"),
            code=data.get("code"),
            address=data.get("address"),
            phone=data.get("phone"),
            manager_id=data.get("manager_id"),
        )
        commit_with_retry()
        return jsonify(branch.to_dict()), 201

    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except branch_service.BranchError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create branch")
        return jsonify({"error": "Internal server error"}), 500


@branches_bp.put("/<int:branch_id>")
@require_auth
@require_permission("MANAGE_BRANCHES")
def update_branch(branch_id: int):
    data = request.get_json(silent=True) or {}
    patch = {k: data[k] for k in branch_service.BRANCH_FIELDS if k in data}

    try:
        branch = branch_service.update_branch(branch_id, patch)
        commit_with_retry()
        return jsonify(branch.to_dict())

    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except branch_service.BranchError as e:
        db.session.rollback()
        status = 404 if "not found" in str(e) else 400
        return jsonify({"error": str(e)}), status
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update branch")
        return jsonify({"error": "Internal server error"}), 500
