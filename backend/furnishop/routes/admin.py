# backend/furnishop/routes/admin.py
"""
Staff account management (admins only).
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import Branch, User
from ..services import auth_service
from ..services.auth_service import PasswordValidationError, UserError
from ..services.concurrency import commit_with_retry
from ..decorators import require_auth, require_permission
from ..permissions import ROLES, PERMISSION_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_permission("MANAGE_USERS")
def list_users():
    """
    Query params:
    - include_inactive: bool (default false)
    - branch_id: int
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    branch_id = request.args.get("branch_id", type=int)

    query = db.session.query(User)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    if branch_id:
        query = query.filter_by(branch_id=branch_id)

    users = query.order_by(User.username).all()
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@admin_bp.post("/users")
@require_auth
@require_permission("MANAGE_USERS")
def create_user():
    """
    Request body:
    {
        "username": str, "email": str, "password": str, "full_name": str,
        "role": "admin" | "manager" | "sales" | "cashier" | "warehouse",
        "branch_id": int (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password") or "",
            full_name=data.get("full_name"),
            role=data.get("role") or "sales",
            branch_id=data.get("branch_id"),
            bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"],
        )
        commit_with_retry()
        return jsonify({"user": user.to_dict()}), 201
    except (UserError, PasswordValidationError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.patch("/users/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user(user_id: int):
    """Change role, branch, name or active flag."""
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    data = request.get_json(silent=True) or {}
    if "role" in data:
        if data["role"] not in ROLES:
            return jsonify({"error": f"role must be one of: {', '.join(ROLES)}"}), 400
        user.role = data["role"]
    if "branch_id" in data:
        if data["branch_id"] is not None and db.session.get(Branch, data["branch_id"]) is None:
            return jsonify({"error": "Branch not found"}), 400
        user.branch_id = data["branch_id"]
    if "full_name" in data and data["full_name"]:
        user.full_name = str(data["full_name"]).strip()
    if "is_active" in data:
        user.is_active = bool(data["is_active"])

    try:
        commit_with_retry()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"user": user.to_dict()})


@admin_bp.get("/permissions")
@require_auth
@require_permission("MANAGE_USERS")
def list_permissions():
    """Permission catalog and the role mapping."""
    return jsonify({
        "permissions": [
            {"code": code, "name": name, "description": desc, "category": category}
            for code, name, desc, category in PERMISSION_DEFINITIONS
        ],
        "roles": DEFAULT_ROLE_PERMISSIONS,
    })
