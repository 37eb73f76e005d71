# backend/furnishop/routes/transfers.py
"""
Inter-branch transfer routes.

SECURITY: All routes require authentication.
- Create and cancel require CREATE_TRANSFERS permission
- Complete requires RECEIVE_TRANSFERS permission
- Listing and reading require VIEW_PRODUCTS permission
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..decorators import require_auth, require_permission
from ..services import transfer_service
from ..services.concurrency import commit_with_retry


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.route("", methods=["POST"])
@require_auth
@require_permission("CREATE_TRANSFERS")
def create_transfer():
    """
    Send stock from the caller's branch to another branch.

    Request body:
    {
        "product_id": int,
        "quantity": int,
        "to_branch_id": int,
        "notes": str (optional)
    }

    Returns:
        201: Transfer created (pending); origin stock already decreased
        400: Invalid request
        403: Forbidden
    """
    data = request.get_json(silent=True) or {}

    try:
        transfer = transfer_service.initiate_transfer(
            product_id=data["product_id"],
            quantity=data["quantity"],
            to_branch_id=data["to_branch_id"],
            user_id=g.current_user.id,
            notes=data.get("notes"),
        )

        commit_with_retry()

        return jsonify(transfer.to_dict()), 201

    except KeyError as e:
        db.session.rollback()
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except transfer_service.TransferError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create transfer")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("", methods=["GET"])
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_transfers():
    """
    Query params:
    - branch_id: int (default the caller's branch)
    - direction: incoming | outgoing
    - status: pending | completed | cancelled
    """
    branch_id = request.args.get("branch_id", type=int) or g.branch_id
    direction = request.args.get("direction")
    if direction not in (None, "", "incoming", "outgoing"):
        return jsonify({"error": "direction must be incoming or outgoing"}), 400

    try:
        transfers = transfer_service.list_transfers(
            branch_id=branch_id,
            direction=direction or None,
            status=request.args.get("status") or None,
        )
    except transfer_service.TransferError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"transfers": [t.to_dict() for t in transfers], "count": len(transfers)})


@transfers_bp.route("/<int:transfer_id>", methods=["GET"])
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_transfer(transfer_id: int):
    transfer = transfer_service.get_transfer(transfer_id)
    if not transfer:
        return jsonify({"error": "Transfer not found"}), 404
    return jsonify(transfer.to_dict())


@transfers_bp.route("/<int:transfer_id>/complete", methods=["POST"])
@require_auth
@require_permission("RECEIVE_TRANSFERS")
def complete_transfer(transfer_id: int):
    """
    Confirm receipt at the destination branch.

    Returns:
        200: Transfer completed; destination stock increased
        400: Not pending, or caller is not at the destination branch
        404: Transfer not found
    """
    if not transfer_service.get_transfer(transfer_id):
        return jsonify({"error": "Transfer not found"}), 404

    try:
        transfer = transfer_service.complete_transfer(transfer_id=transfer_id, user_id=g.current_user.id)
        commit_with_retry()
        return jsonify(transfer.to_dict()), 200

    except transfer_service.TransferError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to complete transfer")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("/<int:transfer_id>/cancel", methods=["POST"])
@require_auth
@require_permission("CREATE_TRANSFERS")
def cancel_transfer(transfer_id: int):
    """
    Withdraw a pending transfer; origin stock is restored.

    Request body:
    {
        "reason": str (optional)
    }
    """
    if not transfer_service.get_transfer(transfer_id):
        return jsonify({"error": "Transfer not found"}), 404

    data = request.get_json(silent=True) or {}

    try:
        transfer = transfer_service.cancel_transfer(
            transfer_id=transfer_id,
            user_id=g.current_user.id,
            reason=data.get("reason"),
        )
        commit_with_retry()
        return jsonify(transfer.to_dict()), 200

    except transfer_service.TransferError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel transfer")
        return jsonify({"error": "Internal server error"}), 500
