# backend/furnishop/routes/hire_purchase.py
"""
Hire-purchase contracts and installment payments.

SECURITY: All routes require authentication.
- Quotes and contract creation require CREATE_CONTRACT permission
- Reads require VIEW_CONTRACTS permission
- Installment payments require RECORD_INSTALLMENT_PAYMENT permission
- Status changes and the overdue sweep require MANAGE_CONTRACTS permission
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import hire_purchase_service as hp_service
from ..services.concurrency import commit_with_retry
from ..services.financing import SUPPORTED_TERMS, build_schedule, calculate_terms
from ..services.sales_service import build_cart
from ..decorators import require_auth, require_permission
from ..validation import ValidationError, coerce_int
from ..time_utils import parse_iso_date, to_iso_date


hire_purchase_bp = Blueprint("hire_purchase", __name__, url_prefix="/api/hire-purchase")


def _optional_int(data: dict, field: str, default=None):
    value = data.get(field)
    if value is None:
        return default
    return coerce_int(field, value)


def _contract_inputs(data: dict) -> dict:
    """
    Shared parsing for quote and create; defaults come from config.

    Raises ValidationError for non-integer money or terms. The down payment
    has no default: quote and create both require it.
    """
    cfg = current_app.config
    try:
        first_payment_date = parse_iso_date(data.get("first_payment_date"))
    except (AttributeError, TypeError, ValueError):
        raise ValidationError("first_payment_date must be a YYYY-MM-DD date")
    return {
        "items": data.get("items"),
        "down_payment_cents": _optional_int(data, "down_payment_cents"),
        "installment_months": _optional_int(data, "installment_months", cfg["DEFAULT_INSTALLMENT_MONTHS"]),
        "interest_rate_bps": _optional_int(data, "interest_rate_bps", cfg["DEFAULT_INTEREST_RATE_BPS"]),
        "first_payment_date": first_payment_date,
    }


def _branch_id(data: dict):
    return _optional_int(data, "branch_id") or g.branch_id


@hire_purchase_bp.get("/defaults")
@require_auth
@require_permission("VIEW_CONTRACTS")
def defaults():
    """Defaults and choices for the contract form."""
    cfg = current_app.config
    return jsonify({
        "interest_rate_bps": cfg["DEFAULT_INTEREST_RATE_BPS"],
        "installment_months": cfg["DEFAULT_INSTALLMENT_MONTHS"],
        "supported_terms": list(SUPPORTED_TERMS),
    })


@hire_purchase_bp.post("/quote")
@require_auth
@require_permission("CREATE_CONTRACT")
def quote():
    """
    Price a contract without writing anything: cart, financing terms and,
    when first_payment_date is given, the schedule.
    """
    data = request.get_json(silent=True) or {}

    try:
        branch_id = _branch_id(data)
        if branch_id is None:
            return jsonify({"error": "branch_id is required for users without a branch"}), 400
        inputs = _contract_inputs(data)
        cart = build_cart(inputs["items"], branch_id=branch_id, merge_duplicates=False)
        terms = calculate_terms(
            subtotal_cents=cart.subtotal_cents,
            down_payment_cents=inputs["down_payment_cents"],
            installment_months=inputs["installment_months"],
            interest_rate_bps=inputs["interest_rate_bps"],
        )
    except ValueError as e:
        # CartError, FinancingError and ValidationError are all ValueErrors
        return jsonify({"error": str(e)}), 400

    schedule = []
    if inputs["first_payment_date"] is not None:
        schedule = [
            {
                "installment_number": row.installment_number,
                "due_date": to_iso_date(row.due_date),
                "amount_due_cents": row.amount_due_cents,
            }
            for row in build_schedule(terms, inputs["first_payment_date"])
        ]

    return jsonify({"cart": cart.to_dict(), "terms": terms.to_dict(), "schedule": schedule})


@hire_purchase_bp.post("/contracts")
@require_auth
@require_permission("CREATE_CONTRACT")
def create_contract():
    """
    Create a contract with its schedule and decrease stock.

    Request body:
    {
        "customer_id": int,
        "items": [{"product_id": int, "quantity": int}],
        "down_payment_cents": int,
        "installment_months": 6 | 12 | 18 | 24 | 36 (optional, config default),
        "interest_rate_bps": int (optional, config default),
        "first_payment_date": "YYYY-MM-DD",
        "notes": str (optional),
        "branch_id": int (optional, default the caller's branch)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        branch_id = _branch_id(data)
        if branch_id is None:
            return jsonify({"error": "branch_id is required for users without a branch"}), 400
        inputs = _contract_inputs(data)
        customer_id = _optional_int(data, "customer_id")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        contract = hp_service.create_contract(
            branch_id=branch_id,
            customer_id=customer_id,
            user_id=g.current_user.id,
            notes=data.get("notes"),
            **inputs,
        )
        commit_with_retry()
        return jsonify(hp_service.get_contract_detail(contract.id)), 201

    except hp_service.ContractError as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create contract")
        return jsonify({"error": "Internal server error"}), 500


@hire_purchase_bp.get("/contracts")
@require_auth
@require_permission("VIEW_CONTRACTS")
def list_contracts():
    """
    Query params:
    - branch_id: int
    - status: active | completed | defaulted | cancelled
    - customer_id: int
    - search: str (contract number, customer name or phone)
    """
    contracts = hp_service.list_contracts(
        branch_id=request.args.get("branch_id", type=int),
        status=request.args.get("status") or None,
        customer_id=request.args.get("customer_id", type=int),
        search=request.args.get("search") or None,
    )
    return jsonify({"contracts": [c.to_dict() for c in contracts], "count": len(contracts)})


@hire_purchase_bp.get("/contracts/<int:contract_id>")
@require_auth
@require_permission("VIEW_CONTRACTS")
def get_contract(contract_id: int):
    detail = hp_service.get_contract_detail(contract_id)
    if detail is None:
        return jsonify({"error": "Contract not found"}), 404
    return jsonify(detail)


@hire_purchase_bp.post("/contracts/<int:contract_id>/status")
@require_auth
@require_permission("MANAGE_CONTRACTS")
def change_status(contract_id: int):
    """
    Request body:
    {
        "status": "active" | "completed" | "defaulted" | "cancelled",
        "notes": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    if hp_service.get_contract(contract_id) is None:
        return jsonify({"error": "Contract not found"}), 404

    try:
        contract = hp_service.change_contract_status(
            contract_id=contract_id, status=data.get("status"), notes=data.get("notes")
        )
        commit_with_retry()
        return jsonify(contract.to_dict())
    except hp_service.ContractError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change contract status")
        return jsonify({"error": "Internal server error"}), 500


@hire_purchase_bp.get("/installments")
@require_auth
@require_permission("VIEW_CONTRACTS")
def list_installments():
    """
    Query params:
    - contract_id: int
    - status: pending | partial | paid | overdue
    - due_before: YYYY-MM-DD
    """
    try:
        due_before = parse_iso_date(request.args.get("due_before"))
    except ValueError:
        return jsonify({"error": "due_before must be a YYYY-MM-DD date"}), 400

    rows = hp_service.list_installments(
        contract_id=request.args.get("contract_id", type=int),
        status=request.args.get("status") or None,
        due_before=due_before,
    )
    return jsonify({"installments": [r.to_dict() for r in rows], "count": len(rows)})


@hire_purchase_bp.post("/installments/<int:installment_id>/payments")
@require_auth
@require_permission("RECORD_INSTALLMENT_PAYMENT")
def record_payment(installment_id: int):
    """
    Request body:
    {
        "amount_cents": int (> 0),
        "payment_method": "cash" | "transfer" | "credit_card",
        "payment_date": "YYYY-MM-DD" (optional, default today)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        payment_date = parse_iso_date(data.get("payment_date"))
    except ValueError:
        return jsonify({"error": "payment_date must be a YYYY-MM-DD date"}), 400

    try:
        installment = hp_service.apply_installment_payment(
            installment_id=installment_id,
            amount_cents=data.get("amount_cents"),
            payment_method=data.get("payment_method") or "cash",
            user_id=g.current_user.id,
            payment_date=payment_date,
        )
        commit_with_retry()
        return jsonify({
            "installment": installment.to_dict(),
            "contract": installment.contract.to_dict(),
        }), 201
    except hp_service.ContractError as e:
        db.session.rollback()
        status = 404 if "not found" in str(e) else 400
        return jsonify({"error": str(e)}), status
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record installment payment")
        return jsonify({"error": "Internal server error"}), 500


@hire_purchase_bp.post("/installments/mark-overdue")
@require_auth
@require_permission("MANAGE_CONTRACTS")
def mark_overdue():
    """Move past-due pending/partial installments of active contracts to overdue."""
    try:
        changed = hp_service.mark_overdue_installments()
        commit_with_retry()
        return jsonify({"updated": changed})
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to mark overdue installments")
        return jsonify({"error": "Internal server error"}), 500
