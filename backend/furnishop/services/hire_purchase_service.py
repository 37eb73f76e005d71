# backend/furnishop/services/hire_purchase_service.py
"""
Hire-purchase contracts and installment payments.

CONTRACT LIFECYCLE:
- active -> completed | defaulted | cancelled
- defaulted -> active | cancelled
- completed, cancelled: terminal

INSTALLMENT LIFECYCLE:
- pending / partial / overdue accept payments
- paid rejects payments
- pending / partial past their due date become overdue (mark_overdue_installments)

Creating a contract writes the header, items, the full schedule and the
stock decreases in one transaction. Applying a payment updates the
installment, the contract balance and the receipt log together.
"""
from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import (
    Branch,
    Customer,
    HirePurchaseContract,
    HirePurchaseItem,
    InstallmentPayment,
    InstallmentReceipt,
)
from ..models.hire_purchase import INSTALLMENT_PAYMENT_METHODS
from furnishop.time_utils import local_today, utcnow
from .cart import CartError
from .concurrency import lock_for_update, run_with_retry
from .document_service import next_document_number
from .financing import FinancingError, build_schedule, calculate_terms
from .inventory_service import InventoryError, decrease_product_stock
from .sales_service import build_cart


CONTRACT_STATUS_ACTIVE = "active"
CONTRACT_STATUS_COMPLETED = "completed"
CONTRACT_STATUS_DEFAULTED = "defaulted"
CONTRACT_STATUS_CANCELLED = "cancelled"

INSTALLMENT_STATUS_PENDING = "pending"
INSTALLMENT_STATUS_PARTIAL = "partial"
INSTALLMENT_STATUS_PAID = "paid"
INSTALLMENT_STATUS_OVERDUE = "overdue"

PAYABLE_INSTALLMENT_STATUSES = (
    INSTALLMENT_STATUS_PENDING,
    INSTALLMENT_STATUS_PARTIAL,
    INSTALLMENT_STATUS_OVERDUE,
)

CONTRACT_TRANSITIONS = {
    CONTRACT_STATUS_ACTIVE: {CONTRACT_STATUS_COMPLETED, CONTRACT_STATUS_DEFAULTED, CONTRACT_STATUS_CANCELLED},
    CONTRACT_STATUS_DEFAULTED: {CONTRACT_STATUS_ACTIVE, CONTRACT_STATUS_CANCELLED},
    CONTRACT_STATUS_COMPLETED: set(),
    CONTRACT_STATUS_CANCELLED: set(),
}


class ContractError(Exception):
    """Raised when a contract or installment operation is rejected."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def installment_status_after_payment(amount_due_cents: int, amount_paid_cents: int) -> str:
    """paid once the running total covers the amount due, otherwise partial."""
    if amount_paid_cents >= amount_due_cents:
        return INSTALLMENT_STATUS_PAID
    return INSTALLMENT_STATUS_PARTIAL


def create_contract(
    *,
    branch_id: int,
    customer_id: int | None,
    items,
    down_payment_cents: int | None,
    installment_months: int,
    interest_rate_bps: int,
    first_payment_date: date,
    user_id: int | None,
    contract_date: date | None = None,
    notes: str | None = None,
) -> HirePurchaseContract:
    """
    Create an active contract with its full installment schedule.

    When the down payment covers everything, every row is due 0 and is
    created paid, and the contract starts out completed.

    All inputs are validated before the first write. Duplicate products in
    the cart are rejected, and every line must be covered by the branch's
    stock; stock is decreased with an `out` movement referencing the contract.
    """
    def _op():
        if db.session.get(Branch, branch_id) is None:
            raise ContractError(f"Branch {branch_id} not found")
        if customer_id is None:
            raise ContractError("A customer is required")
        if db.session.get(Customer, customer_id) is None:
            raise ContractError(f"Customer {customer_id} not found")
        if first_payment_date is None:
            raise ContractError("first_payment_date is required")

        try:
            cart = build_cart(items, branch_id=branch_id, merge_duplicates=False)
            terms = calculate_terms(
                subtotal_cents=cart.subtotal_cents,
                down_payment_cents=down_payment_cents,
                installment_months=installment_months,
                interest_rate_bps=interest_rate_bps,
            )
        except (CartError, FinancingError) as exc:
            raise ContractError(str(exc)) from exc

        # paid in full up front: zero-due rows are settled from the start
        nothing_due = terms.monthly_payment_cents == 0

        contract = HirePurchaseContract(
            contract_number=next_document_number(branch_id=branch_id, document_type="hire_purchase"),
            branch_id=branch_id,
            customer_id=customer_id,
            sales_person_id=user_id,
            contract_date=contract_date or local_today(),
            first_payment_date=first_payment_date,
            subtotal_cents=terms.subtotal_cents,
            interest_cents=terms.interest_cents,
            total_amount_cents=terms.total_amount_cents,
            down_payment_cents=terms.down_payment_cents,
            remaining_amount_cents=terms.remaining_amount_cents,
            monthly_payment_cents=terms.monthly_payment_cents,
            installment_months=terms.installment_months,
            interest_rate_bps=terms.interest_rate_bps,
            status=CONTRACT_STATUS_COMPLETED if nothing_due else CONTRACT_STATUS_ACTIVE,
            notes=notes,
        )
        db.session.add(contract)
        db.session.flush()

        for line in cart.lines:
            db.session.add(HirePurchaseItem(
                contract_id=contract.id,
                product_id=line.product_id,
                product_code=line.product_code,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                total_price_cents=line.total_price_cents,
            ))

        for row in build_schedule(terms, first_payment_date):
            db.session.add(InstallmentPayment(
                contract_id=contract.id,
                installment_number=row.installment_number,
                due_date=row.due_date,
                amount_due_cents=row.amount_due_cents,
                amount_paid_cents=0,
                status=INSTALLMENT_STATUS_PAID if row.amount_due_cents == 0 else INSTALLMENT_STATUS_PENDING,
            ))

        for line in cart.lines:
            try:
                decrease_product_stock(
                    line.product_id,
                    branch_id,
                    line.quantity,
                    user_id=user_id,
                    reference_type="hire_purchase",
                    reference_id=contract.id,
                    notes=f"Hire-purchase contract {contract.contract_number}",
                )
            except InventoryError as exc:
                raise ContractError(str(exc), details={"product_id": line.product_id}) from exc

        db.session.flush()
        current_app.logger.info(
            "Contract %s created: customer=%s total_cents=%d months=%d",
            contract.contract_number, customer_id, terms.total_amount_cents, terms.installment_months,
        )
        return contract

    return run_with_retry(_op)


def apply_installment_payment(
    *,
    installment_id: int,
    amount_cents: int,
    payment_method: str,
    user_id: int | None,
    payment_date: date | None = None,
) -> InstallmentPayment:
    """
    Apply money to one installment.

    amount_paid grows by the amount; the row becomes paid once it covers
    amount_due (overpayment stays on the row, nothing is carried to the next
    installment), otherwise partial. The contract balance drops by the same
    amount and a receipt is logged. When the last installment is paid the
    contract completes.
    """
    def _op():
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
            raise ContractError("amount_cents must be a positive integer")
        if payment_method not in INSTALLMENT_PAYMENT_METHODS:
            raise ContractError(
                f"payment_method must be one of: {', '.join(INSTALLMENT_PAYMENT_METHODS)}"
            )

        installment = lock_for_update(
            db.session.query(InstallmentPayment).filter_by(id=installment_id)
        ).first()
        if installment is None:
            raise ContractError(f"Installment {installment_id} not found")

        contract = lock_for_update(
            db.session.query(HirePurchaseContract).filter_by(id=installment.contract_id)
        ).first()
        if contract.status != CONTRACT_STATUS_ACTIVE:
            raise ContractError(f"Cannot record payments on a {contract.status} contract")
        if installment.status not in PAYABLE_INSTALLMENT_STATUSES:
            raise ContractError(f"Installment {installment.installment_number} is already {installment.status}")

        paid_on = payment_date or local_today()

        installment.amount_paid_cents = (installment.amount_paid_cents or 0) + amount_cents
        installment.status = installment_status_after_payment(
            installment.amount_due_cents, installment.amount_paid_cents
        )
        installment.payment_date = paid_on
        installment.payment_method = payment_method
        installment.cashier_id = user_id

        contract.remaining_amount_cents -= amount_cents

        db.session.add(InstallmentReceipt(
            installment_id=installment.id,
            contract_id=contract.id,
            branch_id=contract.branch_id,
            amount_cents=amount_cents,
            payment_method=payment_method,
            received_by_user_id=user_id,
            received_date=paid_on,
        ))
        db.session.flush()

        unpaid = (
            db.session.query(InstallmentPayment)
            .filter(
                InstallmentPayment.contract_id == contract.id,
                InstallmentPayment.status != INSTALLMENT_STATUS_PAID,
            )
            .count()
        )
        if unpaid == 0:
            contract.status = CONTRACT_STATUS_COMPLETED
            contract.status_changed_at = utcnow()
            db.session.flush()
            current_app.logger.info("Contract %s completed", contract.contract_number)

        return installment

    return run_with_retry(_op)


def mark_overdue_installments(today: date | None = None) -> int:
    """
    Move pending/partial installments of active contracts whose due date has
    passed to overdue. Returns the number of rows changed.
    """
    today = today or local_today()
    active_ids = db.session.query(HirePurchaseContract.id).filter(
        HirePurchaseContract.status == CONTRACT_STATUS_ACTIVE
    )
    rows = (
        db.session.query(InstallmentPayment)
        .filter(
            InstallmentPayment.contract_id.in_(active_ids),
            InstallmentPayment.status.in_([INSTALLMENT_STATUS_PENDING, INSTALLMENT_STATUS_PARTIAL]),
            InstallmentPayment.due_date < today,
        )
        .all()
    )
    for row in rows:
        row.status = INSTALLMENT_STATUS_OVERDUE
    db.session.flush()
    return len(rows)


def change_contract_status(*, contract_id: int, status: str, notes: str | None = None) -> HirePurchaseContract:
    def _op():
        contract = lock_for_update(
            db.session.query(HirePurchaseContract).filter_by(id=contract_id)
        ).first()
        if contract is None:
            raise ContractError(f"Contract {contract_id} not found")
        if status not in CONTRACT_TRANSITIONS:
            raise ContractError(f"Unknown contract status: {status}")
        if status not in CONTRACT_TRANSITIONS[contract.status]:
            raise ContractError(f"Cannot change contract from {contract.status} to {status}")
        if status == CONTRACT_STATUS_COMPLETED:
            unpaid = [i for i in contract.installments if i.status != INSTALLMENT_STATUS_PAID]
            if unpaid:
                raise ContractError(f"Contract has {len(unpaid)} unpaid installment(s)")

        contract.status = status
        contract.status_changed_at = utcnow()
        if notes:
            contract.notes = notes
        db.session.flush()
        return contract

    return run_with_retry(_op)


def get_contract(contract_id: int) -> HirePurchaseContract | None:
    return db.session.get(HirePurchaseContract, contract_id)


def get_contract_detail(contract_id: int) -> dict | None:
    contract = db.session.get(HirePurchaseContract, contract_id)
    if contract is None:
        return None
    return {
        **contract.to_dict(),
        "items": [item.to_dict() for item in contract.items],
        "installments": [row.to_dict() for row in contract.installments],
        "customer": contract.customer.to_dict() if contract.customer else None,
    }


def list_contracts(
    *,
    branch_id: int | None = None,
    status: str | None = None,
    customer_id: int | None = None,
    search: str | None = None,
) -> list[HirePurchaseContract]:
    q = db.session.query(HirePurchaseContract)
    if branch_id is not None:
        q = q.filter(HirePurchaseContract.branch_id == branch_id)
    if status:
        q = q.filter(HirePurchaseContract.status == status)
    if customer_id is not None:
        q = q.filter(HirePurchaseContract.customer_id == customer_id)
    if search:
        like = f"%{search.strip()}%"
        q = q.join(Customer, Customer.id == HirePurchaseContract.customer_id).filter(
            db.or_(
                HirePurchaseContract.contract_number.ilike(like),
                Customer.name.ilike(like),
                Customer.phone.ilike(like),
            )
        )
    return q.order_by(HirePurchaseContract.created_at.desc(), HirePurchaseContract.id.desc()).all()


def list_installments(
    *,
    contract_id: int | None = None,
    status: str | None = None,
    due_before: date | None = None,
) -> list[InstallmentPayment]:
    q = db.session.query(InstallmentPayment)
    if contract_id is not None:
        q = q.filter(InstallmentPayment.contract_id == contract_id)
    if status:
        q = q.filter(InstallmentPayment.status == status)
    if due_before is not None:
        q = q.filter(InstallmentPayment.due_date < due_before)
    return q.order_by(InstallmentPayment.due_date.asc(), InstallmentPayment.installment_number.asc()).all()
