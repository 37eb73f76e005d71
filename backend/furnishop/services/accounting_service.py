"""
Income and expense summary for a date range.

Income is cash-sale revenue, down payments on contracts written in the
range, and installment money received in the range (one receipt per
payment, so partial payments are counted once each). Expenses are branch
expense rows, including the cost_of_goods rows written when stock is
received. This is a cash view, not a ledger.
"""
from __future__ import annotations

from datetime import date

from sqlalchemy import func

from furnishop.extensions import db
from furnishop.models import BranchExpense, CashSale, HirePurchaseContract, InstallmentReceipt
from furnishop.time_utils import to_iso_date


def _sum(query) -> int:
    return int(query.scalar() or 0)


def accounting_summary(*, start: date, end: date, branch_id: int | None = None) -> dict:
    sales = db.session.query(func.coalesce(func.sum(CashSale.total_amount_cents), 0)).filter(
        CashSale.payment_status == "completed",
        CashSale.sale_date >= start,
        CashSale.sale_date <= end,
    )
    sales_count = db.session.query(func.count(CashSale.id)).filter(
        CashSale.payment_status == "completed",
        CashSale.sale_date >= start,
        CashSale.sale_date <= end,
    )
    down_payments = db.session.query(
        func.coalesce(func.sum(HirePurchaseContract.down_payment_cents), 0)
    ).filter(
        HirePurchaseContract.contract_date >= start,
        HirePurchaseContract.contract_date <= end,
        HirePurchaseContract.status != "cancelled",
    )
    installments = db.session.query(func.coalesce(func.sum(InstallmentReceipt.amount_cents), 0)).filter(
        InstallmentReceipt.received_date >= start,
        InstallmentReceipt.received_date <= end,
    )
    expenses = db.session.query(func.coalesce(func.sum(BranchExpense.amount_cents), 0)).filter(
        BranchExpense.expense_date >= start,
        BranchExpense.expense_date <= end,
    )

    if branch_id is not None:
        sales = sales.filter(CashSale.branch_id == branch_id)
        sales_count = sales_count.filter(CashSale.branch_id == branch_id)
        down_payments = down_payments.filter(HirePurchaseContract.branch_id == branch_id)
        installments = installments.filter(InstallmentReceipt.branch_id == branch_id)
        expenses = expenses.filter(BranchExpense.branch_id == branch_id)

    sales_income = _sum(sales)
    down_payment_income = _sum(down_payments)
    installment_income = _sum(installments)
    total_expense = _sum(expenses)
    hire_purchase_income = down_payment_income + installment_income
    total_income = sales_income + hire_purchase_income

    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "branch_id": branch_id,
        "sales_income_cents": sales_income,
        "down_payment_income_cents": down_payment_income,
        "installment_income_cents": installment_income,
        "hire_purchase_income_cents": hire_purchase_income,
        "total_income_cents": total_income,
        "total_expense_cents": total_expense,
        "net_profit_cents": total_income - total_expense,
        "sales_count": _sum(sales_count),
    }


def list_transactions(*, start: date, end: date, branch_id: int | None = None, limit: int = 200) -> list[dict]:
    """Income and expense entries merged, newest date first."""
    entries: list[dict] = []

    sales = db.session.query(CashSale).filter(
        CashSale.payment_status == "completed",
        CashSale.sale_date >= start,
        CashSale.sale_date <= end,
    )
    receipts = db.session.query(InstallmentReceipt).filter(
        InstallmentReceipt.received_date >= start,
        InstallmentReceipt.received_date <= end,
    )
    contracts = db.session.query(HirePurchaseContract).filter(
        HirePurchaseContract.contract_date >= start,
        HirePurchaseContract.contract_date <= end,
        HirePurchaseContract.status != "cancelled",
        HirePurchaseContract.down_payment_cents > 0,
    )
    expenses = db.session.query(BranchExpense).filter(
        BranchExpense.expense_date >= start,
        BranchExpense.expense_date <= end,
    )
    if branch_id is not None:
        sales = sales.filter(CashSale.branch_id == branch_id)
        receipts = receipts.filter(InstallmentReceipt.branch_id == branch_id)
        contracts = contracts.filter(HirePurchaseContract.branch_id == branch_id)
        expenses = expenses.filter(BranchExpense.branch_id == branch_id)

    for sale in sales.all():
        entries.append({
            "type": "income",
            "category": "cash_sale",
            "date": sale.sale_date,
            "amount_cents": sale.total_amount_cents,
            "description": f"Cash sale {sale.sale_number}",
            "reference_type": "cash_sale",
            "reference_id": sale.id,
        })
    for contract in contracts.all():
        entries.append({
            "type": "income",
            "category": "down_payment",
            "date": contract.contract_date,
            "amount_cents": contract.down_payment_cents,
            "description": f"Down payment {contract.contract_number}",
            "reference_type": "hire_purchase",
            "reference_id": contract.id,
        })
    for receipt in receipts.all():
        number = receipt.contract.contract_number if receipt.contract else receipt.contract_id
        entries.append({
            "type": "income",
            "category": "installment",
            "date": receipt.received_date,
            "amount_cents": receipt.amount_cents,
            "description": f"Installment {receipt.installment.installment_number} of {number}",
            "reference_type": "hire_purchase_payment",
            "reference_id": receipt.installment_id,
        })
    for expense in expenses.all():
        entries.append({
            "type": "expense",
            "category": expense.category,
            "date": expense.expense_date,
            "amount_cents": expense.amount_cents,
            "description": expense.description,
            "reference_type": "branch_expense",
            "reference_id": expense.id,
        })

    entries.sort(key=lambda e: (e["date"], e["type"] == "income"), reverse=True)
    for entry in entries:
        entry["date"] = to_iso_date(entry["date"])
    return entries[:limit]
