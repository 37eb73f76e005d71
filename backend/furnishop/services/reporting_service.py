# Overview: Dashboard and report aggregation over a business-date range.

from __future__ import annotations

from datetime import date

from sqlalchemy import case, func

from furnishop.extensions import db
from furnishop.models import (
    CashSale,
    CashSaleItem,
    Customer,
    HirePurchaseContract,
    InstallmentPayment,
    InventoryMovement,
    Product,
)
from furnishop.time_utils import PERIODS, local_today, parse_iso_date, period_range, to_iso_date


REPORT_TYPES = ("sales", "products", "customers", "hirePurchase")


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def resolve_range(
    *,
    period: str | None = None,
    start: str | None = None,
    end: str | None = None,
    today: date | None = None,
) -> tuple[date, date]:
    """
    Explicit start/end win over a period. Without either, the range is
    this month.
    """
    if start or end:
        try:
            start_d = parse_iso_date(start) if start else None
            end_d = parse_iso_date(end) if end else None
        except ValueError:
            raise ReportError("start and end must be YYYY-MM-DD dates")
        today = today or local_today()
        start_d = start_d or date(1970, 1, 1)
        end_d = end_d or today
        if start_d > end_d:
            raise ReportError("start must be on or before end")
        return start_d, end_d

    try:
        return period_range(period or "thisMonth", today=today)
    except ValueError:
        raise ReportError(f"period must be one of: {', '.join(PERIODS)}")


def _completed_sales(start: date, end: date, branch_id: int | None):
    q = db.session.query(CashSale).filter(
        CashSale.payment_status == "completed",
        CashSale.sale_date >= start,
        CashSale.sale_date <= end,
    )
    if branch_id is not None:
        q = q.filter(CashSale.branch_id == branch_id)
    return q


def sales_report(*, start: date, end: date, branch_id: int | None = None) -> list[dict]:
    """Per sale date: number of sales, total amount, average per sale."""
    query = db.session.query(
        CashSale.sale_date.label("sale_date"),
        func.count(CashSale.id).label("total_sales"),
        func.coalesce(func.sum(CashSale.total_amount_cents), 0).label("total_amount_cents"),
    ).filter(
        CashSale.payment_status == "completed",
        CashSale.sale_date >= start,
        CashSale.sale_date <= end,
    )
    if branch_id is not None:
        query = query.filter(CashSale.branch_id == branch_id)

    rows = query.group_by(CashSale.sale_date).order_by(CashSale.sale_date.asc()).all()
    report = []
    for row in rows:
        count = int(row.total_sales or 0)
        amount = int(row.total_amount_cents or 0)
        report.append({
            "period": to_iso_date(row.sale_date),
            "total_sales": count,
            "total_amount_cents": amount,
            # nearest-cent rounding (half-up)
            "average_per_sale_cents": (amount + count // 2) // count if count else 0,
        })
    return report


def product_report(*, start: date, end: date, branch_id: int | None = None) -> list[dict]:
    """Per product code: quantity sold and revenue, highest revenue first."""
    revenue = func.coalesce(func.sum(CashSaleItem.total_price_cents), 0)
    query = db.session.query(
        CashSaleItem.product_code.label("product_code"),
        func.max(CashSaleItem.product_name).label("product_name"),
        func.coalesce(func.sum(CashSaleItem.quantity), 0).label("total_quantity"),
        revenue.label("total_amount_cents"),
    ).join(CashSale, CashSale.id == CashSaleItem.cash_sale_id).filter(
        CashSale.payment_status == "completed",
        CashSale.sale_date >= start,
        CashSale.sale_date <= end,
    )
    if branch_id is not None:
        query = query.filter(CashSale.branch_id == branch_id)

    rows = (
        query.group_by(CashSaleItem.product_code)
        .order_by(revenue.desc(), CashSaleItem.product_code.asc())
        .all()
    )
    return [
        {
            "product_code": row.product_code,
            "product_name": row.product_name,
            "total_quantity": int(row.total_quantity or 0),
            "total_amount_cents": int(row.total_amount_cents or 0),
        }
        for row in rows
    ]


def customer_report(*, start: date, end: date, branch_id: int | None = None) -> list[dict]:
    """Per customer phone: total spent and last purchase. Walk-in sales are excluded."""
    spent = func.coalesce(func.sum(CashSale.total_amount_cents), 0)
    query = db.session.query(
        Customer.phone.label("customer_phone"),
        func.max(Customer.name).label("customer_name"),
        spent.label("total_purchases_cents"),
        func.max(CashSale.sale_date).label("last_purchase"),
    ).select_from(CashSale).join(Customer, Customer.id == CashSale.customer_id).filter(
        CashSale.payment_status == "completed",
        CashSale.customer_id.isnot(None),
        CashSale.sale_date >= start,
        CashSale.sale_date <= end,
    )
    if branch_id is not None:
        query = query.filter(CashSale.branch_id == branch_id)

    rows = query.group_by(Customer.phone).order_by(spent.desc(), Customer.phone.asc()).all()
    return [
        {
            "customer_phone": row.customer_phone,
            "customer_name": row.customer_name,
            "total_purchases_cents": int(row.total_purchases_cents or 0),
            "last_purchase": to_iso_date(row.last_purchase),
        }
        for row in rows
    ]


def hire_purchase_report(
    *,
    start: date,
    end: date,
    branch_id: int | None = None,
    today: date | None = None,
) -> dict:
    """
    Contracts written in the range plus portfolio health.

    overdue_payments: installments due before today that are not paid.
    collection_rate: paid installments / all installments * 100, over the
    whole portfolio (not only the range).
    """
    today = today or local_today()

    contracts = db.session.query(
        func.count(HirePurchaseContract.id).label("total_contracts"),
        func.coalesce(func.sum(HirePurchaseContract.total_amount_cents), 0).label("total_amount_cents"),
        func.coalesce(
            func.sum(case((HirePurchaseContract.status == "active", 1), else_=0)), 0
        ).label("active_contracts"),
    ).filter(
        HirePurchaseContract.contract_date >= start,
        HirePurchaseContract.contract_date <= end,
    )

    installments = db.session.query(
        func.count(InstallmentPayment.id).label("total"),
        func.coalesce(func.sum(case((InstallmentPayment.status == "paid", 1), else_=0)), 0).label("paid"),
        func.coalesce(
            func.sum(case(
                ((InstallmentPayment.status != "paid") & (InstallmentPayment.due_date < today), 1),
                else_=0,
            )),
            0,
        ).label("overdue"),
    ).join(HirePurchaseContract, HirePurchaseContract.id == InstallmentPayment.contract_id)

    if branch_id is not None:
        contracts = contracts.filter(HirePurchaseContract.branch_id == branch_id)
        installments = installments.filter(HirePurchaseContract.branch_id == branch_id)

    c = contracts.one()
    i = installments.one()
    total = int(i.total or 0)
    paid = int(i.paid or 0)

    return {
        "total_contracts": int(c.total_contracts or 0),
        "total_amount_cents": int(c.total_amount_cents or 0),
        "active_contracts": int(c.active_contracts or 0),
        "overdue_payments": int(i.overdue or 0),
        "collection_rate": round(paid / total * 100, 2) if total else 0.0,
    }


def build_report(report_type: str, *, start: date, end: date, branch_id: int | None = None) -> dict:
    if report_type == "sales":
        data = sales_report(start=start, end=end, branch_id=branch_id)
    elif report_type == "products":
        data = product_report(start=start, end=end, branch_id=branch_id)
    elif report_type == "customers":
        data = customer_report(start=start, end=end, branch_id=branch_id)
    elif report_type == "hirePurchase":
        data = hire_purchase_report(start=start, end=end, branch_id=branch_id)
    else:
        raise ReportError(f"report type must be one of: {', '.join(REPORT_TYPES)}")

    return {
        "report_type": report_type,
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "branch_id": branch_id,
        "data": data,
    }


def dashboard_summary(*, branch_id: int | None = None, today: date | None = None) -> dict:
    """Headline numbers for the landing screen."""
    today = today or local_today()

    sales = _completed_sales(today, today, branch_id).with_entities(
        func.count(CashSale.id),
        func.coalesce(func.sum(CashSale.total_amount_cents), 0),
    ).one()

    contracts = db.session.query(func.count(HirePurchaseContract.id)).filter(
        HirePurchaseContract.status == "active"
    )
    if branch_id is not None:
        contracts = contracts.filter(HirePurchaseContract.branch_id == branch_id)

    # Low stock: derived on-hand (all branches, or the given one) at or below min level
    stock = db.session.query(
        InventoryMovement.product_id.label("product_id"),
        func.sum(InventoryMovement.quantity).label("on_hand"),
    ).filter(InventoryMovement.product_id.isnot(None))
    if branch_id is not None:
        stock = stock.filter(InventoryMovement.branch_id == branch_id)
    stock = stock.group_by(InventoryMovement.product_id).subquery()

    low_stock = (
        db.session.query(func.count(Product.id))
        .outerjoin(stock, stock.c.product_id == Product.id)
        .filter(
            Product.is_active.is_(True),
            func.coalesce(stock.c.on_hand, 0) <= Product.min_stock_level,
        )
        .scalar()
    )

    return {
        "date": to_iso_date(today),
        "branch_id": branch_id,
        "today_sales_count": int(sales[0] or 0),
        "today_sales_cents": int(sales[1] or 0),
        "customer_count": int(db.session.query(func.count(Customer.id)).scalar() or 0),
        "low_stock_products": int(low_stock or 0),
        "active_contracts": int(contracts.scalar() or 0),
    }
