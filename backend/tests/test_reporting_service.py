"""
Reports, dashboard, expenses and accounting summary tests.
"""

from datetime import date, timedelta

import pytest

from furnishop.extensions import db
from furnishop.services.accounting_service import accounting_summary, list_transactions
from furnishop.services.expense_service import ExpenseError, list_expenses, record_expense
from furnishop.services.hire_purchase_service import apply_installment_payment, create_contract, list_installments
from furnishop.services.reporting_service import (
    ReportError,
    build_report,
    dashboard_summary,
    hire_purchase_report,
    resolve_range,
)
from furnishop.services.sales_service import commit_cash_sale
from furnishop.time_utils import local_today, period_range

from conftest import make_product


@pytest.fixture
def activity(branch_a, cashier_a, sales_a, customer):
    """
    Today at branch A:
    - two cash sales (2000 with the customer, 1000 walk-in)
    - one contract (down 50000, 12 x 14000) with its first installment paid
    - cost_of_goods 5000 from receiving the sofas, plus a 2500 rent expense
    """
    today = local_today()
    sofa = make_product(branch_a.id, "SOFA-1", price_cents=1000, stock=10, unit_cost_cents=500)
    bed = make_product(branch_a.id, "BED-1", price_cents=200000, stock=1, unit_cost_cents=0)

    commit_cash_sale(
        branch_id=branch_a.id, items=[{"product_id": sofa.id, "quantity": 2}],
        payment_method="cash", user_id=cashier_a.id, customer_id=customer.id,
    )
    commit_cash_sale(
        branch_id=branch_a.id, items=[{"product_id": sofa.id, "quantity": 1}],
        payment_method="transfer", user_id=cashier_a.id,
    )
    contract = create_contract(
        branch_id=branch_a.id, customer_id=customer.id, items=[{"product_id": bed.id, "quantity": 1}],
        down_payment_cents=50000, installment_months=12, interest_rate_bps=1200,
        first_payment_date=today, user_id=sales_a.id,
    )
    db.session.flush()
    first = list_installments(contract_id=contract.id)[0]
    apply_installment_payment(installment_id=first.id, amount_cents=14000, payment_method="cash", user_id=cashier_a.id)
    record_expense(
        {"branch_id": branch_a.id, "amount_cents": 2500, "description": "Rent", "category": "rent", "expense_date": today},
        user_id=None,
    )
    db.session.commit()
    return {"today": today, "sofa": sofa, "bed": bed, "contract": contract}


class TestResolveRange:

    def test_default_is_this_month(self):
        today = date(2026, 5, 20)
        assert resolve_range(today=today) == (date(2026, 5, 1), today)

    def test_explicit_dates_win(self):
        assert resolve_range(period="today", start="2026-01-01", end="2026-01-31") == (
            date(2026, 1, 1), date(2026, 1, 31),
        )

    def test_start_after_end(self):
        with pytest.raises(ReportError):
            resolve_range(start="2026-02-01", end="2026-01-01")

    def test_bad_period(self):
        with pytest.raises(ReportError, match="period"):
            resolve_range(period="lastDecade")

    def test_period_ranges(self):
        wednesday = date(2026, 10, 14)
        assert period_range("today", wednesday) == (wednesday, wednesday)
        assert period_range("thisWeek", wednesday) == (date(2026, 10, 11), wednesday)
        assert period_range("thisYear", wednesday) == (date(2026, 1, 1), wednesday)
        sunday = date(2026, 10, 18)
        assert period_range("thisWeek", sunday) == (sunday, sunday)


class TestReports:

    def test_sales_report(self, activity):
        today = activity["today"]
        report = build_report("sales", start=today, end=today)
        assert report["data"] == [{
            "period": today.isoformat(),
            "total_sales": 2,
            "total_amount_cents": 3000,
            "average_per_sale_cents": 1500,
        }]

    def test_product_report(self, activity):
        today = activity["today"]
        rows = build_report("products", start=today, end=today)["data"]
        assert rows == [{
            "product_code": "SOFA-1",
            "product_name": "Product SOFA-1",
            "total_quantity": 3,
            "total_amount_cents": 3000,
        }]

    def test_customer_report_excludes_walk_ins(self, activity, customer):
        today = activity["today"]
        rows = build_report("customers", start=today, end=today)["data"]
        assert len(rows) == 1
        assert rows[0]["customer_phone"] == customer.phone
        assert rows[0]["total_purchases_cents"] == 2000
        assert rows[0]["last_purchase"] == today.isoformat()

    def test_hire_purchase_report(self, activity):
        today = activity["today"]
        data = hire_purchase_report(start=today, end=today, today=today + timedelta(days=400))
        assert data["total_contracts"] == 1
        assert data["total_amount_cents"] == 218000
        assert data["active_contracts"] == 1
        assert data["overdue_payments"] == 11
        assert data["collection_rate"] == 8.33

    def test_branch_filter(self, activity, branch_b):
        today = activity["today"]
        assert build_report("sales", start=today, end=today, branch_id=branch_b.id)["data"] == []

    def test_outside_range_is_empty(self, activity):
        day = activity["today"] - timedelta(days=1)
        assert build_report("sales", start=day, end=day)["data"] == []

    def test_unknown_report(self, db_session):
        with pytest.raises(ReportError):
            build_report("inventory", start=date(2026, 1, 1), end=date(2026, 1, 31))

    def test_dashboard(self, activity):
        summary = dashboard_summary(today=activity["today"])
        assert summary["today_sales_count"] == 2
        assert summary["today_sales_cents"] == 3000
        assert summary["customer_count"] == 1
        assert summary["active_contracts"] == 1
        # the bed sold out on the contract
        assert summary["low_stock_products"] == 1


class TestExpenses:

    def test_record_and_list(self, branch_a, branch_b):
        record_expense(
            {"branch_id": branch_a.id, "amount_cents": 900, "description": "Fuel",
             "category": "transport", "expense_date": date(2026, 3, 2)},
            user_id=None,
        )
        record_expense(
            {"branch_id": branch_b.id, "amount_cents": 400, "description": "Water",
             "category": "utilities", "expense_date": date(2026, 3, 5)},
            user_id=None,
        )
        db.session.commit()

        assert [e.description for e in list_expenses()] == ["Water", "Fuel"]
        assert [e.description for e in list_expenses(branch_id=branch_a.id)] == ["Fuel"]
        assert [e.description for e in list_expenses(category="utilities")] == ["Water"]
        assert list_expenses(start=date(2026, 3, 3), end=date(2026, 3, 4)) == []

    def test_unknown_branch(self, db_session):
        with pytest.raises(ExpenseError):
            record_expense(
                {"branch_id": 77, "amount_cents": 1, "description": "x", "category": "other",
                 "expense_date": date(2026, 1, 1)},
                user_id=None,
            )


class TestAccounting:

    def test_summary(self, activity):
        today = activity["today"]
        summary = accounting_summary(start=today, end=today)
        assert summary["sales_income_cents"] == 3000
        assert summary["down_payment_income_cents"] == 50000
        assert summary["installment_income_cents"] == 14000
        assert summary["hire_purchase_income_cents"] == 64000
        assert summary["total_income_cents"] == 67000
        assert summary["total_expense_cents"] == 7500
        assert summary["net_profit_cents"] == 59500
        assert summary["sales_count"] == 2

    def test_summary_for_other_branch(self, activity, branch_b):
        today = activity["today"]
        summary = accounting_summary(start=today, end=today, branch_id=branch_b.id)
        assert summary["total_income_cents"] == 0
        assert summary["total_expense_cents"] == 0

    def test_transactions(self, activity):
        today = activity["today"]
        entries = list_transactions(start=today, end=today)
        assert len(entries) == 6
        assert sorted(e["category"] for e in entries if e["type"] == "income") == [
            "cash_sale", "cash_sale", "down_payment", "installment",
        ]
        assert sorted(e["category"] for e in entries if e["type"] == "expense") == ["cost_of_goods", "rent"]
        assert all(e["date"] == today.isoformat() for e in entries)
        assert len(list_transactions(start=today, end=today, limit=2)) == 2
