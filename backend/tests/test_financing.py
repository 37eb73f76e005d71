"""
Hire-purchase financing tests.

Verifies:
- Flat-interest terms (interest, total, remaining, monthly)
- Schedule due dates clamp to short month ends
- Invalid terms are rejected
"""

from datetime import date

import pytest

from furnishop.services.financing import FinancingError, build_schedule, calculate_terms


def _terms(**overrides):
    params = {
        "subtotal_cents": 200000,
        "down_payment_cents": 50000,
        "installment_months": 12,
        "interest_rate_bps": 1200,
    }
    params.update(overrides)
    return calculate_terms(**params)


class TestCalculateTerms:

    def test_reference_contract(self):
        terms = _terms()
        assert terms.financed_cents == 150000
        assert terms.interest_cents == 18000
        assert terms.total_amount_cents == 218000
        assert terms.remaining_amount_cents == 168000
        assert terms.monthly_payment_cents == 14000

    def test_zero_interest(self):
        terms = _terms(interest_rate_bps=0, installment_months=6, down_payment_cents=20000)
        assert terms.interest_cents == 0
        assert terms.total_amount_cents == 200000
        assert terms.monthly_payment_cents == 30000

    def test_full_down_payment_finances_nothing(self):
        terms = _terms(down_payment_cents=200000)
        assert terms.financed_cents == 0
        assert terms.interest_cents == 0
        assert terms.remaining_amount_cents == 0
        assert terms.monthly_payment_cents == 0

    def test_monthly_rounds_half_up(self):
        # financed 1000, 36 months at 10%: interest 300, monthly 1300 / 36 = 36.11
        terms = _terms(subtotal_cents=1000, down_payment_cents=0, installment_months=36, interest_rate_bps=1000)
        assert terms.interest_cents == 300
        assert terms.monthly_payment_cents == 36

    def test_to_dict_carries_inputs(self):
        data = _terms().to_dict()
        assert data["installment_months"] == 12
        assert data["interest_rate_bps"] == 1200
        assert data["monthly_payment_cents"] == 14000

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"subtotal_cents": 0}, "at least one priced item"),
            ({"down_payment_cents": None}, "required"),
            ({"down_payment_cents": -1}, ">= 0"),
            ({"down_payment_cents": 200001}, "cannot exceed"),
            ({"installment_months": 10}, "installment_months"),
            ({"interest_rate_bps": -5}, "interest_rate_bps"),
            ({"down_payment_cents": "500"}, "down_payment_cents must be an integer"),
            ({"down_payment_cents": 500.5}, "down_payment_cents must be an integer"),
            ({"interest_rate_bps": "1200"}, "interest_rate_bps must be an integer"),
            ({"installment_months": True}, "installment_months must be an integer"),
        ],
    )
    def test_invalid_terms(self, overrides, message):
        with pytest.raises(FinancingError, match=message):
            _terms(**overrides)


class TestBuildSchedule:

    def test_one_row_per_month(self):
        schedule = build_schedule(_terms(), date(2026, 2, 15))
        assert len(schedule) == 12
        assert [row.installment_number for row in schedule] == list(range(1, 13))
        assert all(row.amount_due_cents == 14000 for row in schedule)
        assert schedule[0].due_date == date(2026, 2, 15)
        assert schedule[-1].due_date == date(2027, 1, 15)

    def test_month_end_clamping(self):
        schedule = build_schedule(_terms(installment_months=6), date(2027, 1, 31))
        assert [row.due_date for row in schedule] == [
            date(2027, 1, 31),
            date(2027, 2, 28),
            date(2027, 3, 31),
            date(2027, 4, 30),
            date(2027, 5, 31),
            date(2027, 6, 30),
        ]

    def test_leap_year_february(self):
        schedule = build_schedule(_terms(installment_months=6), date(2027, 12, 31))
        assert schedule[2].due_date == date(2028, 2, 29)
