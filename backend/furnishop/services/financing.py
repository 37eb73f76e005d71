"""
Hire-purchase financing.

Simple (flat) interest, not amortized:

    financed = subtotal - down_payment
    interest = financed * rate * months / 12
    total    = subtotal + interest
    monthly  = (financed + interest) / months     (0 when nothing is financed)

Money is integer cents; the rate is in basis points (1200 = 12% a year).
Results are rounded half-up to the cent. Every installment is exactly
`monthly`; the rounding remainder is not spread over the schedule, so the
schedule sum may differ from total - down_payment by a few cents.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from furnishop.time_utils import add_months


SUPPORTED_TERMS = (6, 12, 18, 24, 36)
BPS_PER_UNIT = 10_000


class FinancingError(ValueError):
    """Raised when contract terms are invalid."""


@dataclass(frozen=True)
class FinancingTerms:
    subtotal_cents: int
    down_payment_cents: int
    financed_cents: int
    interest_cents: int
    total_amount_cents: int
    remaining_amount_cents: int
    monthly_payment_cents: int
    installment_months: int
    interest_rate_bps: int

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "down_payment_cents": self.down_payment_cents,
            "financed_cents": self.financed_cents,
            "interest_cents": self.interest_cents,
            "total_amount_cents": self.total_amount_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "monthly_payment_cents": self.monthly_payment_cents,
            "installment_months": self.installment_months,
            "interest_rate_bps": self.interest_rate_bps,
        }


@dataclass(frozen=True)
class ScheduledInstallment:
    installment_number: int
    due_date: date
    amount_due_cents: int


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _div_half_up(numerator: int, denominator: int) -> int:
    # numerator >= 0, denominator > 0
    return (2 * numerator + denominator) // (2 * denominator)


def calculate_terms(
    *,
    subtotal_cents: int,
    down_payment_cents: int | None,
    installment_months: int,
    interest_rate_bps: int,
) -> FinancingTerms:
    for field, value in (
        ("subtotal_cents", subtotal_cents),
        ("down_payment_cents", down_payment_cents),
        ("installment_months", installment_months),
        ("interest_rate_bps", interest_rate_bps),
    ):
        if value is not None and not _is_int(value):
            raise FinancingError(f"{field} must be an integer")

    if subtotal_cents is None or subtotal_cents <= 0:
        raise FinancingError("Contract must contain at least one priced item")
    if down_payment_cents is None:
        raise FinancingError("down_payment_cents is required")
    if down_payment_cents < 0:
        raise FinancingError("down_payment_cents must be >= 0")
    if down_payment_cents > subtotal_cents:
        raise FinancingError("down_payment_cents cannot exceed the subtotal")
    if installment_months not in SUPPORTED_TERMS:
        raise FinancingError(
            f"installment_months must be one of: {', '.join(str(t) for t in SUPPORTED_TERMS)}"
        )
    if interest_rate_bps is None or interest_rate_bps < 0:
        raise FinancingError("interest_rate_bps must be >= 0")

    financed = subtotal_cents - down_payment_cents
    # financed * (bps / 10000) * (months / 12)
    interest_den = BPS_PER_UNIT * 12
    interest_num = financed * interest_rate_bps * installment_months
    interest = _div_half_up(interest_num, interest_den)

    if financed > 0:
        monthly = _div_half_up(financed * interest_den + interest_num, interest_den * installment_months)
    else:
        monthly = 0

    total = subtotal_cents + interest
    return FinancingTerms(
        subtotal_cents=subtotal_cents,
        down_payment_cents=down_payment_cents,
        financed_cents=financed,
        interest_cents=interest,
        total_amount_cents=total,
        remaining_amount_cents=total - down_payment_cents,
        monthly_payment_cents=monthly,
        installment_months=installment_months,
        interest_rate_bps=interest_rate_bps,
    )


def build_schedule(terms: FinancingTerms, first_payment_date: date) -> list[ScheduledInstallment]:
    """
    One row per month. Each due date is first_payment_date plus k months,
    clamped to the end of short months (Jan 31 -> Feb 28 -> Mar 31).
    """
    return [
        ScheduledInstallment(
            installment_number=k + 1,
            due_date=add_months(first_payment_date, k),
            amount_due_cents=terms.monthly_payment_cents,
        )
        for k in range(terms.installment_months)
    ]
