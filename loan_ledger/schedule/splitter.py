"""Per-period payment splitting for the supported repayment policies.

Amounts are in whole currency units. Every period is rounded on its own
(half away from zero), so schedules drift by a few units; the
principal-equal final period and the settlement override absorb it.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from loan_ledger.models.enums import RepaymentType

ZERO = Decimal("0")
_UNIT = Decimal("1")
_MONTHS_PER_YEAR = Decimal("12")
_PERCENT = Decimal("100")


@dataclass(frozen=True)
class PeriodSplit:
    """One scheduled period broken into interest and principal."""

    period: int  # One-based
    interest: Decimal
    principal_portion: Decimal
    payment: Decimal
    remaining_after: Decimal


def round_currency(amount: Decimal) -> Decimal:
    """Round half away from zero to a whole currency unit."""
    return amount.quantize(_UNIT, rounding=ROUND_HALF_UP)


def monthly_rate(annual_percent: Decimal) -> Decimal:
    """Convert an annual percentage rate into a monthly fraction."""
    return Decimal(annual_percent) / _PERCENT / _MONTHS_PER_YEAR


def annuity_installment(principal: Decimal, rate: Decimal, term_months: int) -> Decimal:
    """Unrounded fixed installment ``P*r / (1 - (1+r)^-n)``, or ``P/n`` at 0%."""
    term_months = max(1, term_months)
    if rate > 0:
        return principal * rate / (1 - (1 + rate) ** -term_months)
    return principal / term_months


def split_period(
    repayment_type: RepaymentType,
    principal: Decimal,
    remaining: Decimal,
    rate: Decimal,
    term_months: int,
    period: int,
    installment: Decimal | None = None,
) -> PeriodSplit:
    """Split one period's payment.

    Parameters
    ----------
    repayment_type : RepaymentType
        Repayment policy of the loan.
    principal : Decimal
        Original principal of the contract.
    remaining : Decimal
        Balance entering the period.
    rate : Decimal
        Monthly rate as a fraction (see ``monthly_rate``).
    term_months : int
        Contract term; values below 1 are treated as 1.
    period : int
        One-based index of the period being split.
    installment : Decimal | None
        Cached unrounded annuity installment for amortized loans. Computed
        from ``principal`` and ``term_months`` when omitted.

    Returns
    -------
    PeriodSplit
        Interest, principal portion, payment and the balance after the
        period.
    """
    term_months = max(1, term_months)
    interest = round_currency(remaining * rate)

    if repayment_type == RepaymentType.INTEREST_ONLY:
        return PeriodSplit(
            period=period,
            interest=interest,
            principal_portion=ZERO,
            payment=interest,
            remaining_after=remaining,
        )

    if repayment_type == RepaymentType.PRINCIPAL_EQUAL:
        if period >= term_months:
            principal_portion = remaining  # final period clears the drift
        else:
            principal_portion = principal / term_months
        payment = round_currency(principal_portion + interest)
    else:
        if installment is None:
            installment = annuity_installment(principal, rate, term_months)
        payment = round_currency(installment)
        principal_portion = max(ZERO, payment - interest)

    return PeriodSplit(
        period=period,
        interest=interest,
        principal_portion=principal_portion,
        payment=payment,
        remaining_after=max(ZERO, remaining - principal_portion),
    )


def installment_amount(
    repayment_type: RepaymentType,
    principal: Decimal,
    remaining: Decimal,
    annual_percent: Decimal,
    term_months: int,
    paid_months: int = 0,
) -> Decimal:
    """Payment the next unpaid period would charge.

    Used for the ``monthly_payment`` snapshot stored on the loan. A loan
    with every period paid has no upcoming installment and yields zero.
    """
    term_months = max(1, term_months)
    if paid_months >= term_months:
        return ZERO
    split = split_period(
        repayment_type,
        principal,
        remaining,
        monthly_rate(annual_percent),
        term_months,
        paid_months + 1,
    )
    return split.payment
