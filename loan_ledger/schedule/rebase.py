"""Loan state rebuilt when contract terms are edited directly.

These are approximations kept apart from the materializer: the next
regeneration recomputes the exact state from the contract anyway, so an
exact history replay can replace them without touching the schedule loop.
"""

from datetime import date
from decimal import Decimal

from loan_ledger.models.enums import RepaymentType
from loan_ledger.schedule.dates import nth_due_date

ZERO = Decimal("0")


def rebuild_next_due_date(start: date, due_day: int, paid_months: int, term_months: int) -> date | None:
    """Replay ``paid_months`` periods from the first due date.

    Returns ``None`` when every period of the (possibly shortened) term has
    already been paid.
    """
    if paid_months >= max(1, term_months):
        return None
    return nth_due_date(start, due_day, paid_months)


def rebase_remaining_principal(
    repayment_type: RepaymentType,
    previous_principal: Decimal,
    previous_remaining: Decimal,
    new_principal: Decimal,
    paid_months: int,
    term_months: int,
) -> Decimal:
    """Approximate the remaining balance after an edit.

    - interest-only: the balance is the (new) principal.
    - unchanged principal: the stored balance is kept.
    - changed principal: the new principal is pro-rated by the share of
      periods already paid, ``new * (1 - paid / term)``.

    Parameters
    ----------
    repayment_type : RepaymentType
        Repayment policy after the edit.
    previous_principal : Decimal
        Principal before the edit.
    previous_remaining : Decimal
        Stored remaining balance before the edit.
    new_principal : Decimal
        Principal after the edit.
    paid_months : int
        Periods already paid.
    term_months : int
        Term used for the ratio; values below 1 are treated as 1.

    Returns
    -------
    Decimal
        Rebased remaining principal, never negative.
    """
    if repayment_type == RepaymentType.INTEREST_ONLY:
        return new_principal
    if new_principal == previous_principal:
        return previous_remaining
    paid_ratio = Decimal(paid_months) / Decimal(max(1, term_months))
    return max(ZERO, new_principal - new_principal * paid_ratio)
