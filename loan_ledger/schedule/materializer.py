"""Schedule materializer: rebuilds derived ledger entries and loan state.

Every run recomputes "what should have been paid by now" from the loan
contracts alone. Derived entries are purged and re-inserted rather than
appended, so running twice with the same clock and contracts is a no-op.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from loan_ledger.models import Loan, PurgeScope, RegenerationReport, Transaction, TransactionType
from loan_ledger.models.ledger import derived_memo, derived_memo_pattern
from loan_ledger.schedule.dates import advance_one_month, clamp_due_day, first_due_date
from loan_ledger.schedule.splitter import (
    ZERO,
    PeriodSplit,
    annuity_installment,
    installment_amount,
    monthly_rate,
    split_period,
)
from loan_ledger.serialization import serialize_value
from loan_ledger.store.base import RecordFilter, RecordStore, where

logger = logging.getLogger(__name__)

# Derived entry ids are a pure function of (loan, period) so regenerated
# entries keep their identity across runs.
DERIVED_ENTRY_NAMESPACE = uuid.UUID("5b0c6f1e-8a47-4c1e-9f7e-2f4f3f1d6a10")


@dataclass(frozen=True)
class ScheduledPeriod:
    """A period whose due date has been reached."""

    due_date: date
    split: PeriodSplit


@dataclass
class SchedulePlan:
    """Computed schedule of one loan as of a given day."""

    loan: Loan
    periods: list[ScheduledPeriod] = field(default_factory=list)
    remaining_principal: Decimal = ZERO
    paid_months: int = 0
    next_due_date: date | None = None
    monthly_payment: Decimal = ZERO
    settlement_applied: bool = False

    def ledger_entries(self) -> list[Transaction]:
        """Derived expense entries for every elapsed period with a payment."""
        loan = self.loan
        return [
            Transaction(
                transaction_id=derived_entry_id(loan.loan_id, period.split.period),
                user_id=loan.user_id,
                transaction_type=TransactionType.EXPENSE,
                amount=period.split.payment,
                entry_date=period.due_date,
                account_id=loan.account_id,
                category_id=loan.category_id,
                memo=derived_memo(loan.loan_id, loan.name, period.split.period, loan.term_months),
            )
            for period in self.periods
            if period.split.payment > 0
        ]

    def state_values(self) -> dict[str, Any]:
        """Engine-owned loan columns to persist."""
        return {
            "remaining_principal": self.remaining_principal,
            "paid_months": self.paid_months,
            "next_due_date": serialize_value(self.next_due_date),
            "monthly_payment": self.monthly_payment,
        }

    def updated_loan(self) -> Loan:
        return self.loan.with_state(
            self.remaining_principal,
            self.paid_months,
            self.next_due_date,
            self.monthly_payment,
        )


def derived_entry_id(loan_id: str, period: int) -> str:
    return str(uuid.uuid5(DERIVED_ENTRY_NAMESPACE, f"{loan_id}:{period}"))


def walk_schedule(loan: Loan, stop_date: date) -> SchedulePlan:
    """Run the due-date cursor from the contract start up to ``stop_date``.

    Starts from the full principal and zero paid periods, then for every
    due date on or before ``stop_date`` (and within the term) splits the
    period and applies the balance update. No settlement override is
    applied here.
    """
    due_day = clamp_due_day(loan.monthly_due_day)
    term = max(1, loan.term_months)
    rate = monthly_rate(loan.interest_rate)
    installment = annuity_installment(loan.principal, rate, term)

    plan = SchedulePlan(loan=loan)
    remaining = loan.principal
    paid = 0
    next_due: date | None = first_due_date(loan.start_date, due_day)

    while next_due is not None and paid < term and next_due <= stop_date:
        split = split_period(
            loan.repayment_type,
            loan.principal,
            remaining,
            rate,
            term,
            paid + 1,
            installment=installment,
        )
        plan.periods.append(ScheduledPeriod(due_date=next_due, split=split))
        remaining = split.remaining_after
        paid += 1
        next_due = None if paid == term else advance_one_month(next_due, due_day)

    plan.remaining_principal = remaining
    plan.paid_months = paid
    plan.next_due_date = next_due
    plan.monthly_payment = installment_amount(
        loan.repayment_type,
        loan.principal,
        remaining,
        loan.interest_rate,
        term,
        paid,
    )
    return plan


def plan_schedule(loan: Loan, today: date) -> SchedulePlan:
    """Compute the schedule and resulting state of ``loan`` as of ``today``.

    The cursor stops at the settlement date when the loan is settled and at
    ``today`` otherwise. Once the settlement date has passed the loan is
    forced to fully paid regardless of what the schedule reached.
    """
    stop_date = loan.settled_at or today
    plan = walk_schedule(loan, stop_date)

    if loan.settled_at is not None and today >= stop_date:
        plan.remaining_principal = ZERO
        plan.paid_months = max(1, loan.term_months)
        plan.next_due_date = None
        plan.monthly_payment = ZERO
        plan.settlement_applied = True

    return plan


def balance_as_of(loan: Loan, as_of: date) -> Decimal:
    """Outstanding principal after every period due on or before ``as_of``."""
    return walk_schedule(loan, as_of).remaining_principal


class ScheduleMaterializer:
    """Purge and regenerate a user's derived ledger entries.

    Parameters
    ----------
    store : RecordStore
        Store holding ``loans`` and ``transactions``.
    purge_scope : PurgeScope
        ``CURRENT_YEAR`` (default) purges only entries dated in the
        current calendar year; entries of earlier years are left in place
        and only re-inserted when missing. ``ALL_YEARS`` purges every
        derived entry of the user before regenerating.
    """

    def __init__(self, store: RecordStore, purge_scope: PurgeScope = PurgeScope.CURRENT_YEAR) -> None:
        self.store = store
        self.purge_scope = purge_scope

    def regenerate(self, user_id: str, today: date | None = None) -> RegenerationReport:
        """Rebuild derived entries and loan state for ``user_id``.

        Loans whose stored row cannot be planned are logged and skipped.
        Purge, inserts and loan updates run in a single store batch;
        storage failures roll the batch back and propagate.
        """
        today = today or date.today()
        report = RegenerationReport(user_id=user_id, today=today)

        plans: list[SchedulePlan] = []
        for row in self.store.query("loans", where(user_id=user_id), order_by=("created_at", "loan_id")):
            try:
                plans.append(plan_schedule(Loan.from_row(row), today))
            except (KeyError, TypeError, ValueError, ArithmeticError):
                logger.exception(
                    "Skipping loan %s: schedule could not be computed",
                    row.get("loan_id"),
                    extra={"user_id": user_id, "loan_id": row.get("loan_id")},
                )
                report.skipped_loan_ids.append(row.get("loan_id"))

        with self.store.batch():
            report.entries_purged = self.store.delete("transactions", self.purge_filter(user_id, today))
            kept = self._kept_entries(user_id, today)

            for plan in plans:
                for entry in plan.ledger_entries():
                    if (entry.memo, entry.entry_date.isoformat()) in kept:
                        continue
                    self.store.insert("transactions", entry.to_row())
                    report.entries_created += 1
                self.store.update("loans", plan.loan.loan_id, plan.state_values())
                report.loans_processed += 1
                logger.debug(
                    "Loan %s: %d/%d periods paid, remaining %s, next due %s",
                    plan.loan.loan_id,
                    plan.paid_months,
                    plan.loan.term_months,
                    plan.remaining_principal,
                    plan.next_due_date,
                    extra={"user_id": user_id, "loan_id": plan.loan.loan_id},
                )

        logger.info(
            "Regenerated loans for %s as of %s: %d loans, %d entries (%d purged, %d skipped)",
            user_id,
            today.isoformat(),
            report.loans_processed,
            report.entries_created,
            report.entries_purged,
            len(report.skipped_loan_ids),
            extra={"user_id": user_id},
        )
        return report

    def purge_filter(self, user_id: str, today: date) -> RecordFilter:
        """Filter selecting the derived entries a run removes."""
        like = {"memo": derived_memo_pattern()}
        if self.purge_scope == PurgeScope.CURRENT_YEAR:
            like["entry_date"] = f"{today.year:04d}-%"
        return RecordFilter(equals={"user_id": user_id}, like=like)

    def _kept_entries(self, user_id: str, today: date) -> set[tuple[str, str]]:
        """(memo, date) of derived entries that survived the purge."""
        if self.purge_scope == PurgeScope.ALL_YEARS:
            return set()
        rows = self.store.query(
            "transactions",
            RecordFilter(equals={"user_id": user_id}, like={"memo": derived_memo_pattern()}),
        )
        return {(row["memo"], str(row["entry_date"])[:10]) for row in rows}
