"""Loan operations exposed to callers.

Every operation takes the owning ``user_id`` explicitly; rows belonging to
another user are reported as not found.
"""

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

from loan_ledger.config import LedgerConfig
from loan_ledger.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    LoanValidationError,
    ReferentialIntegrityError,
)
from loan_ledger.models import Loan, LoanTerms, LoanView, Transaction, TransactionType
from loan_ledger.models.ledger import payoff_memo, payoff_memo_pattern
from loan_ledger.models.loan import parse_amount
from loan_ledger.schedule.dates import clamp_due_day, first_due_date, parse_date
from loan_ledger.schedule.materializer import ScheduleMaterializer, balance_as_of
from loan_ledger.schedule.rebase import rebase_remaining_principal, rebuild_next_due_date
from loan_ledger.schedule.splitter import installment_amount
from loan_ledger.store.base import RecordFilter, RecordStore, where

logger = logging.getLogger(__name__)

EDITABLE_TERMS = (
    "name",
    "principal",
    "interest_rate",
    "term_months",
    "start_date",
    "monthly_due_day",
    "account_id",
    "category_id",
    "repayment_type",
)


class LoanService:
    """Create, edit, settle, delete and list loans.

    Parameters
    ----------
    store : RecordStore
        Store holding loans, transactions, accounts and categories.
    materializer : ScheduleMaterializer | None
        Regeneration engine; built on ``store`` when omitted.
    config : LedgerConfig | None
        Used for the purge scope when the materializer is built here.
    """

    def __init__(
        self,
        store: RecordStore,
        materializer: ScheduleMaterializer | None = None,
        config: LedgerConfig | None = None,
    ) -> None:
        config = config or LedgerConfig()
        self.store = store
        self.materializer = materializer or ScheduleMaterializer(store, purge_scope=config.purge_scope)

    def list_loans(self, user_id: str, today: date | None = None) -> list[LoanView]:
        """Regenerate the user's ledger, then return loans newest first."""
        self.materializer.regenerate(user_id, today)
        rows = self.store.query("loans", where(user_id=user_id), order_by=("-created_at", "loan_id"))
        accounts = self._directory("accounts", user_id)
        categories = self._directory("categories", user_id)

        views = []
        for row in rows:
            loan = Loan.from_row(row)
            account = accounts.get(loan.account_id) or {}
            category = categories.get(loan.category_id) or {}
            views.append(
                LoanView(
                    loan=loan,
                    account_name=account.get("name"),
                    category_name=category.get("name"),
                    category_color=category.get("color"),
                )
            )
        return views

    def get_loan(self, user_id: str, loan_id: str) -> Loan:
        """Return the user's loan.

        Raises
        ------
        EntityNotFoundError
            If the loan does not exist or belongs to another user.
        """
        rows = self.store.query("loans", where(loan_id=loan_id, user_id=user_id))
        if not rows:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        return Loan.from_row(rows[0])

    def create_loan(
        self,
        user_id: str,
        terms: LoanTerms | Mapping[str, Any],
        loan_id: str | None = None,
    ) -> Loan:
        """Create a loan with its initial installment and first due date."""
        if not isinstance(terms, LoanTerms):
            terms = LoanTerms.from_mapping(terms)
        terms.validate()
        terms = replace(terms, monthly_due_day=clamp_due_day(terms.monthly_due_day))
        self._check_references(user_id, terms)

        loan = Loan(
            loan_id=loan_id or str(uuid.uuid4()),
            user_id=user_id,
            name=terms.name,
            principal=terms.principal,
            interest_rate=terms.interest_rate,
            term_months=terms.term_months,
            start_date=terms.start_date,
            monthly_due_day=terms.monthly_due_day,
            account_id=terms.account_id,
            category_id=terms.category_id,
            repayment_type=terms.repayment_type,
            remaining_principal=terms.principal,
            monthly_payment=installment_amount(
                terms.repayment_type,
                terms.principal,
                terms.principal,
                terms.interest_rate,
                terms.term_months,
            ),
            paid_months=0,
            next_due_date=first_due_date(terms.start_date, terms.monthly_due_day),
            created_at=datetime.now(),
        )
        self.store.insert("loans", loan.to_row())
        logger.info("Created loan %s", loan.loan_id, extra={"user_id": user_id, "loan_id": loan.loan_id})
        return loan

    def update_loan(self, user_id: str, loan_id: str, changes: Mapping[str, Any]) -> Loan:
        """Apply a partial edit of contract terms.

        The next due date is rebuilt by replaying the paid periods from the
        new start date, the remaining balance is rebased (see
        ``rebase_remaining_principal``) and any settlement is cleared.
        Engine-owned fields in ``changes`` are ignored.
        """
        existing = self.get_loan(user_id, loan_id)

        merged = {key: getattr(existing, key) for key in EDITABLE_TERMS}
        merged.update({key: value for key, value in changes.items() if key in EDITABLE_TERMS})
        if "category_id" in changes and not changes["category_id"]:
            merged["category_id"] = None
        terms = LoanTerms.from_mapping(_raw_terms(merged))
        self._check_references(user_id, terms)

        paid_months = min(existing.paid_months, terms.term_months)
        remaining = rebase_remaining_principal(
            terms.repayment_type,
            existing.principal,
            existing.remaining_principal,
            terms.principal,
            existing.paid_months,
            existing.term_months,
        )
        updated = replace(
            existing,
            name=terms.name,
            principal=terms.principal,
            interest_rate=terms.interest_rate,
            term_months=terms.term_months,
            start_date=terms.start_date,
            monthly_due_day=terms.monthly_due_day,
            account_id=terms.account_id,
            category_id=terms.category_id,
            repayment_type=terms.repayment_type,
            remaining_principal=remaining,
            paid_months=paid_months,
            next_due_date=rebuild_next_due_date(
                terms.start_date, terms.monthly_due_day, paid_months, terms.term_months
            ),
            monthly_payment=installment_amount(
                terms.repayment_type,
                terms.principal,
                remaining,
                terms.interest_rate,
                terms.term_months,
                paid_months,
            ),
            settled_at=None,
        )
        self.store.insert("loans", updated.to_row())
        logger.info("Updated loan %s", loan_id, extra={"user_id": user_id, "loan_id": loan_id})
        return updated

    def settle_loan(
        self,
        user_id: str,
        loan_id: str,
        settled_at: date | str | None,
        today: date | None = None,
        account_id: str | None = None,
        amount: Decimal | str | int | None = None,
    ) -> Loan:
        """Mark a loan paid off early as of ``settled_at``.

        Writes one payoff entry (replacing an earlier payoff entry of the
        same loan), stores the settlement date and regenerates the user's
        ledger so the settlement override takes effect.

        Parameters
        ----------
        user_id : str
            Owner of the loan.
        loan_id : str
            Loan to settle.
        settled_at : date | str | None
            Settlement date.
        today : date | None
            Clock used for regeneration.
        account_id : str | None
            Account the payoff is drawn from; defaults to the loan's account.
        amount : Decimal | str | int | None
            Payoff amount; defaults to the balance outstanding on the
            settlement date and may not be lower than it.

        Raises
        ------
        InvalidEntityStateError
            If no settlement date is given.
        LoanValidationError
            If the settlement date or amount is malformed, or the amount
            does not cover the outstanding balance.
        EntityNotFoundError
            If the loan or the payoff account does not exist for the user.
        """
        if settled_at in (None, ""):
            raise InvalidEntityStateError("settled_at is required to settle a loan")
        try:
            settled_on = parse_date(settled_at)
        except ValueError:
            raise LoanValidationError(f"settled_at must be YYYY-MM-DD, got {settled_at!r}") from None

        loan = self.get_loan(user_id, loan_id)
        pay_account = account_id or loan.account_id
        if account_id:
            self._check_account(user_id, account_id)

        balance = balance_as_of(loan, settled_on)
        payoff_amount = balance if amount is None else parse_amount(amount, "amount")
        if payoff_amount < balance:
            raise LoanValidationError(f"Payoff amount {payoff_amount} is below the outstanding balance {balance}")

        with self.store.batch():
            self.store.delete(
                "transactions",
                RecordFilter(equals={"user_id": user_id}, like={"memo": payoff_memo_pattern(loan_id)}),
            )
            if payoff_amount > 0 and pay_account:
                payoff = Transaction(
                    transaction_id=str(uuid.uuid4()),
                    user_id=user_id,
                    transaction_type=TransactionType.EXPENSE,
                    amount=payoff_amount,
                    entry_date=settled_on,
                    account_id=pay_account,
                    category_id=loan.category_id,
                    memo=payoff_memo(loan_id, loan.name),
                    created_at=datetime.now(),
                )
                self.store.insert("transactions", payoff.to_row())
            self.store.update("loans", loan_id, {"settled_at": settled_on.isoformat()})
            self.materializer.regenerate(user_id, today)

        logger.info(
            "Settled loan %s on %s (payoff %s)",
            loan_id,
            settled_on,
            payoff_amount,
            extra={"user_id": user_id, "loan_id": loan_id},
        )
        return self.get_loan(user_id, loan_id)

    def delete_loan(self, user_id: str, loan_id: str) -> None:
        """Delete a loan. Its derived ledger entries are not removed here."""
        removed = self.store.delete("loans", where(loan_id=loan_id, user_id=user_id))
        if not removed:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        logger.info("Deleted loan %s", loan_id, extra={"user_id": user_id, "loan_id": loan_id})

    def _check_references(self, user_id: str, terms: LoanTerms) -> None:
        self._check_account(user_id, terms.account_id)
        if terms.category_id and not self.store.query(
            "categories", where(category_id=terms.category_id, user_id=user_id)
        ):
            raise ReferentialIntegrityError(f"Category {terms.category_id} not found")

    def _check_account(self, user_id: str, account_id: str) -> None:
        if not self.store.query("accounts", where(account_id=account_id, user_id=user_id)):
            raise ReferentialIntegrityError(f"Account {account_id} not found")

    def _directory(self, table: str, user_id: str) -> dict[str, dict[str, Any]]:
        key = "account_id" if table == "accounts" else "category_id"
        return {row[key]: row for row in self.store.query(table, where(user_id=user_id))}


def _raw_terms(merged: Mapping[str, Any]) -> dict[str, Any]:
    """Turn typed term values back into the raw form ``from_mapping`` parses."""
    raw = dict(merged)
    for key, value in merged.items():
        if isinstance(value, date):
            raw[key] = value.isoformat()
        elif hasattr(value, "value"):
            raw[key] = value.value
    return raw
