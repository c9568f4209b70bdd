"""Ledger and directory models: transactions, accounts, categories."""

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

from loan_ledger.models.enums import AccountType, CategoryType, TransactionType
from loan_ledger.schedule.dates import parse_date
from loan_ledger.serialization import to_datetime, to_decimal, to_row
from loan_ledger.store.base import escape_like

# Memo tags. The loan id is kept inside the stored memo so entries of two
# loans sharing a name, account and date stay distinguishable.
DERIVED_MEMO_MARKER = "[loan-repayment"
PAYOFF_MEMO_MARKER = "[loan-payoff"

_LOAN_ID_TAG = re.compile(r"^\[(loan-repayment|loan-payoff):[^\]]+\]\s*")


def derived_memo(loan_id: str, loan_name: str, period: int, term_months: int) -> str:
    """Memo of the derived entry for one scheduled period."""
    return f"{DERIVED_MEMO_MARKER}:{loan_id}] {loan_name}:{period}/{term_months}"


def payoff_memo(loan_id: str, loan_name: str) -> str:
    """Memo of the payoff entry written on settlement."""
    return f"{PAYOFF_MEMO_MARKER}:{loan_id}] {loan_name}"


def derived_memo_pattern(loan_id: str | None = None) -> str:
    """SQL ``LIKE`` pattern matching derived entries (of one loan, if given)."""
    if loan_id is None:
        return f"{DERIVED_MEMO_MARKER}:%"
    return f"{DERIVED_MEMO_MARKER}:{escape_like(loan_id)}]%"


def payoff_memo_pattern(loan_id: str) -> str:
    return f"{PAYOFF_MEMO_MARKER}:{escape_like(loan_id)}]%"


def scrub_memo(memo: str | None) -> str | None:
    """Hide the internal loan id from a tagged memo for display."""
    if not memo:
        return memo
    return _LOAN_ID_TAG.sub(lambda m: f"[{m.group(1)}] ", memo, count=1)


@dataclass
class Transaction:
    """Ledger transaction, hand-entered or derived from a loan schedule."""

    transaction_id: str
    user_id: str
    transaction_type: TransactionType
    amount: Decimal
    entry_date: date
    account_id: str | None = None
    category_id: str | None = None
    memo: str | None = None
    created_at: datetime | None = None

    @property
    def is_derived(self) -> bool:
        return bool(self.memo) and self.memo.startswith(DERIVED_MEMO_MARKER + ":")

    def to_row(self) -> dict[str, Any]:
        return to_row(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Transaction":
        return cls(
            transaction_id=row["transaction_id"],
            user_id=row["user_id"],
            transaction_type=TransactionType(row["transaction_type"]),
            amount=to_decimal(row["amount"]),
            entry_date=parse_date(row["entry_date"]),
            account_id=row.get("account_id"),
            category_id=row.get("category_id"),
            memo=row.get("memo"),
            created_at=to_datetime(row.get("created_at")),
        )


@dataclass
class Account:
    """Account a loan debits."""

    account_id: str
    user_id: str
    name: str
    account_type: AccountType
    balance: Decimal = Decimal("0")
    color: str = "#6B7280"

    def to_row(self) -> dict[str, Any]:
        return to_row(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Account":
        return cls(
            account_id=row["account_id"],
            user_id=row["user_id"],
            name=row["name"],
            account_type=AccountType(row["account_type"]),
            balance=to_decimal(row.get("balance") or 0),
            color=row.get("color") or "#6B7280",
        )


@dataclass
class Category:
    """Income or expense category, optionally nested under a parent."""

    category_id: str
    user_id: str
    name: str
    category_type: CategoryType
    parent_id: str | None = None
    color: str = "#6B7280"

    def to_row(self) -> dict[str, Any]:
        return to_row(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Category":
        return cls(
            category_id=row["category_id"],
            user_id=row["user_id"],
            name=row["name"],
            category_type=CategoryType(row["category_type"]),
            parent_id=row.get("parent_id"),
            color=row.get("color") or "#6B7280",
        )
