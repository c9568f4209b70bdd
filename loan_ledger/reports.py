"""Read-side ledger reports.

Every report regenerates the user's loan-derived entries first so the
figures include every repayment due by ``today``.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any

from loan_ledger.config import LedgerConfig
from loan_ledger.models import TransactionType
from loan_ledger.models.ledger import scrub_memo
from loan_ledger.schedule.materializer import ScheduleMaterializer
from loan_ledger.serialization import to_decimal
from loan_ledger.store.base import RecordFilter, RecordStore, where

ZERO = Decimal("0")


class LedgerReports:
    """Transaction listing and monthly/yearly statistics for one store.

    Parameters
    ----------
    store : RecordStore
        Store holding the ledger.
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

    def list_transactions(
        self,
        user_id: str,
        month: str | None = None,
        transaction_type: TransactionType | str | None = None,
        category_id: str | None = None,
        today: date | None = None,
    ) -> list[dict[str, Any]]:
        """List transactions newest first, joined with directory names.

        Parameters
        ----------
        user_id : str
            Owner of the ledger.
        month : str | None
            ``YYYY-MM`` to restrict to one month.
        transaction_type : TransactionType | str | None
            Restrict to one type; ``"all"`` means no restriction.
        category_id : str | None
            Restrict to one category; ``"all"`` means no restriction.
        today : date | None
            Clock used for regeneration.

        Returns
        -------
        list[dict[str, Any]]
            Transaction rows with ``category_name``, ``category_color`` and
            ``account_name`` added and loan ids scrubbed from memos.
        """
        self.materializer.regenerate(user_id, today)

        equals: dict[str, Any] = {"user_id": user_id}
        if transaction_type and transaction_type != "all":
            equals["transaction_type"] = TransactionType(transaction_type).value
        if category_id and category_id != "all":
            equals["category_id"] = category_id
        like = {"entry_date": f"{month}-%"} if month else {}

        rows = self.store.query(
            "transactions",
            RecordFilter(equals=equals, like=like),
            order_by=("-entry_date", "-created_at"),
        )
        categories = self._categories(user_id)
        accounts = {row["account_id"]: row for row in self.store.query("accounts", where(user_id=user_id))}

        for row in rows:
            category = categories.get(row.get("category_id")) or {}
            row["category_name"] = category.get("name")
            row["category_color"] = category.get("color")
            row["account_name"] = (accounts.get(row.get("account_id")) or {}).get("name")
            row["memo"] = scrub_memo(row.get("memo"))
        return rows

    def monthly_stats(self, user_id: str, month: str | None = None, today: date | None = None) -> dict[str, Any]:
        """Income/expense summary, category breakdown and daily trend for a month."""
        self.materializer.regenerate(user_id, today)
        month = month or (today or date.today()).strftime("%Y-%m")
        rows = self._rows_like(user_id, f"{month}-%")
        categories = self._categories(user_id)

        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        by_category: dict[tuple[str | None, str], Decimal] = defaultdict(lambda: ZERO)
        daily: dict[tuple[str, str], Decimal] = defaultdict(lambda: ZERO)
        for row in rows:
            kind = row["transaction_type"]
            amount = to_decimal(row["amount"])
            totals[kind] += amount
            by_category[(row.get("category_id"), kind)] += amount
            daily[(str(row["entry_date"])[:10], kind)] += amount

        category_rows = [
            {
                "category_id": category_id,
                "category_name": (categories.get(category_id) or {}).get("name"),
                "category_color": (categories.get(category_id) or {}).get("color"),
                "transaction_type": kind,
                "total": total,
            }
            for (category_id, kind), total in by_category.items()
        ]
        category_rows.sort(key=lambda item: item["total"], reverse=True)

        income = totals[TransactionType.INCOME.value]
        expense = totals[TransactionType.EXPENSE.value]
        return {
            "month": month,
            "income": income,
            "expense": expense,
            "balance": income - expense,
            "transaction_count": len(rows),
            "by_category": category_rows,
            "daily_trend": [
                {"date": day, "transaction_type": kind, "total": total}
                for (day, kind), total in sorted(daily.items())
            ],
        }

    def yearly_stats(self, user_id: str, year: int | None = None, today: date | None = None) -> dict[str, Any]:
        """Per-month totals by transaction type for a calendar year."""
        self.materializer.regenerate(user_id, today)
        year = year or (today or date.today()).year

        monthly: dict[tuple[str, str], Decimal] = defaultdict(lambda: ZERO)
        for row in self._rows_like(user_id, f"{int(year):04d}-%"):
            monthly[(str(row["entry_date"])[:7], row["transaction_type"])] += to_decimal(row["amount"])

        return {
            "year": int(year),
            "monthly_trend": [
                {"month": month, "transaction_type": kind, "total": total}
                for (month, kind), total in sorted(monthly.items())
            ],
        }

    def _rows_like(self, user_id: str, date_pattern: str) -> list[dict[str, Any]]:
        return self.store.query(
            "transactions",
            RecordFilter(equals={"user_id": user_id}, like={"entry_date": date_pattern}),
        )

    def _categories(self, user_id: str) -> dict[str, dict[str, Any]]:
        return {row["category_id"]: row for row in self.store.query("categories", where(user_id=user_id))}
