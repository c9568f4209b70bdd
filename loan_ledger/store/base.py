"""Record store interface consumed by the ledger engine."""

import re
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from loan_ledger.exceptions import StoreError

# Primary key column of every table the ledger uses
TABLE_KEYS: dict[str, str] = {
    "accounts": "account_id",
    "categories": "category_id",
    "loans": "loan_id",
    "transactions": "transaction_id",
}


@dataclass(frozen=True)
class RecordFilter:
    """Conjunction of equality and SQL ``LIKE`` clauses.

    ``like`` patterns use ``%`` for any run of characters and ``_`` for a
    single character, as in SQL.
    """

    equals: Mapping[str, Any] = field(default_factory=dict)
    like: Mapping[str, str] = field(default_factory=dict)

    def matches(self, row: Mapping[str, Any]) -> bool:
        """Evaluate the filter against an in-memory row."""
        for column, expected in self.equals.items():
            if row.get(column) != expected:
                return False
        for column, pattern in self.like.items():
            value = row.get(column)
            if value is None or not like_to_regex(pattern).match(str(value)):
                return False
        return True


def where(**equals: Any) -> RecordFilter:
    """Shorthand for an equality-only filter."""
    return RecordFilter(equals=equals)


def escape_like(text: str) -> str:
    """Escape ``LIKE`` wildcards so ``text`` matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def like_to_regex(pattern: str) -> re.Pattern:
    """Translate a SQL ``LIKE`` pattern into an anchored regular expression.

    A backslash escapes the next character, as in PostgreSQL.
    """
    parts = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts) + r"\Z", re.DOTALL)


class RecordStore(ABC):
    """Abstract record store.

    Rows are plain dicts keyed by column name. Every table has a single
    primary-key column listed in ``TABLE_KEYS``.
    """

    @abstractmethod
    def query(
        self,
        table: str,
        where: RecordFilter | None = None,
        order_by: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        """Return rows matching ``where``.

        ``order_by`` entries are column names; a leading ``-`` sorts that
        column descending.
        """

    @abstractmethod
    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        """Insert a row, replacing any row with the same primary key."""

    @abstractmethod
    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> None:
        """Update columns of the row with the given primary key.

        Raises
        ------
        StoreError
            If no such row exists.
        """

    @abstractmethod
    def delete(self, table: str, where: RecordFilter) -> int:
        """Delete rows matching ``where`` and return how many were removed."""

    @abstractmethod
    def batch(self) -> AbstractContextManager[None]:
        """Context manager making every write inside it atomic.

        Batches may nest; only the outermost one commits.
        """

    def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        """Return the row with the given primary key, if any."""
        rows = self.query(table, RecordFilter(equals={primary_key(table): record_id}))
        return rows[0] if rows else None


def primary_key(table: str) -> str:
    """Primary key column of ``table``."""
    try:
        return TABLE_KEYS[table]
    except KeyError:
        raise StoreError(f"Unknown table: {table}") from None
