"""In-memory record store."""

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Sequence

from loan_ledger.exceptions import StoreError
from loan_ledger.store.base import TABLE_KEYS, RecordFilter, RecordStore, primary_key

logger = logging.getLogger(__name__)


@dataclass
class InMemoryRecordStore(RecordStore):
    """Dict-backed store with snapshot rollback for batches.

    Tables map primary key to row. Rows are copied on the way in and out so
    callers never alias stored state.
    """

    tables: dict[str, dict[str, dict[str, Any]]] = field(
        default_factory=lambda: {name: {} for name in TABLE_KEYS}
    )
    _batch_depth: int = 0

    def query(
        self,
        table: str,
        where: RecordFilter | None = None,
        order_by: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        """Return copies of matching rows, ordered by ``order_by``."""
        rows = [
            dict(row)
            for row in self._table(table).values()
            if where is None or where.matches(row)
        ]
        # Stable sorts applied from the least significant key
        for column in reversed(order_by):
            descending = column.startswith("-")
            name = column.lstrip("-")
            rows.sort(key=lambda row: _sort_key(row.get(name)), reverse=descending)
        return rows

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        """Insert or replace a row by primary key."""
        key = primary_key(table)
        if row.get(key) is None:
            raise StoreError(f"Row for {table} is missing primary key {key}")
        self._table(table)[row[key]] = dict(row)

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> None:
        """Update columns of an existing row."""
        rows = self._table(table)
        if record_id not in rows:
            raise StoreError(f"{table} row {record_id} not found")
        rows[record_id].update(values)

    def delete(self, table: str, where: RecordFilter) -> int:
        """Delete matching rows."""
        rows = self._table(table)
        doomed = [key for key, row in rows.items() if where.matches(row)]
        for key in doomed:
            del rows[key]
        return len(doomed)

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Run writes atomically; restore the snapshot if the block raises."""
        if self._batch_depth:
            self._batch_depth += 1
            try:
                yield
            finally:
                self._batch_depth -= 1
            return

        snapshot = copy.deepcopy(self.tables)
        self._batch_depth = 1
        try:
            yield
        except BaseException:
            self.tables = snapshot
            logger.debug("Batch rolled back")
            raise
        finally:
            self._batch_depth = 0

    def summary(self) -> dict[str, int]:
        """Return row counts per table."""
        return {name: len(rows) for name, rows in self.tables.items()}

    def _table(self, table: str) -> dict[str, dict[str, Any]]:
        primary_key(table)  # validates the name
        return self.tables.setdefault(table, {})


def _sort_key(value: Any) -> tuple[bool, Any]:
    # None sorts after every value in ascending order
    return (value is None, value if value is not None else 0)
