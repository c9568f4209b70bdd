"""Record stores for ledger rows.

``PostgresRecordStore`` lives in ``loan_ledger.store.postgres`` so that
importing the engine does not require a database driver connection.
"""

from loan_ledger.store.base import TABLE_KEYS, RecordFilter, RecordStore, escape_like, where
from loan_ledger.store.memory import InMemoryRecordStore

__all__ = [
    "InMemoryRecordStore",
    "RecordFilter",
    "RecordStore",
    "TABLE_KEYS",
    "escape_like",
    "where",
]
