"""Row serialization shared by the record stores."""

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


def to_row(obj: Any) -> dict[str, Any]:
    """Convert a flat dataclass into a storage row.

    Uses ``dataclasses.fields()`` + ``getattr`` instead of ``asdict()``;
    the ledger models have no nested dataclass fields.
    """
    if not is_dataclass(obj):
        raise TypeError(f"Expected a dataclass instance, got {type(obj).__name__}")
    return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}


def serialize_value(value: Any) -> Any:
    """Serialize a value for storage.

    Dates become ``YYYY-MM-DD`` strings so that lexicographic order in the
    store matches chronological order. Decimals are kept as-is; the
    PostgreSQL driver adapts them to ``numeric``.
    """
    if isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored numeric value (Decimal, int, float or str) to Decimal."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None


def to_datetime(value: Any) -> datetime | None:
    """Parse a stored timestamp."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
