"""Loan models."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from loan_ledger.exceptions import LoanValidationError
from loan_ledger.models.enums import RepaymentType
from loan_ledger.schedule.dates import clamp_due_day, parse_date
from loan_ledger.serialization import to_datetime, to_decimal, to_row

REQUIRED_TERMS = ("name", "principal", "interest_rate", "term_months", "start_date", "account_id")


@dataclass
class LoanTerms:
    """Contract terms a user supplies when creating or editing a loan."""

    name: str
    principal: Decimal
    interest_rate: Decimal  # Annual percent (e.g. 4.5 for 4.5%)
    term_months: int
    start_date: date
    account_id: str
    monthly_due_day: int = 1
    category_id: str | None = None
    repayment_type: RepaymentType = RepaymentType.AMORTIZED

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LoanTerms":
        """Build validated terms from raw request-style values.

        Raises
        ------
        LoanValidationError
            If a required field is missing or a value is out of range.
        """
        missing = [key for key in REQUIRED_TERMS if data.get(key) in (None, "")]
        if missing:
            raise LoanValidationError(f"Missing required loan fields: {', '.join(missing)}")

        terms = cls(
            name=str(data["name"]).strip(),
            principal=parse_amount(data["principal"], "principal"),
            interest_rate=parse_amount(data["interest_rate"], "interest_rate"),
            term_months=_parse_int(data["term_months"], "term_months"),
            start_date=_parse_start_date(data["start_date"]),
            account_id=str(data["account_id"]),
            monthly_due_day=clamp_due_day(_parse_int(data.get("monthly_due_day") or 1, "monthly_due_day")),
            category_id=data.get("category_id") or None,
            repayment_type=parse_repayment_type(data.get("repayment_type")),
        )
        terms.validate()
        return terms

    def validate(self) -> None:
        """Check value ranges; raise ``LoanValidationError`` on the first violation."""
        if not self.name:
            raise LoanValidationError("Loan name must not be empty")
        if self.principal <= 0:
            raise LoanValidationError(f"Principal must be positive, got {self.principal}")
        if self.interest_rate < 0:
            raise LoanValidationError(f"Interest rate must not be negative, got {self.interest_rate}")
        if self.term_months < 1:
            raise LoanValidationError(f"Term must be at least one month, got {self.term_months}")


@dataclass
class Loan:
    """Loan contract with engine-owned running state."""

    loan_id: str
    user_id: str
    name: str
    principal: Decimal
    interest_rate: Decimal  # Annual percent
    term_months: int
    start_date: date
    monthly_due_day: int  # 1..28
    account_id: str | None
    category_id: str | None
    repayment_type: RepaymentType

    # Engine-owned state
    remaining_principal: Decimal
    monthly_payment: Decimal  # Snapshot of the installment currently due
    paid_months: int = 0
    next_due_date: date | None = None
    settled_at: date | None = None
    created_at: datetime | None = None

    @property
    def is_settled(self) -> bool:
        return self.settled_at is not None

    @property
    def is_paid_off(self) -> bool:
        return self.paid_months >= self.term_months

    def terms(self) -> LoanTerms:
        """Return the contract terms of this loan."""
        return LoanTerms(
            name=self.name,
            principal=self.principal,
            interest_rate=self.interest_rate,
            term_months=self.term_months,
            start_date=self.start_date,
            account_id=self.account_id,
            monthly_due_day=self.monthly_due_day,
            category_id=self.category_id,
            repayment_type=self.repayment_type,
        )

    def with_state(
        self,
        remaining_principal: Decimal,
        paid_months: int,
        next_due_date: date | None,
        monthly_payment: Decimal,
    ) -> "Loan":
        """Return a copy carrying new engine-owned state."""
        return replace(
            self,
            remaining_principal=remaining_principal,
            paid_months=paid_months,
            next_due_date=next_due_date,
            monthly_payment=monthly_payment,
        )

    def to_row(self) -> dict[str, Any]:
        return to_row(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Loan":
        """Build a loan from a stored row."""
        return cls(
            loan_id=row["loan_id"],
            user_id=row["user_id"],
            name=row["name"],
            principal=to_decimal(row["principal"]),
            interest_rate=to_decimal(row["interest_rate"]),
            term_months=int(row["term_months"]),
            start_date=parse_date(row["start_date"]),
            monthly_due_day=int(row["monthly_due_day"] or 1),
            account_id=row.get("account_id"),
            category_id=row.get("category_id"),
            repayment_type=RepaymentType(row.get("repayment_type") or RepaymentType.AMORTIZED),
            remaining_principal=to_decimal(
                row["remaining_principal"] if row.get("remaining_principal") is not None else row["principal"]
            ),
            monthly_payment=to_decimal(row.get("monthly_payment") or 0),
            paid_months=int(row.get("paid_months") or 0),
            next_due_date=parse_date(row.get("next_due_date")),
            settled_at=parse_date(row.get("settled_at")),
            created_at=to_datetime(row.get("created_at")),
        )


@dataclass
class LoanView:
    """Loan joined with display-only directory names."""

    loan: Loan
    account_name: str | None = None
    category_name: str | None = None
    category_color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = self.loan.to_row()
        data.update(
            account_name=self.account_name,
            category_name=self.category_name,
            category_color=self.category_color,
        )
        return data


@dataclass
class RegenerationReport:
    """Outcome of one regeneration run for a user."""

    user_id: str
    today: date
    loans_processed: int = 0
    entries_created: int = 0
    entries_purged: int = 0
    skipped_loan_ids: list[str] = field(default_factory=list)


def parse_repayment_type(value: Any) -> RepaymentType:
    """Parse a repayment policy; missing values default to amortized."""
    if value in (None, ""):
        return RepaymentType.AMORTIZED
    try:
        return RepaymentType(str(value).strip().lower())
    except ValueError:
        raise LoanValidationError(f"Unknown repayment type: {value!r}") from None


def parse_amount(value: Any, field_name: str) -> Decimal:
    try:
        amount = to_decimal(value)
    except (ValueError, InvalidOperation):
        raise LoanValidationError(f"{field_name} must be a number, got {value!r}") from None
    if not amount.is_finite():
        raise LoanValidationError(f"{field_name} must be a finite number, got {value!r}")
    return amount


def _parse_int(value: Any, field_name: str) -> int:
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise LoanValidationError(f"{field_name} must be a whole number, got {value!r}") from None
    if not number.is_finite() or number != number.to_integral_value():
        raise LoanValidationError(f"{field_name} must be a whole number, got {value!r}")
    return int(number)


def _parse_start_date(value: Any) -> date:
    try:
        return parse_date(value)
    except ValueError:
        raise LoanValidationError(f"start_date must be YYYY-MM-DD, got {value!r}") from None
