"""Tests for the schedule materializer."""

from datetime import date
from decimal import Decimal

import pytest

from loan_ledger.exceptions import StoreError
from loan_ledger.models import Loan, PurgeScope, RepaymentType, Transaction, TransactionType
from loan_ledger.models.ledger import derived_memo
from loan_ledger.schedule.materializer import (
    ScheduleMaterializer,
    balance_as_of,
    derived_entry_id,
    plan_schedule,
    walk_schedule,
)
from loan_ledger.store import InMemoryRecordStore
from loan_ledger.store.base import RecordFilter


def make_loan(**overrides) -> Loan:
    """Build a loan with sensible defaults."""
    values = {
        "loan_id": "loan-test-001",
        "user_id": "user-test-001",
        "name": "Car",
        "principal": Decimal("1200000"),
        "interest_rate": Decimal("0"),
        "term_months": 12,
        "start_date": date(2024, 1, 10),
        "monthly_due_day": 25,
        "account_id": "acct-test-001",
        "category_id": "cat-test-001",
        "repayment_type": RepaymentType.AMORTIZED,
        "remaining_principal": Decimal("1200000"),
        "monthly_payment": Decimal("100000"),
    }
    values.update(overrides)
    return Loan(**values)


def derived_rows(store: InMemoryRecordStore, user_id: str) -> list[dict]:
    return store.query(
        "transactions",
        RecordFilter(equals={"user_id": user_id}, like={"memo": "[loan-repayment:%"}),
        order_by=("entry_date",),
    )


class TestPlanSchedule:
    """Test schedule planning for a single loan."""

    def test_elapsed_periods(self, today: date) -> None:
        plan = plan_schedule(make_loan(), today)

        assert [p.due_date for p in plan.periods] == [
            date(2024, 1, 25),
            date(2024, 2, 25),
            date(2024, 3, 25),
            date(2024, 4, 25),
            date(2024, 5, 25),
        ]
        assert plan.paid_months == 5
        assert plan.remaining_principal == Decimal("700000")
        assert plan.next_due_date == date(2024, 6, 25)
        assert plan.monthly_payment == Decimal("100000")
        assert not plan.settlement_applied

    def test_due_date_on_today_is_included(self) -> None:
        plan = plan_schedule(make_loan(), date(2024, 5, 25))
        assert plan.paid_months == 5

    def test_first_due_after_today_yields_nothing(self, today: date) -> None:
        plan = plan_schedule(make_loan(start_date=date(2024, 6, 20)), today)

        assert plan.periods == []
        assert plan.paid_months == 0
        assert plan.remaining_principal == Decimal("1200000")
        assert plan.next_due_date == date(2024, 6, 25)
        assert plan.ledger_entries() == []

    def test_full_term_elapsed(self) -> None:
        plan = plan_schedule(make_loan(), date(2026, 1, 1))

        assert plan.paid_months == 12
        assert plan.remaining_principal == Decimal("0")
        assert plan.next_due_date is None
        assert plan.monthly_payment == Decimal("0")

    def test_paid_months_within_term(self) -> None:
        for year in range(2024, 2027):
            plan = plan_schedule(make_loan(), date(year, 12, 31))
            assert 0 <= plan.paid_months <= 12
            assert (plan.next_due_date is None) == (plan.paid_months == 12)
            assert plan.remaining_principal >= 0

    def test_principal_equal_closes_to_zero(self) -> None:
        loan = make_loan(
            principal=Decimal("1000000"),
            term_months=10,
            start_date=date(2023, 1, 1),
            monthly_due_day=1,
            repayment_type=RepaymentType.PRINCIPAL_EQUAL,
        )
        plan = plan_schedule(loan, date(2024, 6, 15))

        assert [p.split.principal_portion for p in plan.periods[:9]] == [Decimal("100000")] * 9
        assert plan.paid_months == 10
        assert plan.remaining_principal == Decimal("0")

    def test_interest_only_balance_invariant(self, today: date) -> None:
        loan = make_loan(
            principal=Decimal("1000000"),
            interest_rate=Decimal("6"),
            term_months=24,
            repayment_type=RepaymentType.INTEREST_ONLY,
        )
        plan = plan_schedule(loan, today)

        assert plan.paid_months == 5
        assert plan.remaining_principal == Decimal("1000000")
        assert all(p.split.payment == Decimal("5000") for p in plan.periods)
        assert plan.monthly_payment == Decimal("5000")

    def test_due_day_clamped(self) -> None:
        plan = plan_schedule(make_loan(monthly_due_day=31, start_date=date(2024, 1, 1)), date(2024, 3, 31))
        assert [p.due_date for p in plan.periods] == [
            date(2024, 1, 28),
            date(2024, 2, 28),
            date(2024, 3, 28),
        ]

    def test_term_below_one_treated_as_one(self, today: date) -> None:
        plan = plan_schedule(make_loan(term_months=0), today)
        assert plan.paid_months == 1
        assert plan.next_due_date is None


class TestSettlement:
    """Test the settlement override."""

    def test_past_settlement_forces_paid_off(self, today: date) -> None:
        plan = plan_schedule(make_loan(settled_at=date(2024, 4, 1)), today)

        assert len(plan.periods) == 3
        assert plan.settlement_applied
        assert plan.remaining_principal == Decimal("0")
        assert plan.paid_months == 12
        assert plan.next_due_date is None
        assert plan.monthly_payment == Decimal("0")

    def test_settlement_on_today_applies(self) -> None:
        plan = plan_schedule(make_loan(settled_at=date(2024, 4, 1)), date(2024, 4, 1))
        assert plan.settlement_applied

    def test_future_settlement_not_applied_yet(self, today: date) -> None:
        plan = plan_schedule(make_loan(settled_at=date(2024, 9, 1)), today)

        assert not plan.settlement_applied
        assert plan.paid_months == 8
        assert plan.remaining_principal == Decimal("400000")

    def test_interest_only_settled_reaches_zero(self, today: date) -> None:
        loan = make_loan(
            interest_rate=Decimal("6"),
            repayment_type=RepaymentType.INTEREST_ONLY,
            settled_at=date(2024, 3, 1),
        )
        plan = plan_schedule(loan, today)
        assert plan.remaining_principal == Decimal("0")

    def test_balance_as_of(self) -> None:
        assert balance_as_of(make_loan(), date(2024, 4, 1)) == Decimal("900000")
        assert balance_as_of(make_loan(), date(2024, 1, 1)) == Decimal("1200000")

    def test_walk_ignores_settlement(self, today: date) -> None:
        plan = walk_schedule(make_loan(settled_at=date(2024, 4, 1)), today)
        assert plan.paid_months == 5


class TestLedgerEntries:
    """Test derived entry construction."""

    def test_entry_fields(self, today: date) -> None:
        entries = plan_schedule(make_loan(), today).ledger_entries()

        assert len(entries) == 5
        first = entries[0]
        assert first.transaction_type == TransactionType.EXPENSE
        assert first.amount == Decimal("100000")
        assert first.entry_date == date(2024, 1, 25)
        assert first.account_id == "acct-test-001"
        assert first.category_id == "cat-test-001"
        assert first.memo == "[loan-repayment:loan-test-001] Car:1/12"
        assert first.is_derived
        assert first.created_at is None

    def test_zero_payments_are_not_materialized(self, today: date) -> None:
        loan = make_loan(interest_rate=Decimal("0"), repayment_type=RepaymentType.INTEREST_ONLY)
        plan = plan_schedule(loan, today)
        assert plan.paid_months == 5
        assert plan.ledger_entries() == []

    def test_entry_ids_are_deterministic(self) -> None:
        assert derived_entry_id("loan-a", 1) == derived_entry_id("loan-a", 1)
        assert derived_entry_id("loan-a", 1) != derived_entry_id("loan-a", 2)
        assert derived_entry_id("loan-a", 1) != derived_entry_id("loan-b", 1)


class TestRegenerate:
    """Test purge-and-regenerate against a store."""

    @pytest.fixture
    def loan(self, store: InMemoryRecordStore) -> Loan:
        loan = make_loan()
        store.insert("loans", loan.to_row())
        return loan

    def test_materializes_entries_and_state(
        self, store: InMemoryRecordStore, loan: Loan, sample_user_id: str, today: date
    ) -> None:
        report = ScheduleMaterializer(store).regenerate(sample_user_id, today)

        assert report.loans_processed == 1
        assert report.entries_created == 5
        rows = derived_rows(store, sample_user_id)
        assert [row["entry_date"] for row in rows] == [
            "2024-01-25",
            "2024-02-25",
            "2024-03-25",
            "2024-04-25",
            "2024-05-25",
        ]
        stored = Loan.from_row(store.get("loans", loan.loan_id))
        assert stored.paid_months == 5
        assert stored.remaining_principal == Decimal("700000")
        assert stored.next_due_date == date(2024, 6, 25)
        assert stored.monthly_payment == Decimal("100000")

    def test_idempotent(self, store: InMemoryRecordStore, loan: Loan, sample_user_id: str, today: date) -> None:
        materializer = ScheduleMaterializer(store)
        materializer.regenerate(sample_user_id, today)
        first_entries = derived_rows(store, sample_user_id)
        first_loan = store.get("loans", loan.loan_id)

        materializer.regenerate(sample_user_id, today)

        assert derived_rows(store, sample_user_id) == first_entries
        assert store.get("loans", loan.loan_id) == first_loan

    def test_clock_advance_adds_periods(
        self, store: InMemoryRecordStore, loan: Loan, sample_user_id: str, today: date
    ) -> None:
        materializer = ScheduleMaterializer(store)
        materializer.regenerate(sample_user_id, today)
        materializer.regenerate(sample_user_id, date(2024, 8, 30))

        assert len(derived_rows(store, sample_user_id)) == 8

    def test_contract_edit_rewrites_entries(
        self, store: InMemoryRecordStore, loan: Loan, sample_user_id: str, today: date
    ) -> None:
        materializer = ScheduleMaterializer(store)
        materializer.regenerate(sample_user_id, today)
        store.update("loans", loan.loan_id, {"principal": Decimal("2400000")})
        materializer.regenerate(sample_user_id, today)

        rows = derived_rows(store, sample_user_id)
        assert len(rows) == 5
        assert {row["amount"] for row in rows} == {Decimal("200000")}

    def test_keeps_hand_entered_transactions(
        self, store: InMemoryRecordStore, loan: Loan, sample_user_id: str, today: date
    ) -> None:
        manual = Transaction(
            transaction_id="txn-manual",
            user_id=sample_user_id,
            transaction_type=TransactionType.EXPENSE,
            amount=Decimal("12000"),
            entry_date=date(2024, 5, 25),
            memo="[loan-repayment] paid by hand",
        )
        store.insert("transactions", manual.to_row())

        ScheduleMaterializer(store).regenerate(sample_user_id, today)
        ScheduleMaterializer(store).regenerate(sample_user_id, today)

        assert store.get("transactions", "txn-manual") is not None

    def test_other_users_untouched(self, store: InMemoryRecordStore, loan: Loan, today: date) -> None:
        other = make_loan(loan_id="loan-other", user_id="user-other")
        store.insert("loans", other.to_row())
        ScheduleMaterializer(store).regenerate("user-other", today)

        ScheduleMaterializer(store).regenerate("user-test-001", today)

        assert len(derived_rows(store, "user-other")) == 5
        assert len(derived_rows(store, "user-test-001")) == 5

    def test_unreadable_loan_is_skipped(
        self, store: InMemoryRecordStore, loan: Loan, sample_user_id: str, today: date
    ) -> None:
        broken = loan.to_row()
        broken.update(loan_id="loan-broken", start_date="not-a-date")
        store.insert("loans", broken)

        report = ScheduleMaterializer(store).regenerate(sample_user_id, today)

        assert report.skipped_loan_ids == ["loan-broken"]
        assert report.loans_processed == 1
        assert len(derived_rows(store, sample_user_id)) == 5

    def test_store_failure_rolls_back(
        self,
        store: InMemoryRecordStore,
        loan: Loan,
        sample_user_id: str,
        today: date,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        materializer = ScheduleMaterializer(store)
        materializer.regenerate(sample_user_id, today)
        before_entries = derived_rows(store, sample_user_id)
        before_loan = store.get("loans", loan.loan_id)

        original_insert = store.insert

        def failing_insert(table: str, row: dict) -> None:
            if table == "transactions":
                raise StoreError("disk full")
            original_insert(table, row)

        monkeypatch.setattr(store, "insert", failing_insert)

        with pytest.raises(StoreError, match="disk full"):
            materializer.regenerate(sample_user_id, date(2024, 8, 30))

        assert derived_rows(store, sample_user_id) == before_entries
        assert store.get("loans", loan.loan_id) == before_loan


class TestPurgeScope:
    """Test the configurable purge scope."""

    @pytest.fixture
    def loan(self, store: InMemoryRecordStore) -> Loan:
        loan = make_loan(start_date=date(2023, 10, 1), monthly_due_day=5)
        store.insert("loans", loan.to_row())
        return loan

    def test_all_years_purges_everything(
        self, store: InMemoryRecordStore, loan: Loan, sample_user_id: str
    ) -> None:
        materializer = ScheduleMaterializer(store, purge_scope=PurgeScope.ALL_YEARS)
        materializer.regenerate(sample_user_id, date(2024, 3, 10))
        report = materializer.regenerate(sample_user_id, date(2024, 3, 10))

        assert report.entries_purged == 6
        assert report.entries_created == 6
        assert len(derived_rows(store, sample_user_id)) == 6

    def test_current_year_keeps_prior_years(
        self, store: InMemoryRecordStore, loan: Loan, sample_user_id: str
    ) -> None:
        materializer = ScheduleMaterializer(store, purge_scope=PurgeScope.CURRENT_YEAR)
        first = materializer.regenerate(sample_user_id, date(2024, 3, 10))
        second = materializer.regenerate(sample_user_id, date(2024, 3, 10))

        assert first.entries_created == 6
        assert second.entries_purged == 3
        assert second.entries_created == 3
        rows = derived_rows(store, sample_user_id)
        assert len(rows) == 6
        assert len({(row["memo"], row["entry_date"]) for row in rows}) == 6

    def test_current_year_filter(self, store: InMemoryRecordStore, sample_user_id: str) -> None:
        materializer = ScheduleMaterializer(store, purge_scope=PurgeScope.CURRENT_YEAR)
        where = materializer.purge_filter(sample_user_id, date(2024, 3, 10))

        assert where.equals == {"user_id": sample_user_id}
        assert where.like == {"memo": "[loan-repayment:%", "entry_date": "2024-%"}

    def test_memo_format(self) -> None:
        assert derived_memo("loan-1", "Car", 3, 12) == "[loan-repayment:loan-1] Car:3/12"
