"""Pytest configuration and fixtures."""

from datetime import date

import pytest

from loan_ledger.models import Account, AccountType, Category, CategoryType
from loan_ledger.service import LoanService
from loan_ledger.store import InMemoryRecordStore


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def sample_user_id() -> str:
    """Sample user ID."""
    return "user-test-001"


@pytest.fixture
def sample_account_id() -> str:
    """Sample account ID."""
    return "acct-test-001"


@pytest.fixture
def sample_category_id() -> str:
    """Sample category ID."""
    return "cat-test-001"


@pytest.fixture
def today() -> date:
    """Fixed clock for regeneration."""
    return date(2024, 6, 15)


@pytest.fixture
def store(sample_user_id: str, sample_account_id: str, sample_category_id: str) -> InMemoryRecordStore:
    """In-memory store holding one account and one expense category."""
    store = InMemoryRecordStore()
    store.insert(
        "accounts",
        Account(
            account_id=sample_account_id,
            user_id=sample_user_id,
            name="주거래통장",
            account_type=AccountType.BANK,
        ).to_row(),
    )
    store.insert(
        "categories",
        Category(
            category_id=sample_category_id,
            user_id=sample_user_id,
            name="대출상환",
            category_type=CategoryType.EXPENSE,
            color="#3B82F6",
        ).to_row(),
    )
    return store


@pytest.fixture
def service(store: InMemoryRecordStore) -> LoanService:
    """Loan service over the sample store."""
    return LoanService(store)


@pytest.fixture
def loan_terms(sample_account_id: str, sample_category_id: str) -> dict:
    """Raw terms of a 1,200,000 interest-free amortized loan."""
    return {
        "name": "Car",
        "principal": "1200000",
        "interest_rate": "0",
        "term_months": 12,
        "start_date": "2024-01-10",
        "monthly_due_day": 25,
        "account_id": sample_account_id,
        "category_id": sample_category_id,
        "repayment_type": "amortized",
    }
