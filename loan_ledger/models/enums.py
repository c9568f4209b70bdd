"""Enumeration types for ledger entities."""

from enum import Enum


class RepaymentType(str, Enum):
    AMORTIZED = "amortized"
    INTEREST_ONLY = "interest_only"
    PRINCIPAL_EQUAL = "principal_equal"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class AccountType(str, Enum):
    CASH = "cash"
    BANK = "bank"
    CARD = "card"
    INVESTMENT = "investment"


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class PurgeScope(str, Enum):
    """Which derived ledger entries a regeneration removes before rebuilding."""

    CURRENT_YEAR = "current_year"
    ALL_YEARS = "all_years"
