"""Ledger domain models."""

from loan_ledger.models.enums import (
    AccountType,
    CategoryType,
    PurgeScope,
    RepaymentType,
    TransactionType,
)
from loan_ledger.models.ledger import Account, Category, Transaction
from loan_ledger.models.loan import Loan, LoanTerms, LoanView, RegenerationReport

__all__ = [
    "Account",
    "AccountType",
    "Category",
    "CategoryType",
    "Loan",
    "LoanTerms",
    "LoanView",
    "PurgeScope",
    "RegenerationReport",
    "RepaymentType",
    "Transaction",
    "TransactionType",
]
