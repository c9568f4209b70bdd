"""Demo ledger generator: accounts, categories and loan contracts."""

import logging
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from loan_ledger.generators.base import BaseGenerator
from loan_ledger.models import (
    Account,
    AccountType,
    Category,
    CategoryType,
    Loan,
    LoanTerms,
    RepaymentType,
)
from loan_ledger.store.base import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class DemoLedger:
    """Generated demo entities for one user."""

    accounts: list[Account] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    loan_terms: list[LoanTerms] = field(default_factory=list)
    loans: list[Loan] = field(default_factory=list)


class DemoLedgerGenerator(BaseGenerator):
    """Generate a seeded demo ledger for a single user."""

    ACCOUNTS = [
        ("현금", AccountType.CASH, 100_000),
        ("주거래통장", AccountType.BANK, 2_500_000),
        ("저축통장", AccountType.BANK, 5_000_000),
        ("신용카드", AccountType.CARD, 0),
    ]

    # (name, type, parent name)
    CATEGORIES = [
        ("주거/생활", CategoryType.EXPENSE, None),
        ("대출상환", CategoryType.EXPENSE, "주거/생활"),
        ("월세/관리비", CategoryType.EXPENSE, "주거/생활"),
        ("교통/이동", CategoryType.EXPENSE, None),
        ("자동차", CategoryType.EXPENSE, "교통/이동"),
        ("급여", CategoryType.INCOME, None),
        ("부수입", CategoryType.INCOME, None),
    ]

    BANKS = ["국민", "신한", "우리", "하나", "농협", "카카오뱅크", "토스뱅크"]

    # Product: (principal range in units of 100,000, terms, annual rate range, repayment types)
    LOAN_PRODUCTS = {
        "신용대출": ((50, 500), [12, 24, 36, 60], (4.5, 9.0), [RepaymentType.AMORTIZED]),
        "전세자금대출": (
            (1000, 4000),
            [24],
            (3.0, 4.5),
            [RepaymentType.INTEREST_ONLY],
        ),
        "주택담보대출": (
            (1500, 5000),
            [120, 240, 360],
            (3.5, 5.0),
            [RepaymentType.AMORTIZED, RepaymentType.PRINCIPAL_EQUAL],
        ),
        "자동차할부": ((100, 600), [24, 36, 48, 60], (0.0, 6.5), [RepaymentType.AMORTIZED]),
        "학자금대출": ((30, 200), [60, 120], (1.7, 2.9), [RepaymentType.PRINCIPAL_EQUAL]),
    }

    def generate_accounts(self, user_id: str) -> list[Account]:
        """Generate the user's accounts."""
        return [
            Account(
                account_id=self.fake.uuid4(),
                user_id=user_id,
                name=name,
                account_type=account_type,
                balance=Decimal(balance),
                color=self.fake.hex_color().upper(),
            )
            for name, account_type, balance in self.ACCOUNTS
        ]

    def generate_categories(self, user_id: str) -> list[Category]:
        """Generate categories; parents precede their children."""
        categories: list[Category] = []
        ids_by_name: dict[str, str] = {}
        for name, category_type, parent in self.CATEGORIES:
            category = Category(
                category_id=self.fake.uuid4(),
                user_id=user_id,
                name=name,
                category_type=category_type,
                parent_id=ids_by_name.get(parent) if parent else None,
                color=self.fake.hex_color().upper(),
            )
            ids_by_name[name] = category.category_id
            categories.append(category)
        return categories

    def generate_loan_terms(
        self,
        accounts: list[Account],
        category: Category | None = None,
        today: date | None = None,
    ) -> LoanTerms:
        """Generate contract terms for one loan.

        Parameters
        ----------
        accounts : list[Account]
            Accounts the loan may debit; cash accounts are skipped.
        category : Category | None
            Expense category for the repayments.
        today : date | None
            Latest possible start date; starts fall within the prior three
            years.

        Returns
        -------
        LoanTerms
            Validated contract terms.
        """
        today = today or date.today()
        product = random.choice(list(self.LOAN_PRODUCTS))
        principal_range, terms, rate_range, repayment_types = self.LOAN_PRODUCTS[product]

        debit_accounts = [a for a in accounts if a.account_type != AccountType.CASH] or accounts
        start = self.fake.date_between(start_date=today - timedelta(days=3 * 365), end_date=today)

        return LoanTerms(
            name=f"{random.choice(self.BANKS)} {product}",
            principal=Decimal(random.randint(*principal_range) * 100_000),
            interest_rate=Decimal(str(round(random.uniform(*rate_range), 2))),
            term_months=random.choice(terms),
            start_date=start,
            account_id=random.choice(debit_accounts).account_id,
            monthly_due_day=random.randint(1, 28),
            category_id=category.category_id if category else None,
            repayment_type=random.choice(repayment_types),
        )

    def generate(self, user_id: str, num_loans: int = 3, today: date | None = None) -> DemoLedger:
        """Generate accounts, categories and loan terms for ``user_id``."""
        accounts = self.generate_accounts(user_id)
        categories = self.generate_categories(user_id)
        repayment_category = next(c for c in categories if c.name == "대출상환")

        return DemoLedger(
            accounts=accounts,
            categories=categories,
            loan_terms=[
                self.generate_loan_terms(accounts, repayment_category, today) for _ in range(num_loans)
            ],
        )


def seed_demo_ledger(
    store: RecordStore,
    service,
    user_id: str,
    num_loans: int = 3,
    seed: int | None = None,
    locale: str = "ko_KR",
    today: date | None = None,
) -> DemoLedger:
    """Generate a demo ledger and write it through ``store`` and ``service``.

    Accounts and categories are inserted directly; loans are created via
    ``service.create_loan`` so they get their initial installment and first
    due date.

    Parameters
    ----------
    store : RecordStore
        Target store.
    service : LoanService
        Loan service bound to ``store``.
    user_id : str
        Owner of the demo data.
    num_loans : int
        Number of loans to create.
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale.
    today : date | None
        Latest possible loan start date.

    Returns
    -------
    DemoLedger
        The generated entities, with ``loans`` filled in.
    """
    ledger = DemoLedgerGenerator(seed=seed, locale=locale).generate(user_id, num_loans, today)

    with store.batch():
        for account in ledger.accounts:
            store.insert("accounts", account.to_row())
        for category in ledger.categories:
            store.insert("categories", category.to_row())

    for terms in ledger.loan_terms:
        ledger.loans.append(service.create_loan(user_id, terms))

    logger.info(
        "Seeded demo ledger for %s: %d accounts, %d categories, %d loans",
        user_id,
        len(ledger.accounts),
        len(ledger.categories),
        len(ledger.loans),
        extra={"user_id": user_id},
    )
    return ledger
