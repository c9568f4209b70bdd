#!/usr/bin/env python3
"""Seed a demo user's ledger.

Creates accounts, categories and loan contracts for one user, then runs a
regeneration so the loans' past repayments appear in the ledger.

Targets PostgreSQL by default (connection taken from ``POSTGRES_*``
environment variables or ``--postgres-url``); ``--memory`` uses an
in-memory store and only prints the result.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_ledger.config import LedgerConfig
from loan_ledger.exceptions import LoanLedgerError
from loan_ledger.generators import seed_demo_ledger
from loan_ledger.logging import setup_logging
from loan_ledger.service import LoanService
from loan_ledger.store import InMemoryRecordStore

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    config = LedgerConfig.from_env()

    parser = argparse.ArgumentParser(description="Seed a demo loan ledger")
    parser.add_argument(
        "--user-id",
        type=str,
        default=config.default_user_id,
        help=f"Owner of the demo data (default: {config.default_user_id})",
    )
    parser.add_argument(
        "--loans",
        type=int,
        default=3,
        help="Number of loans to create (default: 3)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=config.seed if config.seed is not None else 42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=config.postgres.connection_string,
        help="PostgreSQL connection string",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create ledger tables before seeding",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Use an in-memory store instead of PostgreSQL",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Clock override for regeneration (YYYY-MM-DD)",
    )
    args = parser.parse_args()

    setup_logging(config.log_level, config.log_format)

    if args.memory:
        store = InMemoryRecordStore()
    else:
        from loan_ledger.store.postgres import PostgresRecordStore

        store = PostgresRecordStore(args.postgres_url)
        if args.create_tables:
            store.create_tables()

    service = LoanService(store, config=config)
    try:
        ledger = seed_demo_ledger(
            store,
            service,
            args.user_id,
            num_loans=args.loans,
            seed=args.seed,
            locale=config.demo_locale,
            today=args.today,
        )
        views = service.list_loans(args.user_id, today=args.today)
    except LoanLedgerError as exc:
        logger.error("Seeding failed: %s", exc)
        sys.exit(1)
    finally:
        if not args.memory:
            store.close()

    logger.info("=" * 60)
    logger.info("Seeded %d loans for %s", len(ledger.loans), args.user_id)
    logger.info("=" * 60)
    for view in views:
        loan = view.loan
        logger.info(
            "%-24s %-16s %3d/%-3d remaining %12s next due %s",
            loan.name,
            loan.repayment_type.value,
            loan.paid_months,
            loan.term_months,
            f"{loan.remaining_principal:,}",
            loan.next_due_date or "-",
        )


if __name__ == "__main__":
    main()
