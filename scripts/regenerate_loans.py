#!/usr/bin/env python3
"""Regenerate loan repayments for a user.

Purges the user's derived repayment entries, rebuilds them from the loan
contracts as of ``--today`` and prints each loan's resulting state.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_ledger.config import LedgerConfig, parse_purge_scope
from loan_ledger.exceptions import LoanLedgerError
from loan_ledger.logging import setup_logging
from loan_ledger.models import Loan
from loan_ledger.schedule.materializer import ScheduleMaterializer
from loan_ledger.store.base import where
from loan_ledger.store.postgres import PostgresRecordStore

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    config = LedgerConfig.from_env()

    parser = argparse.ArgumentParser(description="Regenerate loan repayment entries")
    parser.add_argument(
        "--user-id",
        type=str,
        default=config.default_user_id,
        help=f"User to regenerate (default: {config.default_user_id})",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Clock override (YYYY-MM-DD, default: today)",
    )
    parser.add_argument(
        "--purge-scope",
        type=parse_purge_scope,
        default=config.purge_scope,
        help="Derived entries to purge: current_year or all_years",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=config.postgres.connection_string,
        help="PostgreSQL connection string",
    )
    args = parser.parse_args()

    setup_logging(config.log_level, config.log_format)

    store = PostgresRecordStore(args.postgres_url)
    try:
        report = ScheduleMaterializer(store, purge_scope=args.purge_scope).regenerate(args.user_id, args.today)
        loans = [
            Loan.from_row(row)
            for row in store.query("loans", where(user_id=args.user_id), order_by=("-created_at",))
        ]
    except LoanLedgerError as exc:
        logger.error("Regeneration failed: %s", exc)
        sys.exit(1)
    finally:
        store.close()

    logger.info("=" * 60)
    logger.info(
        "%s as of %s: %d loans, %d entries written, %d purged",
        report.user_id,
        report.today,
        report.loans_processed,
        report.entries_created,
        report.entries_purged,
    )
    if report.skipped_loan_ids:
        logger.warning("Skipped loans: %s", ", ".join(map(str, report.skipped_loan_ids)))
    logger.info("=" * 60)
    for loan in loans:
        status = "settled" if loan.is_settled else ("paid off" if loan.is_paid_off else "active")
        logger.info(
            "%-24s %-8s %3d/%-3d remaining %12s payment %10s next due %s",
            loan.name,
            status,
            loan.paid_months,
            loan.term_months,
            f"{loan.remaining_principal:,}",
            f"{loan.monthly_payment:,}",
            loan.next_due_date or "-",
        )


if __name__ == "__main__":
    main()
