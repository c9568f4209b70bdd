"""Demo data generators."""

from loan_ledger.generators.base import BaseGenerator
from loan_ledger.generators.demo import DemoLedger, DemoLedgerGenerator, seed_demo_ledger

__all__ = [
    "BaseGenerator",
    "DemoLedger",
    "DemoLedgerGenerator",
    "seed_demo_ledger",
]
