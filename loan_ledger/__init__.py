"""Personal-finance ledger with loan schedule regeneration."""

__version__ = "0.1.0"
