"""Custom exception hierarchy for loan-ledger."""


class LoanLedgerError(Exception):
    """Base exception for all loan-ledger errors."""


class LoanValidationError(LoanLedgerError):
    """Raised when loan contract terms are missing or invalid."""


class EntityNotFoundError(LoanLedgerError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(LoanLedgerError):
    """Raised when an entity is in an invalid state for the operation."""


class ConfigurationError(LoanLedgerError):
    """Raised when configuration is invalid or missing."""


class StoreError(LoanLedgerError):
    """Raised when a record store operation fails."""
