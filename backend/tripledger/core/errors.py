"""
Typed ledger errors.

Services raise these; the API layer maps each one to an HTTP status code.
"""
from typing import Any, Optional


class LedgerError(Exception):
    """Base class for all ledger errors."""
    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(LedgerError):
    """Bad or missing input (empty debtor list, payer in debtors, amount <= 0...)."""
    status_code = 422


class PermissionDeniedError(LedgerError):
    """Caller is not allowed to perform the operation."""
    status_code = 403


class NotFoundError(LedgerError):
    """Referenced trip, membership, expense or consent does not exist."""
    status_code = 404


class ConflictError(LedgerError):
    """Operation is not valid in the entity's current state."""
    status_code = 409


class OutstandingBalanceError(LedgerError):
    """Membership deactivation blocked by a non-zero balance."""
    status_code = 409

    def __init__(self, message: str, balance=None):
        super().__init__(message, details={"balance": str(balance)} if balance is not None else None)
        self.balance = balance


class PersistenceError(LedgerError):
    """Transaction failed and was rolled back."""
    status_code = 500
