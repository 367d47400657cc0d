"""Models package - Import all models for SQLAlchemy registration."""
from tripledger.models.user import User
from tripledger.models.trip import Trip, TripMember, TripStatus
from tripledger.models.expense import (
    Expense, Involvement, Consent, ExpenseStatus, SplitType, ConsentStatus
)

__all__ = [
    "User",
    "Trip",
    "TripMember",
    "TripStatus",
    "Expense",
    "Involvement",
    "Consent",
    "ExpenseStatus",
    "SplitType",
    "ConsentStatus",
]
