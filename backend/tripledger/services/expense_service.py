"""
Expense service: the ledger writer.

An expense, its involvements (debts) and their consents are written in one
transaction. Either all rows become visible or none do.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, joinedload
from tripledger.core.errors import (
    ConflictError, NotFoundError, PermissionDeniedError, ValidationError,
)
from tripledger.core.utils import quantize, utcnow
from tripledger.db.session import atomic
from tripledger.models.expense import (
    Consent, ConsentStatus, Expense, ExpenseStatus, Involvement, SplitType,
)
from tripledger.models.trip import Trip, TripStatus
from tripledger.services.membership_service import get_active_member_ids
from tripledger.services.splits import equal_share

logger = logging.getLogger(__name__)


def _parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
        if not value.is_finite() or value <= 0:
            raise ValidationError("Amount must be greater than zero")
        cents = quantize(value, 2)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid amount: {amount}")
    # Cents only; never round money the payer did not spend
    if cents != value:
        raise ValidationError("Amount can have at most 2 decimal places")
    return cents


def _validate_request(trip_id, payer_id, name: str, amount, debtor_ids) -> Decimal:
    if not trip_id:
        raise ValidationError("Trip is required")
    if not payer_id:
        raise ValidationError("Payer is required")
    if not name or not name.strip():
        raise ValidationError("Expense name is required")
    value = _parse_amount(amount)
    if not debtor_ids:
        raise ValidationError("Select at least one member to split with")
    if len(set(debtor_ids)) != len(debtor_ids):
        raise ValidationError("Debtor list contains duplicates")
    if payer_id in debtor_ids:
        raise ValidationError("The payer cannot also be a debtor")
    return value


def _build_involvements(expense_id: int, debtor_ids: Iterable[int], share: Decimal) -> List[Involvement]:
    return [
        Involvement(
            expense_id=expense_id,
            debtor_user_id=user_id,
            share_amount=share,
            split_type=SplitType.EQUAL
        )
        for user_id in debtor_ids
    ]


def _build_consents(expense_id: int, debtor_ids: Iterable[int]) -> List[Consent]:
    now = utcnow()
    return [
        Consent(
            expense_id=expense_id,
            debtor_user_id=user_id,
            status=ConsentStatus.REQUIRED,
            timestamp=now
        )
        for user_id in debtor_ids
    ]


def create_expense(
    trip_id: int,
    payer_id: int,
    name: str,
    amount,
    debtor_ids: List[int],
    db: Session,
    date_incurred: Optional[datetime] = None,
) -> Expense:
    """
    Create an expense split equally between the payer and the debtors.

    Each debtor gets an involvement of ``amount / (len(debtors) + 1)`` and a
    consent in the Required state. The payer's share is implicit.
    """
    amount = _validate_request(trip_id, payer_id, name, amount, debtor_ids)

    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError("Trip not found")
    if trip.status == TripStatus.ARCHIVED:
        raise ConflictError("Cannot add expenses to an archived trip")

    active_ids = get_active_member_ids(trip_id, db)
    if payer_id not in active_ids:
        raise ValidationError(f"Payer {payer_id} is not an active member of this trip")
    outsiders = [uid for uid in debtor_ids if uid not in active_ids]
    if outsiders:
        raise ValidationError(
            "Some debtors are not active members of this trip",
            details={"user_ids": outsiders}
        )

    share = equal_share(amount, len(debtor_ids))

    with atomic(db):
        expense = Expense(
            trip_id=trip_id,
            payer_id=payer_id,
            name=name.strip(),
            amount=amount,
            date_incurred=date_incurred or utcnow(),
            status=ExpenseStatus.APPROVED
        )
        db.add(expense)
        db.flush()

        db.add_all(_build_involvements(expense.id, debtor_ids, share))
        db.flush()

        db.add_all(_build_consents(expense.id, debtor_ids))
        db.flush()
        expense_id = expense.id

    logger.info(
        f"Created expense {expense_id} in trip {trip_id}: {amount} paid by {payer_id}, "
        f"{len(debtor_ids)} debtors at {share} each"
    )
    return get_expense(expense_id, db)


def get_expense(expense_id: int, db: Session) -> Expense:
    """Get an expense with its payer, involvements and consents."""
    expense = db.query(Expense).options(
        joinedload(Expense.payer),
        selectinload(Expense.involvements).joinedload(Involvement.debtor),
        selectinload(Expense.consents),
    ).filter(Expense.id == expense_id).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def list_trip_expenses(trip_id: int, db: Session) -> List[Expense]:
    """All expenses of a trip, newest first."""
    return db.query(Expense).options(
        joinedload(Expense.payer),
        selectinload(Expense.involvements).joinedload(Involvement.debtor),
        selectinload(Expense.consents),
    ).filter(
        Expense.trip_id == trip_id
    ).order_by(Expense.date_incurred.desc(), Expense.id.desc()).all()


def list_expenses_for_user(trip_id: int, user_id: int, db: Session) -> List[Expense]:
    """Expenses a user paid for or is a debtor on, newest first."""
    involved_ids = select(Involvement.expense_id).where(Involvement.debtor_user_id == user_id)
    return db.query(Expense).options(
        joinedload(Expense.payer),
        selectinload(Expense.involvements).joinedload(Involvement.debtor),
        selectinload(Expense.consents),
    ).filter(
        Expense.trip_id == trip_id,
        (Expense.payer_id == user_id) | (Expense.id.in_(involved_ids))
    ).order_by(Expense.date_incurred.desc(), Expense.id.desc()).all()


def delete_expense(expense_id: int, caller_id: int, db: Session) -> None:
    """Delete an expense with its involvements and consents. Payer only."""
    with atomic(db):
        expense = db.query(Expense).filter(Expense.id == expense_id).with_for_update().first()
        if not expense:
            raise NotFoundError("Expense not found")
        if expense.payer_id != caller_id:
            logger.warning(f"User {caller_id} tried to delete expense {expense_id} paid by {expense.payer_id}")
            raise PermissionDeniedError("Only the payer can delete this expense")
        db.delete(expense)

    logger.info(f"Deleted expense {expense_id}")
