"""
Consent state machine for a single debtor's obligation.

    Required / Pre_Approved --debtor--> Approved | Disputed
    Disputed --payer--> Required (dispute rejected) | removed (see dispute_service)

Approved is terminal here. Debtors may only move their own consent, and only
along the edges above.
"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from tripledger.core.errors import (
    ConflictError, NotFoundError, PermissionDeniedError, ValidationError,
)
from tripledger.core.utils import utcnow
from tripledger.db.session import atomic
from tripledger.models.expense import Consent, ConsentStatus, Expense

logger = logging.getLogger(__name__)

DEBTOR_TRANSITIONS = {
    ConsentStatus.REQUIRED: {ConsentStatus.APPROVED, ConsentStatus.DISPUTED},
    ConsentStatus.PRE_APPROVED: {ConsentStatus.APPROVED, ConsentStatus.DISPUTED},
}

PENDING_STATUSES = (ConsentStatus.REQUIRED, ConsentStatus.PRE_APPROVED)


def parse_debtor_status(status) -> ConsentStatus:
    """Coerce a requested status; debtors may only approve or dispute."""
    try:
        status = ConsentStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown consent status: {status}")
    if status not in (ConsentStatus.APPROVED, ConsentStatus.DISPUTED):
        raise ValidationError("Consent can only be set to Approved or Disputed")
    return status


def get_consent(consent_id: int, db: Session) -> Consent:
    consent = db.query(Consent).filter(Consent.id == consent_id).first()
    if not consent:
        raise NotFoundError("Consent not found")
    return consent


def _apply(consent: Consent, status: ConsentStatus, reason: Optional[str]) -> None:
    allowed = DEBTOR_TRANSITIONS.get(consent.status, set())
    if status not in allowed:
        raise ConflictError(
            f"Consent is already {consent.status.value} and cannot become {status.value}"
        )
    consent.status = status
    consent.reason = reason or None
    consent.timestamp = utcnow()


def set_consent(
    consent_id: int,
    debtor_id: int,
    status,
    db: Session,
    reason: Optional[str] = None,
) -> Consent:
    """Approve or dispute a consent. Only the debtor who owns it may call this."""
    status = parse_debtor_status(status)

    with atomic(db):
        consent = db.query(Consent).filter(Consent.id == consent_id).with_for_update().first()
        if not consent:
            raise NotFoundError("Consent not found")
        if consent.debtor_user_id != debtor_id:
            logger.warning(f"User {debtor_id} tried to set consent {consent_id} owned by {consent.debtor_user_id}")
            raise PermissionDeniedError("Only the debtor can respond to this consent")
        _apply(consent, status, reason)
    db.refresh(consent)

    logger.info(f"Consent {consent_id} on expense {consent.expense_id} set to {status.value} by {debtor_id}")
    return consent


def raise_dispute(expense_id: int, debtor_id: int, db: Session, reason: Optional[str] = None) -> Consent:
    """Dispute the caller's own consent on an expense."""
    with atomic(db):
        if not db.query(Expense.id).filter(Expense.id == expense_id).first():
            raise NotFoundError("Expense not found")
        consent = db.query(Consent).filter(
            Consent.expense_id == expense_id,
            Consent.debtor_user_id == debtor_id
        ).with_for_update().first()
        if not consent:
            raise PermissionDeniedError("You are not a debtor on this expense")
        _apply(consent, ConsentStatus.DISPUTED, reason)
    db.refresh(consent)

    logger.info(f"User {debtor_id} disputed expense {expense_id}")
    return consent


def list_pending_consents(trip_id: int, debtor_id: int, db: Session) -> List[Consent]:
    """Consents still awaiting the debtor's answer in a trip, newest first."""
    return db.query(Consent).join(Expense).options(
        joinedload(Consent.expense).joinedload(Expense.payer)
    ).filter(
        Consent.debtor_user_id == debtor_id,
        Consent.status.in_(PENDING_STATUSES),
        Expense.trip_id == trip_id
    ).order_by(Consent.timestamp.desc(), Consent.id.desc()).all()
