"""
Dispute resolution, performed by the payer of the disputed expense.

Removing a debtor changes every remaining debtor's share, so the delete, the
share recomputation and the bulk update run in one transaction with the
expense row locked.
"""
import logging
from typing import List, Tuple
from sqlalchemy.orm import Session, joinedload
from tripledger.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from tripledger.core.utils import utcnow
from tripledger.db.session import atomic
from tripledger.models.expense import Consent, ConsentStatus, Expense, Involvement
from tripledger.services.splits import equal_share

logger = logging.getLogger(__name__)


def _load_disputed(consent_id: int, payer_id: int, db: Session) -> Tuple[Consent, Expense]:
    """
    Lock the consent's expense, then re-read the consent under that lock and
    check the caller may resolve it.
    """
    row = db.query(Consent.expense_id).filter(Consent.id == consent_id).first()
    if not row:
        raise NotFoundError("Consent not found")
    expense = db.query(Expense).filter(Expense.id == row.expense_id).with_for_update().first()
    if not expense:
        raise NotFoundError("Expense not found")
    # A concurrent resolution may have changed or removed it while we waited
    consent = db.query(Consent).filter(
        Consent.id == consent_id
    ).with_for_update().populate_existing().first()
    if not consent:
        raise NotFoundError("Consent not found")
    if expense.payer_id != payer_id:
        logger.warning(f"User {payer_id} tried to resolve consent {consent_id} on expense {expense.id}")
        raise PermissionDeniedError("Only the payer can resolve this dispute")
    if consent.status != ConsentStatus.DISPUTED:
        raise ConflictError(f"Consent is {consent.status.value}, not Disputed")
    return consent, expense


def remove_debtor(consent_id: int, payer_id: int, db: Session) -> Expense:
    """
    Accept a dispute: drop the debtor from the expense and spread the cost
    equally over the payer and the debtors that remain.

    When no debtor remains the expense becomes entirely the payer's own cost.
    """
    with atomic(db):
        consent, expense = _load_disputed(consent_id, payer_id, db)
        debtor_id = consent.debtor_user_id

        db.query(Involvement).filter(
            Involvement.expense_id == expense.id,
            Involvement.debtor_user_id == debtor_id
        ).delete(synchronize_session=False)
        db.delete(consent)
        db.flush()

        remaining = db.query(Involvement).filter(Involvement.expense_id == expense.id).count()
        if remaining:
            new_share = equal_share(expense.amount, remaining)
            db.query(Involvement).filter(
                Involvement.expense_id == expense.id
            ).update(
                {Involvement.share_amount: new_share, Involvement.updated_at: utcnow()},
                synchronize_session=False
            )
        expense_id = expense.id

    db.expire_all()
    logger.info(
        f"Removed debtor {debtor_id} from expense {expense_id}; "
        f"{remaining} debtors remain"
    )
    return expense


def reject_dispute(consent_id: int, payer_id: int, db: Session) -> Consent:
    """
    Reject a dispute: the consent goes back to Required with its reason
    cleared, the debt stays.
    """
    with atomic(db):
        consent, expense = _load_disputed(consent_id, payer_id, db)
        consent.status = ConsentStatus.REQUIRED
        consent.reason = None
        consent.timestamp = utcnow()
    db.refresh(consent)

    logger.info(f"Payer {payer_id} rejected dispute on consent {consent_id}")
    return consent


def list_disputes(trip_id: int, payer_id: int, db: Session) -> List[Consent]:
    """Disputed consents on expenses the payer paid in a trip."""
    return db.query(Consent).join(Expense).options(
        joinedload(Consent.expense),
        joinedload(Consent.debtor)
    ).filter(
        Consent.status == ConsentStatus.DISPUTED,
        Expense.trip_id == trip_id,
        Expense.payer_id == payer_id
    ).order_by(Consent.timestamp.desc(), Consent.id.desc()).all()
