"""
Consent and dispute routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from tripledger.db.session import get_db
from tripledger.models.user import User
from tripledger.models.expense import Involvement
from tripledger.schemas.expense import (
    ConsentUpdate, ConsentResponse, PendingConsentResponse, DisputeResponse, ExpenseResponse,
)
from tripledger.api.dependencies import get_current_user
from tripledger.api.routes.expenses import build_expense_response
from tripledger.services import consent_service, dispute_service, expense_service
from tripledger.services.membership_service import check_trip_access

router = APIRouter(tags=["consents"])


@router.get("/trips/{trip_id}/consents", response_model=List[PendingConsentResponse])
async def get_pending_consents(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Consents waiting for the caller to approve or dispute."""
    check_trip_access(trip_id, current_user.id, db)

    consents = consent_service.list_pending_consents(trip_id, current_user.id, db)
    shares = dict(
        db.query(Involvement.expense_id, Involvement.share_amount).filter(
            Involvement.debtor_user_id == current_user.id,
            Involvement.expense_id.in_([c.expense_id for c in consents])
        ).all()
    ) if consents else {}

    return [
        PendingConsentResponse(
            **ConsentResponse.model_validate(c).model_dump(),
            expense_name=c.expense.name,
            expense_amount=c.expense.amount,
            payer_id=c.expense.payer_id,
            payer_name=c.expense.payer.name,
            share_amount=shares.get(c.expense_id)
        )
        for c in consents
    ]


@router.put("/consents/{consent_id}", response_model=ConsentResponse)
async def set_consent(
    consent_id: int,
    update: ConsentUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Approve or dispute one of the caller's consents."""
    return consent_service.set_consent(
        consent_id, current_user.id, update.status, db, reason=update.reason
    )


@router.get("/trips/{trip_id}/disputes", response_model=List[DisputeResponse])
async def get_disputes(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Disputes raised against expenses the caller paid."""
    check_trip_access(trip_id, current_user.id, db)

    return [
        DisputeResponse(
            **ConsentResponse.model_validate(c).model_dump(),
            expense_name=c.expense.name,
            expense_amount=c.expense.amount,
            debtor_name=c.debtor.name
        )
        for c in dispute_service.list_disputes(trip_id, current_user.id, db)
    ]


@router.post("/consents/{consent_id}/remove-debtor", response_model=ExpenseResponse)
async def remove_debtor(
    consent_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Accept a dispute and drop the debtor; remaining shares are recomputed."""
    expense = dispute_service.remove_debtor(consent_id, current_user.id, db)
    return build_expense_response(expense_service.get_expense(expense.id, db))


@router.post("/consents/{consent_id}/reject-dispute", response_model=ConsentResponse)
async def reject_dispute(
    consent_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Reject a dispute; the debtor is asked to consent again."""
    return dispute_service.reject_dispute(consent_id, current_user.id, db)
