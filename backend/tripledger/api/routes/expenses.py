"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from tripledger.db.session import get_db
from tripledger.models.user import User
from tripledger.models.expense import Expense
from tripledger.schemas.expense import (
    ExpenseCreate, ExpenseResponse, InvolvementResponse, DisputeCreate, ConsentResponse,
)
from tripledger.api.dependencies import get_current_user
from tripledger.services import consent_service, expense_service
from tripledger.services.membership_service import check_trip_access

router = APIRouter(tags=["expenses"])


def build_expense_response(expense: Expense) -> ExpenseResponse:
    """Flatten an expense with its involvements and their consents."""
    consents = {c.debtor_user_id: c for c in expense.consents}
    involvements = []
    for inv in sorted(expense.involvements, key=lambda i: i.debtor_user_id):
        consent = consents.get(inv.debtor_user_id)
        involvements.append(InvolvementResponse(
            debtor_user_id=inv.debtor_user_id,
            debtor_name=inv.debtor.name,
            share_amount=inv.share_amount,
            split_type=inv.split_type,
            consent_id=consent.id if consent else None,
            consent_status=consent.status if consent else None,
            reason=consent.reason if consent else None
        ))

    return ExpenseResponse(
        id=expense.id,
        trip_id=expense.trip_id,
        name=expense.name,
        amount=expense.amount,
        payer_id=expense.payer_id,
        payer_name=expense.payer.name,
        date_incurred=expense.date_incurred,
        status=expense.status,
        involvements=involvements,
        created_at=expense.created_at
    )


@router.post("/trips/{trip_id}/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    trip_id: int,
    expense_data: ExpenseCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record an expense split equally between the payer and the selected debtors."""
    check_trip_access(trip_id, current_user.id, db)

    payer_id = expense_data.payer_id or current_user.id
    expense = expense_service.create_expense(
        trip_id,
        payer_id,
        expense_data.name,
        expense_data.amount,
        expense_data.debtor_ids,
        db,
        date_incurred=expense_data.date_incurred
    )
    return build_expense_response(expense)


@router.get("/trips/{trip_id}/expenses", response_model=List[ExpenseResponse])
async def list_expenses(
    trip_id: int,
    mine: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List trip expenses, or only those the caller paid or owes on with ?mine=true."""
    check_trip_access(trip_id, current_user.id, db)

    if mine:
        expenses = expense_service.list_expenses_for_user(trip_id, current_user.id, db)
    else:
        expenses = expense_service.list_trip_expenses(trip_id, db)
    return [build_expense_response(e) for e in expenses]


@router.get("/expenses/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single expense with its debtors and consent states."""
    expense = expense_service.get_expense(expense_id, db)
    check_trip_access(expense.trip_id, current_user.id, db)
    return build_expense_response(expense)


@router.delete("/expenses/{expense_id}")
async def delete_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an expense and all its debts. Payer only."""
    expense_service.delete_expense(expense_id, current_user.id, db)
    return {"message": "Expense deleted successfully"}


@router.post("/expenses/{expense_id}/dispute", response_model=ConsentResponse)
async def dispute_expense(
    expense_id: int,
    dispute: DisputeCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Dispute the caller's share of an expense."""
    return consent_service.raise_dispute(expense_id, current_user.id, db, reason=dispute.reason)
