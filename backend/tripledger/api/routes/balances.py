"""
Balance routes. Always computed from the current ledger, never stored.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from tripledger.db.session import get_db
from tripledger.models.user import User
from tripledger.schemas.balance import (
    TripBalanceResponse, PeerBalanceResponse, SettlementPlanResponse, Transfer,
)
from tripledger.api.dependencies import get_current_user
from tripledger.services import balance_service
from tripledger.services.membership_service import check_trip_access

router = APIRouter(prefix="/trips", tags=["balances"])


@router.get("/{trip_id}/balances", response_model=List[TripBalanceResponse])
async def get_trip_balances(
    trip_id: int,
    approved_only: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Net balance of every member of the trip."""
    check_trip_access(trip_id, current_user.id, db)

    return [
        TripBalanceResponse(
            user_id=row.user_id,
            name=row.name,
            active=row.active,
            total_paid=row.balance.total_paid,
            total_lent=row.balance.total_lent,
            total_owed=row.balance.total_owed,
            net_balance=row.balance.net_balance
        )
        for row in balance_service.get_trip_balances(trip_id, db, approved_only=approved_only)
    ]


@router.get("/{trip_id}/balances/{user_a}/{user_b}", response_model=PeerBalanceResponse)
async def get_peer_balance(
    trip_id: int,
    user_a: int,
    user_b: int,
    approved_only: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Net between two members; positive means user_b owes user_a."""
    check_trip_access(trip_id, current_user.id, db)

    net = balance_service.get_peer_balance(trip_id, user_a, user_b, db, approved_only=approved_only)
    return PeerBalanceResponse(trip_id=trip_id, user_a=user_a, user_b=user_b, net_balance=net)


@router.get("/{trip_id}/settlement-plan", response_model=SettlementPlanResponse)
async def get_settlement_plan(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Suggested transfers that would bring every balance to zero."""
    trip = check_trip_access(trip_id, current_user.id, db)

    transfers = balance_service.get_settlement_plan(trip_id, db)
    return SettlementPlanResponse(
        trip_id=trip_id,
        currency=trip.currency,
        transfers=[
            Transfer(from_user_id=t.from_user_id, to_user_id=t.to_user_id, amount=t.amount)
            for t in transfers
        ]
    )
