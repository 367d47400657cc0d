"""
Trip and membership routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from tripledger.db.session import get_db
from tripledger.models.user import User
from tripledger.models.trip import Trip, TripMember
from tripledger.schemas.trip import (
    TripCreate, TripResponse, TripDetailResponse, TripStatusUpdate,
    TripMemberResponse, MemberAdd,
)
from tripledger.api.dependencies import get_current_user
from tripledger.services import membership_service

router = APIRouter(prefix="/trips", tags=["trips"])


def _member_response(member: TripMember, trip: Trip) -> TripMemberResponse:
    return TripMemberResponse(
        user_id=member.user_id,
        name=member.user.name,
        nickname=member.nickname,
        active=member.active,
        is_creator=member.user_id == trip.creator_id
    )


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a new trip with the caller as its first member."""
    return membership_service.create_trip(
        trip_data.name, current_user.id, db, currency=trip_data.currency
    )


@router.get("", response_model=List[TripResponse])
async def list_trips(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List all trips for current user."""
    return membership_service.list_trips_for_user(current_user.id, db)


@router.get("/{trip_id}", response_model=TripDetailResponse)
async def get_trip(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get trip details with members."""
    trip = membership_service.check_trip_access(trip_id, current_user.id, db)
    members = membership_service.list_members(trip_id, db)

    return TripDetailResponse(
        **TripResponse.model_validate(trip).model_dump(),
        members=[_member_response(m, trip) for m in members]
    )


@router.patch("/{trip_id}/status", response_model=TripResponse)
async def update_trip_status(
    trip_id: int,
    update: TripStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Move the trip to Active, Settlement or Archived."""
    return membership_service.update_trip_status(trip_id, current_user.id, update.status, db)


@router.get("/{trip_id}/members", response_model=List[TripMemberResponse])
async def get_members(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get member list, including former members."""
    trip = membership_service.check_trip_access(trip_id, current_user.id, db)
    return [_member_response(m, trip) for m in membership_service.list_members(trip_id, db)]


@router.post("/{trip_id}/members", response_model=TripMemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    trip_id: int,
    member: MemberAdd,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add a user to the trip by id or email."""
    membership = membership_service.add_member(
        trip_id, current_user.id, db,
        user_id=member.user_id, email=member.email, nickname=member.nickname
    )
    return _member_response(membership, membership.trip)


@router.post("/{trip_id}/members/{user_id}/deactivate", response_model=TripMemberResponse)
async def deactivate_member(
    trip_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Leave the trip, or remove a member as its creator. Balance must be settled."""
    membership = membership_service.deactivate_membership(trip_id, user_id, current_user.id, db)
    return _member_response(membership, membership.trip)


@router.post("/{trip_id}/members/{user_id}/reactivate", response_model=TripMemberResponse)
async def reactivate_member(
    trip_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Bring a former member back into the trip."""
    membership = membership_service.reactivate_membership(trip_id, user_id, current_user.id, db)
    return _member_response(membership, membership.trip)
