"""
Trip and membership lifecycle.

Memberships are never deleted: leaving a trip flips ``active`` off, and only
once the member's trip-wide balance is settled.
"""
import logging
from typing import List, Optional, Set
from sqlalchemy.orm import Session, joinedload
from tripledger.core.config import settings
from tripledger.core.errors import (
    ConflictError, NotFoundError, OutstandingBalanceError,
    PermissionDeniedError, ValidationError,
)
from tripledger.db.session import atomic
from tripledger.models.trip import Trip, TripMember, TripStatus
from tripledger.services.balance_service import get_member_balance
from tripledger.services.user_service import get_user, get_user_by_email

logger = logging.getLogger(__name__)


def get_trip(trip_id: int, db: Session) -> Trip:
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def get_membership(trip_id: int, user_id: int, db: Session) -> Optional[TripMember]:
    return db.query(TripMember).filter(
        TripMember.trip_id == trip_id,
        TripMember.user_id == user_id
    ).first()


def check_trip_access(trip_id: int, user_id: int, db: Session) -> Trip:
    """Check that the user has (or had) a membership in the trip."""
    trip = get_trip(trip_id, db)
    if not get_membership(trip_id, user_id, db):
        raise PermissionDeniedError("Access denied to this trip")
    return trip


def get_active_member_ids(trip_id: int, db: Session) -> Set[int]:
    rows = db.query(TripMember.user_id).filter(
        TripMember.trip_id == trip_id,
        TripMember.active.is_(True)
    ).all()
    return {row[0] for row in rows}


def create_trip(name: str, creator_id: int, db: Session, currency: Optional[str] = None) -> Trip:
    """Create a trip and make its creator the first active member."""
    if not name or not name.strip():
        raise ValidationError("Trip name is required")
    currency = (currency or settings.DEFAULT_CURRENCY).strip().upper()
    if len(currency) != 3:
        raise ValidationError("Currency must be a 3-letter code")
    get_user(creator_id, db)

    with atomic(db):
        trip = Trip(name=name.strip(), currency=currency, creator_id=creator_id, status=TripStatus.ACTIVE)
        db.add(trip)
        db.flush()
        db.add(TripMember(trip_id=trip.id, user_id=creator_id, active=True))
    db.refresh(trip)

    logger.info(f"User {creator_id} created trip {trip.id}")
    return trip


def list_trips_for_user(user_id: int, db: Session) -> List[Trip]:
    return db.query(Trip).join(TripMember).filter(
        TripMember.user_id == user_id
    ).order_by(Trip.created_at.desc(), Trip.id.desc()).all()


def list_members(trip_id: int, db: Session) -> List[TripMember]:
    return db.query(TripMember).options(joinedload(TripMember.user)).filter(
        TripMember.trip_id == trip_id
    ).order_by(TripMember.id).all()


def update_trip_status(trip_id: int, caller_id: int, status, db: Session) -> Trip:
    """Move a trip between Active, Settlement and Archived. Creator only."""
    trip = get_trip(trip_id, db)
    if trip.creator_id != caller_id:
        logger.warning(f"User {caller_id} tried to change status of trip {trip_id}")
        raise PermissionDeniedError("Only the trip creator can change its status")
    try:
        status = TripStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown trip status: {status}")

    with atomic(db):
        trip.status = status
    db.refresh(trip)
    return trip


def add_member(
    trip_id: int,
    caller_id: int,
    db: Session,
    user_id: Optional[int] = None,
    email: Optional[str] = None,
    nickname: Optional[str] = None,
) -> TripMember:
    """
    Add a user to a trip by id or email.

    Re-adding a former member reactivates their existing membership so that
    their expense history keeps counting.
    """
    trip = get_trip(trip_id, db)
    if caller_id not in get_active_member_ids(trip_id, db):
        raise PermissionDeniedError("Only active members can add people to this trip")
    if trip.status == TripStatus.ARCHIVED:
        raise ConflictError("Trip is archived")

    if user_id is not None:
        user = get_user(user_id, db)
    elif email:
        user = get_user_by_email(email, db)
    else:
        raise ValidationError("Either user_id or email is required")

    membership = get_membership(trip_id, user.id, db)
    if membership and membership.active:
        raise ConflictError("User is already a member of this trip")

    with atomic(db):
        if membership:
            membership.active = True
            if nickname:
                membership.nickname = nickname
        else:
            membership = TripMember(trip_id=trip_id, user_id=user.id, nickname=nickname, active=True)
            db.add(membership)
    db.refresh(membership)

    logger.info(f"User {user.id} joined trip {trip_id} (added by {caller_id})")
    return membership


def _get_membership_or_404(trip_id: int, user_id: int, db: Session) -> TripMember:
    membership = get_membership(trip_id, user_id, db)
    if not membership:
        raise NotFoundError("Membership not found")
    return membership


def deactivate_membership(trip_id: int, user_id: int, caller_id: int, db: Session) -> TripMember:
    """
    Deactivate a member. Allowed for the member themself or the trip creator,
    and only when the member's trip-wide balance is within BALANCE_EPSILON.
    """
    trip = get_trip(trip_id, db)
    if caller_id != user_id and caller_id != trip.creator_id:
        raise PermissionDeniedError("Only the member or the trip creator can remove a member")
    membership = _get_membership_or_404(trip_id, user_id, db)
    if not membership.active:
        return membership

    balance = get_member_balance(trip_id, user_id, db)
    if abs(balance) > settings.BALANCE_EPSILON:
        logger.warning(f"Refused to deactivate user {user_id} in trip {trip_id}: balance {balance}")
        raise OutstandingBalanceError(
            f"Member has an outstanding balance of {balance:.2f}", balance=balance
        )

    with atomic(db):
        membership.active = False
    db.refresh(membership)

    logger.info(f"Deactivated user {user_id} in trip {trip_id}")
    return membership


def reactivate_membership(trip_id: int, user_id: int, caller_id: int, db: Session) -> TripMember:
    """Reactivate a former member. History is left untouched."""
    get_trip(trip_id, db)
    if caller_id not in get_active_member_ids(trip_id, db):
        raise PermissionDeniedError("Only active members can reactivate a member")
    membership = _get_membership_or_404(trip_id, user_id, db)
    if membership.active:
        return membership

    with atomic(db):
        membership.active = True
    db.refresh(membership)

    logger.info(f"Reactivated user {user_id} in trip {trip_id}")
    return membership
