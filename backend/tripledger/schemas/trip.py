"""
Pydantic schemas for Trip and membership entities.
"""
from pydantic import BaseModel, EmailStr
from typing import List, Optional
from datetime import datetime
from tripledger.models.trip import TripStatus


class TripBase(BaseModel):
    """Base trip schema."""
    name: str
    currency: Optional[str] = None  # Defaults to settings.DEFAULT_CURRENCY


class TripCreate(TripBase):
    """Schema for trip creation."""
    pass


class TripStatusUpdate(BaseModel):
    """Schema for moving a trip through its lifecycle."""
    status: TripStatus


class TripResponse(BaseModel):
    """Schema for trip response."""
    id: int
    name: str
    currency: str
    creator_id: int
    status: TripStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TripMemberResponse(BaseModel):
    """Schema for trip member response."""
    user_id: int
    name: str
    nickname: Optional[str] = None
    active: bool
    is_creator: bool


class TripDetailResponse(TripResponse):
    """Schema for detailed trip response with members."""
    members: List[TripMemberResponse] = []


class MemberAdd(BaseModel):
    """Schema for adding a member by id or email."""
    user_id: Optional[int] = None
    email: Optional[EmailStr] = None
    nickname: Optional[str] = None
