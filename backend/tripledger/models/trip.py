"""
Trip and membership models.
"""
from sqlalchemy import Column, String, Boolean, Enum as SQLEnum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from tripledger.db.base import BaseModel
import enum


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    ACTIVE = "Active"
    SETTLEMENT = "Settlement"
    ARCHIVED = "Archived"


class Trip(BaseModel):
    """Trip model grouping members and their shared expenses."""
    __tablename__ = "trips"

    name = Column(String(200), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(SQLEnum(TripStatus), default=TripStatus.ACTIVE, nullable=False)

    # Relationships
    creator = relationship("User", foreign_keys=[creator_id])
    members = relationship("TripMember", back_populates="trip", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="trip", cascade="all, delete-orphan")


class TripMember(BaseModel):
    """Membership of a user in a trip. Deactivated, never deleted."""
    __tablename__ = "trip_members"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    nickname = Column(String(100), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    # Relationships
    trip = relationship("Trip", back_populates="members")
    user = relationship("User", back_populates="memberships")

    # Unique constraint: one membership per user per trip
    __table_args__ = (
        UniqueConstraint('trip_id', 'user_id', name='uq_trip_member'),
    )

    @property
    def display_name(self) -> str:
        return self.nickname or (self.user.name if self.user else "")
