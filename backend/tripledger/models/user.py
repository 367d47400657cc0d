"""
User model for caller identity and display names.
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from tripledger.db.base import BaseModel


class User(BaseModel):
    """User profile; credentials live with the external auth provider."""
    __tablename__ = "users"

    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False, index=True)
    phone = Column(String(20), unique=True, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    memberships = relationship("TripMember", back_populates="user")
    expenses_paid = relationship("Expense", foreign_keys="Expense.payer_id", back_populates="payer")
    involvements = relationship("Involvement", back_populates="debtor")
    consents = relationship("Consent", back_populates="debtor")
