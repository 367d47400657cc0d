"""
Expense, involvement and consent models.
"""
from sqlalchemy import (
    Column, String, Numeric, DateTime, Text, ForeignKey, Integer,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from tripledger.core.utils import utcnow
from tripledger.db.base import BaseModel
import enum


class ExpenseStatus(str, enum.Enum):
    """Expense status, assigned at creation."""
    PENDING = "Pending"
    APPROVED = "Approved"
    SETTLED = "Settled"


class SplitType(str, enum.Enum):
    """How a share was derived. Only EQUAL is produced today."""
    EQUAL = "Equal"
    CUSTOM = "Custom"
    PERCENTAGE = "Percentage"


class ConsentStatus(str, enum.Enum):
    """Debtor approval state for one involvement."""
    REQUIRED = "Required"
    PRE_APPROVED = "Pre_Approved"
    APPROVED = "Approved"
    DISPUTED = "Disputed"


class Expense(BaseModel):
    """A single payment event with one payer and a set of debtors."""
    __tablename__ = "expenses"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    payer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    date_incurred = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    status = Column(SQLEnum(ExpenseStatus), default=ExpenseStatus.APPROVED, nullable=False)

    # Relationships
    trip = relationship("Trip", back_populates="expenses")
    payer = relationship("User", foreign_keys=[payer_id], back_populates="expenses_paid")
    involvements = relationship("Involvement", back_populates="expense", cascade="all, delete-orphan")
    consents = relationship("Consent", back_populates="expense", cascade="all, delete-orphan")


class Involvement(BaseModel):
    """One debtor's owed share of one expense. Never exists for the payer."""
    __tablename__ = "involvements"

    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    debtor_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    share_amount = Column(Numeric(18, 6), nullable=False)
    split_type = Column(SQLEnum(SplitType), default=SplitType.EQUAL, nullable=False)

    # Relationships
    expense = relationship("Expense", back_populates="involvements")
    debtor = relationship("User", back_populates="involvements")

    __table_args__ = (
        UniqueConstraint('expense_id', 'debtor_user_id', name='uq_involvement_expense_debtor'),
    )


class Consent(BaseModel):
    """Debtor's approval or dispute of their involvement. One per involvement."""
    __tablename__ = "consents"

    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    debtor_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(SQLEnum(ConsentStatus), default=ConsentStatus.REQUIRED, nullable=False)
    reason = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    expense = relationship("Expense", back_populates="consents")
    debtor = relationship("User", back_populates="consents")

    __table_args__ = (
        UniqueConstraint('expense_id', 'debtor_user_id', name='uq_consent_expense_debtor'),
    )
