"""
Pydantic schemas for Expense, Involvement and Consent entities.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from tripledger.models.expense import ConsentStatus, ExpenseStatus, SplitType


class ExpenseCreate(BaseModel):
    """Schema for expense creation. The payer defaults to the caller."""
    name: str
    amount: Decimal
    payer_id: Optional[int] = None
    debtor_ids: List[int]
    date_incurred: Optional[datetime] = None


class InvolvementResponse(BaseModel):
    """One debtor's share of an expense with its consent state."""
    debtor_user_id: int
    debtor_name: str
    share_amount: Decimal
    split_type: SplitType
    consent_id: Optional[int] = None
    consent_status: Optional[ConsentStatus] = None
    reason: Optional[str] = None


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    trip_id: int
    name: str
    amount: Decimal
    payer_id: int
    payer_name: str
    date_incurred: datetime
    status: ExpenseStatus
    involvements: List[InvolvementResponse] = []
    created_at: datetime


class ConsentUpdate(BaseModel):
    """Schema for a debtor approving or disputing a consent."""
    status: ConsentStatus
    reason: Optional[str] = None


class DisputeCreate(BaseModel):
    """Schema for disputing by expense id."""
    reason: Optional[str] = None


class ConsentResponse(BaseModel):
    """Schema for consent response."""
    id: int
    expense_id: int
    debtor_user_id: int
    status: ConsentStatus
    reason: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class PendingConsentResponse(ConsentResponse):
    """A consent awaiting the debtor, with the expense it belongs to."""
    expense_name: str
    expense_amount: Decimal
    payer_id: int
    payer_name: str
    share_amount: Optional[Decimal] = None


class DisputeResponse(ConsentResponse):
    """A disputed consent awaiting the payer's decision."""
    expense_name: str
    expense_amount: Decimal
    debtor_name: str
