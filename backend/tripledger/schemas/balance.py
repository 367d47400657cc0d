"""
Pydantic schemas for balances and settlement suggestions.
"""
from pydantic import BaseModel
from typing import List
from decimal import Decimal


class TripBalanceResponse(BaseModel):
    """Trip-wide position of one member (positive = lender, negative = debtor)."""
    user_id: int
    name: str
    active: bool
    total_paid: Decimal  # Gross amount of expenses this member paid
    total_lent: Decimal  # What others owe on those expenses
    total_owed: Decimal  # Sum of this member's own shares
    net_balance: Decimal


class PeerBalanceResponse(BaseModel):
    """Net between two members. Positive means user_b owes user_a."""
    trip_id: int
    user_a: int
    user_b: int
    net_balance: Decimal


class Transfer(BaseModel):
    """Schema for a single suggested transfer."""
    from_user_id: int
    to_user_id: int
    amount: Decimal


class SettlementPlanResponse(BaseModel):
    """Schema for suggested transfers that would zero every balance."""
    trip_id: int
    currency: str
    transfers: List[Transfer]
