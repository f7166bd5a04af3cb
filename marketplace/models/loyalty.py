"""
marketplace/models/loyalty.py

Loyalty account and ledger events.

Invariant: lifetime_points_earned - lifetime_points_redeemed == points_balance.
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


LoyaltyEventType = Literal["purchase", "milestone", "referral", "subscription", "redeem", "adjustment"]


class LoyaltyAccount(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    points_balance: int = Field(default=0, ge=0)
    lifetime_points_earned: int = 0
    lifetime_points_redeemed: int = 0
    awarded_milestones: Tuple[int, ...] = ()


class LoyaltyEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    user_id: str
    event_type: LoyaltyEventType
    points_delta: int
    balance_after: int
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
