"""
Loyalty API: balance, recent ledger events, redemption.

Paid consumers (or allow-listed admins) only.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator

from marketplace.api.deps import require_subscribed_consumer
from marketplace.core.auth import Identity, get_current_identity
from marketplace.features.loyalty.ledger import get_loyalty_account, get_loyalty_events, redeem_points
from marketplace.features.loyalty.rules import points_to_cents
from marketplace.models.access import ConsumerAccessStatus
from marketplace.models.loyalty import LoyaltyAccount, LoyaltyEvent

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


class LoyaltyResponse(BaseModel):
    account: LoyaltyAccount
    events: List[LoyaltyEvent]
    value_cents: int


class RedeemRequest(BaseModel):
    points: int = Field(gt=0)
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def _trim(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class RedeemResponse(BaseModel):
    account: LoyaltyAccount
    redeemed_points: int
    redeemed_value_cents: int


@router.get("", response_model=LoyaltyResponse)
def loyalty_summary(
    limit: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(get_current_identity),
    access: ConsumerAccessStatus = Depends(require_subscribed_consumer),
):
    account = get_loyalty_account(identity.user_id)
    return LoyaltyResponse(
        account=account,
        events=get_loyalty_events(identity.user_id, limit=limit),
        value_cents=points_to_cents(account.points_balance),
    )


@router.post("/redeem", response_model=RedeemResponse)
def redeem(
    body: RedeemRequest,
    identity: Identity = Depends(get_current_identity),
    access: ConsumerAccessStatus = Depends(require_subscribed_consumer),
):
    account = redeem_points(identity.user_id, body.points, reason=body.reason or "redeem")
    return RedeemResponse(
        account=account,
        redeemed_points=body.points,
        redeemed_value_cents=points_to_cents(body.points),
    )
