"""
Affiliate API.
"""
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from marketplace.core.auth import Identity, get_current_identity
from marketplace.features.affiliates.service import calculate_affiliate_reward, ensure_affiliate
from marketplace.models.records import AffiliateRecord

router = APIRouter(prefix="/affiliates", tags=["affiliates"])


class AffiliateRequest(BaseModel):
    role: Literal["consumer", "vendor"]


class AffiliateRewardResponse(BaseModel):
    package_name: str
    reward_cents: int


@router.post("/me", response_model=AffiliateRecord)
def enroll_affiliate(body: AffiliateRequest, identity: Identity = Depends(get_current_identity)):
    """Return the caller's affiliate code, creating it on first call."""
    return ensure_affiliate(identity.user_id, body.role)


@router.get("/rewards/{package_name}", response_model=AffiliateRewardResponse)
def affiliate_reward(package_name: str):
    return AffiliateRewardResponse(
        package_name=package_name,
        reward_cents=calculate_affiliate_reward(package_name),
    )
