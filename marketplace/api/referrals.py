"""
Referral API.

Eligibility is open to any signed-in user; minting a code needs a paid
consumer subscription (or admin) and is idempotent per user.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from marketplace.api.deps import consumer_resolver, require_subscribed_consumer, vendor_resolver
from marketplace.core.auth import Identity, get_current_identity
from marketplace.core.errors import PermissionError
from marketplace.features.access.service import ConsumerAccessResolver, VendorAccessResolver
from marketplace.features.referrals.service import (
    get_or_create_referral_code,
    get_referral_reward_points,
    is_referral_link_eligible,
)
from marketplace.models.access import ConsumerAccessStatus

router = APIRouter(prefix="/referrals", tags=["referrals"])


class EligibilityResponse(BaseModel):
    eligible: bool
    reward_points: int
    consumer_plan_key: Optional[str] = None


class ReferralCodeResponse(BaseModel):
    referral_code: str
    reward_points: int


def _eligible(identity: Identity, consumer: ConsumerAccessResolver, vendor: VendorAccessResolver):
    consumer_access = consumer.get_access_status(identity.user_id, identity.email)
    plan_key = consumer_access.plan_key if consumer_access.is_subscribed else None
    if consumer_access.is_admin:
        return True, plan_key
    vendor_access = vendor.get_access_status(identity.user_id, identity.email)
    eligible = is_referral_link_eligible(
        is_admin=False,
        consumer_plan_key=plan_key,
        is_vendor_subscribed=vendor_access.is_vendor and vendor_access.is_subscribed,
    )
    return eligible, plan_key


@router.get("/eligibility", response_model=EligibilityResponse)
def referral_eligibility(
    identity: Identity = Depends(get_current_identity),
    consumer: ConsumerAccessResolver = Depends(consumer_resolver),
    vendor: VendorAccessResolver = Depends(vendor_resolver),
):
    eligible, plan_key = _eligible(identity, consumer, vendor)
    return EligibilityResponse(
        eligible=eligible,
        reward_points=get_referral_reward_points(plan_key),
        consumer_plan_key=plan_key,
    )


@router.post("/create", response_model=ReferralCodeResponse)
def create_referral_code(
    identity: Identity = Depends(get_current_identity),
    access: ConsumerAccessStatus = Depends(require_subscribed_consumer),
    consumer: ConsumerAccessResolver = Depends(consumer_resolver),
    vendor: VendorAccessResolver = Depends(vendor_resolver),
):
    eligible, plan_key = _eligible(identity, consumer, vendor)
    if not eligible:
        raise PermissionError("Referral links are available to Starter members only")

    record = get_or_create_referral_code(identity.user_id, get_referral_reward_points(plan_key))
    return ReferralCodeResponse(referral_code=record.referral_code, reward_points=record.reward_points)
