"""
marketplace/models/plan.py

Purchasable plans for the consumer and vendor families.

A plan is one (tier x billing interval) offering bound to a Stripe price id.
Plans are immutable; catalogs are rebuilt only on redeploy.
"""

from typing import Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


ConsumerTier = Literal["Starter", "Plus", "VIP"]
VendorTier = Literal["Starter", "Pro", "Enterprise"]
BillingCycle = Literal["monthly", "annual"]
BillingInterval = Literal["month", "year"]


class Plan(BaseModel):
    """Fields shared by every plan family."""
    model_config = ConfigDict(frozen=True)

    plan_key: str
    tier: str
    billing_cycle: BillingCycle
    billing_interval: BillingInterval
    price_id: str
    env_key: str
    display_name: str
    image_url: str
    image_alt: str


class ConsumerPlan(Plan):
    tier: ConsumerTier
    loyalty_multiplier: float = Field(ge=1.0)
    referral_reward_points: int = Field(ge=0)
    feature_summary: Tuple[str, ...] = ()


class VendorPlan(Plan):
    """
    Vendor plan.

    product_limit None means unlimited.
    """
    tier: VendorTier
    product_limit: Optional[int] = Field(default=None, ge=0)
    commission_percent: int = Field(ge=0, le=100)
    headline_price_text: str
    sub_price_note: Optional[str] = None
    commission_text: str
    product_limit_text: str
    included_bullets: Tuple[str, ...] = ()
    limitation_bullets: Tuple[str, ...] = ()


class ConsumerEntitlements(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier: ConsumerTier
    billing_cycle: BillingCycle
    loyalty_multiplier: float
    referral_reward_points: int


class VendorEntitlements(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier: VendorTier
    product_limit: Optional[int]
    commission_percent: int


class ProductLimitStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    reached: bool
    limit: Optional[int]
