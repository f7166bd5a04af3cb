"""
marketplace/models/records.py

Validated row shapes read from the relational store.

Decision functions only ever see these models; the store converts raw rows
with model_validate and reports malformed rows as DataStoreError.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", from_attributes=True)


class ProfileRecord(_Record):
    id: str
    role: Optional[str] = None
    is_admin: Optional[bool] = None
    consumer_onboarding_completed: Optional[bool] = None
    age_verified: Optional[bool] = None

    @property
    def has_admin_role(self) -> bool:
        return self.is_admin is True or self.role == "admin"


class ConsumerSubscriptionRecord(_Record):
    user_id: str
    subscription_status: Optional[str] = None
    consumer_plan_key: Optional[str] = None


class VendorRecord(_Record):
    id: str
    owner_user_id: str
    subscription_status: Optional[str] = None
    vendor_plan_key: Optional[str] = None
    vendor_onboarding_completed: Optional[bool] = None
    terms_accepted_at: Optional[datetime] = None
    compliance_acknowledged_at: Optional[datetime] = None


class VerificationRecord(_Record):
    id: str
    user_id: str
    status: str
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


class ReferralRecord(_Record):
    referrer_user_id: str
    referral_code: str
    reward_points: int = 0


class AffiliateRecord(_Record):
    user_id: str
    role: str
    affiliate_code: str
    reward_cents: int = 0
