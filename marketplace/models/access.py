"""
marketplace/models/access.py

Access status returned by the consumer and vendor resolvers.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict


class ConsumerAccessStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_subscribed: bool
    subscription_status: Optional[str] = None
    plan_key: Optional[str] = None
    is_admin: bool = False


class VendorAccessStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_vendor: bool
    is_subscribed: bool
    subscription_status: Optional[str] = None
    vendor_id: Optional[str] = None
    is_admin: bool = False
