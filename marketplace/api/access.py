"""
Access status API: is the caller a paid consumer / subscribed vendor?
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from marketplace.api.deps import consumer_resolver, vendor_resolver
from marketplace.core.auth import Identity, get_current_identity
from marketplace.features.access.service import ConsumerAccessResolver, VendorAccessResolver
from marketplace.features.access.store import get_primary_store
from marketplace.features.plans.consumer import get_consumer_entitlements
from marketplace.features.plans.vendor import get_product_limit_status, get_vendor_entitlements
from marketplace.models.access import ConsumerAccessStatus, VendorAccessStatus
from marketplace.models.plan import ConsumerEntitlements, ProductLimitStatus, VendorEntitlements

router = APIRouter(prefix="/access", tags=["access"])


class ConsumerAccessResponse(ConsumerAccessStatus):
    entitlements: Optional[ConsumerEntitlements] = None


class VendorAccessResponse(VendorAccessStatus):
    entitlements: Optional[VendorEntitlements] = None
    product_limit: Optional[ProductLimitStatus] = None


@router.get("/consumer", response_model=ConsumerAccessResponse)
def consumer_access(
    identity: Identity = Depends(get_current_identity),
    resolver: ConsumerAccessResolver = Depends(consumer_resolver),
):
    access = resolver.get_access_status(identity.user_id, identity.email)
    entitlements = get_consumer_entitlements(access.plan_key) if access.is_subscribed else None
    return ConsumerAccessResponse(**access.model_dump(), entitlements=entitlements)


@router.get("/vendor", response_model=VendorAccessResponse)
def vendor_access(
    product_count: Optional[int] = Query(None, ge=0),
    identity: Identity = Depends(get_current_identity),
    resolver: VendorAccessResolver = Depends(vendor_resolver),
):
    """
    Vendor access status.

    With ?product_count= the response also says whether the plan's product
    limit is reached. Admins are unlimited.
    """
    access = resolver.get_access_status(identity.user_id, identity.email)

    entitlements = None
    if access.is_vendor and not access.is_admin:
        vendor = get_primary_store().fetch_vendor(identity.user_id)
        entitlements = get_vendor_entitlements(vendor.vendor_plan_key) if vendor else None

    product_limit = None
    if product_count is not None and access.is_vendor:
        limit = entitlements.product_limit if entitlements else None
        if entitlements is None and not access.is_admin:
            # No configured plan means no listing allowance
            limit = 0
        product_limit = get_product_limit_status(product_count, limit)

    return VendorAccessResponse(**access.model_dump(), entitlements=entitlements, product_limit=product_limit)
