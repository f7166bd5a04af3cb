"""
Shared FastAPI dependencies for the marketplace routers.
"""
import logging

from fastapi import Depends

from marketplace.core.admin import AdminAllowlist
from marketplace.core.auth import Identity, get_allowlist, get_current_identity
from marketplace.core.errors import SubscriptionRequiredError
from marketplace.features.access.service import (
    ConsumerAccessResolver,
    VendorAccessResolver,
    get_consumer_resolver,
    get_vendor_resolver,
)
from marketplace.features.access.store import get_primary_store
from marketplace.features.gates.service import GateService
from marketplace.models.access import ConsumerAccessStatus

logger = logging.getLogger("marketplace")


def consumer_resolver(allowlist: AdminAllowlist = Depends(get_allowlist)) -> ConsumerAccessResolver:
    return get_consumer_resolver(allowlist)


def vendor_resolver(allowlist: AdminAllowlist = Depends(get_allowlist)) -> VendorAccessResolver:
    return get_vendor_resolver(allowlist)


def gate_service(
    allowlist: AdminAllowlist = Depends(get_allowlist),
    consumer: ConsumerAccessResolver = Depends(consumer_resolver),
    vendor: VendorAccessResolver = Depends(vendor_resolver),
) -> GateService:
    return GateService(get_primary_store(), allowlist, consumer, vendor)


def require_subscribed_consumer(
    identity: Identity = Depends(get_current_identity),
    resolver: ConsumerAccessResolver = Depends(consumer_resolver),
) -> ConsumerAccessStatus:
    """
    Require a paid consumer subscription or an allow-listed admin.

    Raises:
        SubscriptionRequiredError: caller is neither subscribed nor admin
    """
    access = resolver.get_access_status(identity.user_id, identity.email)
    if not (access.is_subscribed or access.is_admin):
        logger.info(
            "[access] subscription required",
            extra={"user_id": identity.user_id, "error_code": "subscription_required"},
        )
        raise SubscriptionRequiredError("An active consumer subscription is required")
    return access
