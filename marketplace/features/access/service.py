"""
marketplace/features/access/service.py

Consumer and vendor access resolvers.

Resolution order:
1. Allow-listed admin email: override, the store is never consulted.
2. Primary store read; on DataStoreError, one retry with elevated credentials.
3. Entitlement derived from subscription status (active or trialing only).

If the elevated retry also fails the resolver raises AccessLookupError and
never falls back to granting access.
"""

import logging
from typing import Callable, Optional, TypeVar

from marketplace.core.admin import AdminAllowlist
from marketplace.core.errors import AccessLookupError, DataStoreError
from marketplace.features.access.store import AccessStore, get_elevated_store, get_primary_store
from marketplace.models.access import ConsumerAccessStatus, VendorAccessStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACTIVE_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing"})


def is_subscription_active(status: Optional[str]) -> bool:
    """The single definition of "is paid"."""
    if not status:
        return False
    return status in ACTIVE_SUBSCRIPTION_STATUSES


is_consumer_subscription_active = is_subscription_active


class _AccessResolver:
    def __init__(self, allowlist: AdminAllowlist, primary: AccessStore, elevated: AccessStore):
        self.allowlist = allowlist
        self.primary = primary
        self.elevated = elevated

    def _read_with_retry(self, user_id: str, read: Callable[[AccessStore], T]) -> T:
        try:
            return read(self.primary)
        except DataStoreError as e:
            logger.warning(
                "[access] primary lookup failed, retrying with elevated credentials",
                extra={"user_id": user_id, "error_code": e.code},
            )

        try:
            return read(self.elevated)
        except DataStoreError as e:
            logger.error(
                "[access] elevated lookup failed",
                extra={"user_id": user_id, "error_code": e.code},
            )
            raise AccessLookupError("Access lookup failed") from e


class ConsumerAccessResolver(_AccessResolver):
    def get_access_status(self, user_id: str, user_email: Optional[str] = None) -> ConsumerAccessStatus:
        if self.allowlist.is_admin_email(user_email):
            return ConsumerAccessStatus(
                is_subscribed=True,
                subscription_status="admin",
                plan_key="admin",
                is_admin=True,
            )

        record = self._read_with_retry(user_id, lambda store: store.fetch_consumer_subscription(user_id))
        if record is None:
            return ConsumerAccessStatus(is_subscribed=False)

        status = record.subscription_status or None
        return ConsumerAccessStatus(
            is_subscribed=is_subscription_active(status),
            subscription_status=status,
            plan_key=record.consumer_plan_key or None,
            is_admin=False,
        )


class VendorAccessResolver(_AccessResolver):
    def get_access_status(self, user_id: str, user_email: Optional[str] = None) -> VendorAccessStatus:
        if self.allowlist.is_admin_email(user_email):
            return VendorAccessStatus(
                is_vendor=True,
                is_subscribed=True,
                subscription_status="admin",
                vendor_id=None,
                is_admin=True,
            )

        vendor = self._read_with_retry(user_id, lambda store: store.fetch_vendor(user_id))
        if vendor is None or vendor.owner_user_id != user_id:
            if vendor is not None:
                logger.warning(
                    "[access] vendor owner mismatch",
                    extra={"user_id": user_id, "error_code": "owner_mismatch"},
                )
            return VendorAccessStatus(is_vendor=False, is_subscribed=False)

        status = vendor.subscription_status or None
        return VendorAccessStatus(
            is_vendor=True,
            is_subscribed=is_subscription_active(status),
            subscription_status=status,
            vendor_id=vendor.id,
            is_admin=False,
        )


def get_consumer_resolver(allowlist: Optional[AdminAllowlist] = None) -> ConsumerAccessResolver:
    return ConsumerAccessResolver(
        allowlist or AdminAllowlist.from_settings(),
        get_primary_store(),
        get_elevated_store(),
    )


def get_vendor_resolver(allowlist: Optional[AdminAllowlist] = None) -> VendorAccessResolver:
    return VendorAccessResolver(
        allowlist or AdminAllowlist.from_settings(),
        get_primary_store(),
        get_elevated_store(),
    )
