"""
marketplace/features/gates/service.py

Onboarding and market access gates.

Each route family has its own small state machine with a common shape:
unauthenticated -> login redirect, incomplete -> onboarding redirect,
complete -> allow. An admin (profile role or allow-listed email) goes
straight to allow once identity is known.

The decide_* functions are pure. GateService loads the records they need;
a deny is always a GateRedirect, never an exception. Only store failures
(DataStoreError) propagate.
"""

import logging
from enum import Enum
from typing import Optional, Union
from urllib.parse import quote

from marketplace.core.admin import AdminAllowlist
from marketplace.core.auth import Identity
from marketplace.features.access.service import (
    ConsumerAccessResolver,
    VendorAccessResolver,
    get_consumer_resolver,
    get_vendor_resolver,
)
from marketplace.features.access.store import AccessStore
from marketplace.features.verification.service import DEFAULT_VERIFY_PATH, summarize_verification
from marketplace.models.access import ConsumerAccessStatus, VendorAccessStatus
from marketplace.models.gate import ALLOW, GateRedirect, GateResult
from marketplace.models.records import ProfileRecord, VendorRecord
from marketplace.models.verification import VerificationSummary

logger = logging.getLogger(__name__)

CONSUMER_ONBOARDING_PATH = "/onboarding/consumer"
VENDOR_ONBOARDING_PATH = "/onboarding/vendor"
VENDOR_REGISTRATION_PATH = "/vendor-registration"
CONSUMER_PRICING_PATH = "/pricing?tab=consumer&reason=subscription_required"
VENDOR_PRICING_PATH = "/pricing?tab=vendor&reason=subscription_required"


class RouteFamily(str, Enum):
    CONSUMER = "consumer"
    VENDOR = "vendor"
    CHECKOUT = "checkout"
    MARKET = "market"
    CONSUMER_SUBSCRIPTION = "consumer_subscription"
    VENDOR_SUBSCRIPTION = "vendor_subscription"


def login_redirect(pathname: str) -> GateRedirect:
    target = quote(pathname or "/", safe="!'()*")
    return GateRedirect(redirect_to=f"/login?redirect={target}", reason="unauthenticated")


def _redirect(target: str, reason: str, identity: Optional[Identity] = None) -> GateRedirect:
    logger.debug(
        "[gate] redirect",
        extra={"user_id": identity.user_id if identity else None, "event_type": reason},
    )
    return GateRedirect(redirect_to=target, reason=reason)


def is_vendor_onboarding_complete(vendor: Optional[VendorRecord]) -> bool:
    """All three markers are required; partial completion counts as none."""
    if vendor is None:
        return False
    return bool(
        vendor.vendor_onboarding_completed
        and vendor.terms_accepted_at is not None
        and vendor.compliance_acknowledged_at is not None
    )


def decide_consumer_area(
    identity: Optional[Identity],
    profile: Optional[ProfileRecord],
    *,
    pathname: str,
    is_admin: bool = False,
) -> GateResult:
    if identity is None:
        return login_redirect(pathname)
    if is_admin:
        return ALLOW
    if not (profile and profile.consumer_onboarding_completed):
        return _redirect(CONSUMER_ONBOARDING_PATH, "consumer_onboarding_incomplete", identity)
    return ALLOW


def decide_checkout(
    identity: Optional[Identity],
    profile: Optional[ProfileRecord],
    *,
    pathname: str = "/checkout",
    is_admin: bool = False,
) -> GateResult:
    """Checkout requires a completed consumer onboarding."""
    return decide_consumer_area(identity, profile, pathname=pathname, is_admin=is_admin)


def decide_vendor_area(
    identity: Optional[Identity],
    vendor: Optional[VendorRecord],
    *,
    pathname: str,
    is_admin: bool = False,
) -> GateResult:
    if identity is None:
        return login_redirect(pathname)
    if is_admin:
        return ALLOW
    if vendor is None or vendor.owner_user_id != identity.user_id:
        return _redirect(VENDOR_REGISTRATION_PATH, "vendor_missing", identity)
    if not is_vendor_onboarding_complete(vendor):
        return _redirect(VENDOR_ONBOARDING_PATH, "vendor_onboarding_incomplete", identity)
    return ALLOW


def decide_market(
    identity: Optional[Identity],
    verification: VerificationSummary,
    *,
    gated: bool,
    pathname: str,
    is_admin: bool = False,
    verify_path: str = DEFAULT_VERIFY_PATH,
) -> GateResult:
    """Non-gated content is open to everyone; gated content needs an approved verification."""
    if not gated:
        return ALLOW
    if identity is None:
        return login_redirect(pathname)
    if is_admin:
        return ALLOW
    if verification.status != "approved":
        return _redirect(verify_path, f"verification_{verification.status}", identity)
    return ALLOW


def decide_subscription_area(
    identity: Optional[Identity],
    access: Optional[Union[ConsumerAccessStatus, VendorAccessStatus]],
    *,
    pathname: str,
) -> GateResult:
    """Paid areas: consumer account pages and the vendor dashboard/billing."""
    if identity is None or access is None:
        return login_redirect(pathname)
    if access.is_admin:
        return ALLOW
    if isinstance(access, VendorAccessStatus):
        if not access.is_vendor:
            return _redirect(VENDOR_REGISTRATION_PATH, "vendor_missing", identity)
        if not access.is_subscribed:
            return _redirect(VENDOR_PRICING_PATH, "subscription_required", identity)
        return ALLOW
    if not access.is_subscribed:
        return _redirect(CONSUMER_PRICING_PATH, "subscription_required", identity)
    return ALLOW


class GateService:
    """Loads the records each gate needs and applies the decision."""

    def __init__(
        self,
        store: AccessStore,
        allowlist: AdminAllowlist,
        consumer_resolver: Optional[ConsumerAccessResolver] = None,
        vendor_resolver: Optional[VendorAccessResolver] = None,
    ):
        self.store = store
        self.allowlist = allowlist
        self.consumer_resolver = consumer_resolver or get_consumer_resolver(allowlist)
        self.vendor_resolver = vendor_resolver or get_vendor_resolver(allowlist)

    def is_admin(self, identity: Identity, profile: Optional[ProfileRecord]) -> bool:
        if profile is not None and profile.has_admin_role:
            return True
        return self.allowlist.is_admin_email(identity.email)

    def evaluate(
        self,
        family: RouteFamily,
        identity: Optional[Identity],
        *,
        pathname: str,
        gated: bool = False,
    ) -> GateResult:
        if family is RouteFamily.MARKET and not gated:
            return ALLOW
        if identity is None:
            return login_redirect(pathname)

        if family is RouteFamily.CONSUMER_SUBSCRIPTION:
            access = self.consumer_resolver.get_access_status(identity.user_id, identity.email)
            return decide_subscription_area(identity, access, pathname=pathname)
        if family is RouteFamily.VENDOR_SUBSCRIPTION:
            access = self.vendor_resolver.get_access_status(identity.user_id, identity.email)
            return decide_subscription_area(identity, access, pathname=pathname)

        profile = self.store.fetch_profile(identity.user_id)
        is_admin = self.is_admin(identity, profile)

        if family is RouteFamily.CONSUMER:
            return decide_consumer_area(identity, profile, pathname=pathname, is_admin=is_admin)
        if family is RouteFamily.CHECKOUT:
            return decide_checkout(identity, profile, pathname=pathname, is_admin=is_admin)
        if family is RouteFamily.VENDOR:
            vendor = None if is_admin else self.store.fetch_vendor(identity.user_id)
            return decide_vendor_area(identity, vendor, pathname=pathname, is_admin=is_admin)

        verification = (
            VerificationSummary(status="none")
            if is_admin
            else summarize_verification(self.store.fetch_latest_verification(identity.user_id))
        )
        return decide_market(identity, verification, gated=gated, pathname=pathname, is_admin=is_admin)
