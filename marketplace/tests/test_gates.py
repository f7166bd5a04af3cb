"""
Tests for onboarding, market and subscription gates.

Decision functions are tested as tables; GateService is tested against the
SQLite store.
"""
from datetime import datetime, timezone

import pytest

from marketplace.core.admin import AdminAllowlist
from marketplace.core.auth import Identity
from marketplace.features.access.store import get_primary_store
from marketplace.features.gates.market_mode import (
    GATED_MARKET_REQUIRES_VERIFICATION,
    MarketMode,
    enforce_gated_market_access,
    is_gated_mode,
    normalize_market_mode,
)
from marketplace.features.gates.service import (
    GateService,
    RouteFamily,
    decide_checkout,
    decide_consumer_area,
    decide_market,
    decide_subscription_area,
    decide_vendor_area,
    is_vendor_onboarding_complete,
    login_redirect,
)
from marketplace.models.access import ConsumerAccessStatus, VendorAccessStatus
from marketplace.models.gate import GateAllow, GateRedirect
from marketplace.models.records import ProfileRecord, VendorRecord
from marketplace.models.verification import VerificationSummary
from marketplace.tests.seed import add_consumer_subscription, add_profile, add_vendor, add_verification


USER = Identity(user_id="u1", email="user@example.com")
ADMIN = Identity(user_id="a1", email="admin@example.com")
NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _vendor(**overrides):
    values = dict(
        id="v1",
        owner_user_id="u1",
        subscription_status="active",
        vendor_onboarding_completed=True,
        terms_accepted_at=NOW,
        compliance_acknowledged_at=NOW,
    )
    values.update(overrides)
    return VendorRecord(**values)


def test_login_redirect_encodes_path():
    """The return path is percent-encoded into the login URL."""
    assert login_redirect("/vendor/dashboard").redirect_to == "/login?redirect=%2Fvendor%2Fdashboard"
    assert login_redirect("/market?tab=gated&x=1").redirect_to == "/login?redirect=%2Fmarket%3Ftab%3Dgated%26x%3D1"
    assert login_redirect("").redirect_to == "/login?redirect=%2F"


@pytest.mark.parametrize(
    "identity,profile,is_admin,expected",
    [
        (None, None, False, "/login?redirect=%2Faccount"),
        (USER, None, False, "/onboarding/consumer"),
        (USER, ProfileRecord(id="u1", consumer_onboarding_completed=False), False, "/onboarding/consumer"),
        (USER, ProfileRecord(id="u1", consumer_onboarding_completed=True), False, None),
        (USER, None, True, None),
    ],
)
def test_consumer_area_gate(identity, profile, is_admin, expected):
    result = decide_consumer_area(identity, profile, pathname="/account", is_admin=is_admin)
    if expected is None:
        assert isinstance(result, GateAllow)
    else:
        assert result.redirect_to == expected


def test_checkout_requires_consumer_onboarding():
    result = decide_checkout(USER, ProfileRecord(id="u1"))
    assert isinstance(result, GateRedirect)
    assert result.redirect_to == "/onboarding/consumer"
    assert decide_checkout(None, None).redirect_to == "/login?redirect=%2Fcheckout"


@pytest.mark.parametrize(
    "vendor,expected",
    [
        (None, "/vendor-registration"),
        (_vendor(owner_user_id="someone-else"), "/vendor-registration"),
        (_vendor(vendor_onboarding_completed=False), "/onboarding/vendor"),
        (_vendor(terms_accepted_at=None), "/onboarding/vendor"),
        (_vendor(compliance_acknowledged_at=None), "/onboarding/vendor"),
        (_vendor(), None),
    ],
)
def test_vendor_area_gate(vendor, expected):
    """All three onboarding markers are required; partial completion redirects."""
    result = decide_vendor_area(USER, vendor, pathname="/vendor/products")
    if expected is None:
        assert isinstance(result, GateAllow)
    else:
        assert result.redirect_to == expected


def test_vendor_area_admin_and_anonymous():
    assert isinstance(decide_vendor_area(ADMIN, None, pathname="/vendor", is_admin=True), GateAllow)
    assert decide_vendor_area(None, None, pathname="/vendor").reason == "unauthenticated"


def test_vendor_onboarding_complete_helper():
    assert is_vendor_onboarding_complete(_vendor()) is True
    assert is_vendor_onboarding_complete(None) is False


@pytest.mark.parametrize("status", ["none", "pending", "rejected"])
def test_gated_market_requires_approved_verification(status):
    result = decide_market(USER, VerificationSummary(status=status), gated=True, pathname="/market")
    assert result.redirect_to == "/verify-age"
    assert result.reason == f"verification_{status}"


def test_market_gate_allows():
    approved = VerificationSummary(status="approved")
    none = VerificationSummary(status="none")
    assert isinstance(decide_market(USER, approved, gated=True, pathname="/m"), GateAllow)
    assert isinstance(decide_market(None, none, gated=False, pathname="/m"), GateAllow)
    assert isinstance(decide_market(ADMIN, none, gated=True, pathname="/m", is_admin=True), GateAllow)
    assert decide_market(None, none, gated=True, pathname="/m").reason == "unauthenticated"


def test_subscription_area_gate():
    unpaid_consumer = ConsumerAccessStatus(is_subscribed=False)
    paid_consumer = ConsumerAccessStatus(is_subscribed=True, subscription_status="active")
    not_vendor = VendorAccessStatus(is_vendor=False, is_subscribed=False)
    unpaid_vendor = VendorAccessStatus(is_vendor=True, is_subscribed=False)
    admin_vendor = VendorAccessStatus(is_vendor=True, is_subscribed=True, is_admin=True)

    assert decide_subscription_area(USER, unpaid_consumer, pathname="/a").redirect_to == (
        "/pricing?tab=consumer&reason=subscription_required"
    )
    assert isinstance(decide_subscription_area(USER, paid_consumer, pathname="/a"), GateAllow)
    assert decide_subscription_area(USER, not_vendor, pathname="/v").redirect_to == "/vendor-registration"
    assert decide_subscription_area(USER, unpaid_vendor, pathname="/v").redirect_to == (
        "/pricing?tab=vendor&reason=subscription_required"
    )
    assert isinstance(decide_subscription_area(USER, admin_vendor, pathname="/v"), GateAllow)
    assert decide_subscription_area(None, None, pathname="/v").reason == "unauthenticated"


# --- market modes --------------------------------------------------------


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("CBD", MarketMode.CBD_WELLNESS),
        ("GATED", MarketMode.INTOXICATING),
        ("INDUSTRIAL", MarketMode.INDUSTRIAL),
        ("SERVICES", MarketMode.SERVICES),
        ("INTOXICATING", MarketMode.INTOXICATING),
        ("bogus", None),
        (None, None),
    ],
)
def test_normalize_market_mode(raw, expected):
    assert normalize_market_mode(raw) is expected


def test_only_intoxicating_is_gated():
    assert is_gated_mode(MarketMode.INTOXICATING)
    assert not is_gated_mode(MarketMode.CBD_WELLNESS)
    assert not is_gated_mode(None)


def test_enforce_gated_market_access():
    denied = enforce_gated_market_access(ProfileRecord(id="u1"), VerificationSummary(status="pending"))
    assert denied.ok is False
    assert denied.status == 403
    assert denied.code == GATED_MARKET_REQUIRES_VERIFICATION
    assert denied.message == "Intoxicating market requires 21+ verification."

    assert enforce_gated_market_access(None, VerificationSummary(status="approved")).ok is True
    assert enforce_gated_market_access(ProfileRecord(id="a", role="admin"), VerificationSummary(status="none")).ok is True


# --- GateService against the store --------------------------------------


@pytest.fixture
def gate_service():
    return GateService(get_primary_store(), AdminAllowlist(emails=frozenset({"admin@example.com"})))


def test_service_consumer_family(gate_service):
    add_profile("u1", consumer_onboarding_completed=False)
    result = gate_service.evaluate(RouteFamily.CONSUMER, USER, pathname="/account")
    assert result.redirect_to == "/onboarding/consumer"


def test_service_profile_admin_role_allows_vendor_area(gate_service):
    """A profile with role admin bypasses the vendor onboarding gate."""
    add_profile("u1", role="admin")
    assert isinstance(gate_service.evaluate(RouteFamily.VENDOR, USER, pathname="/vendor"), GateAllow)


def test_service_vendor_family(gate_service):
    add_profile("u1")
    add_vendor("u1", onboarded=False)
    result = gate_service.evaluate(RouteFamily.VENDOR, USER, pathname="/vendor")
    assert result.redirect_to == "/onboarding/vendor"


def test_service_market_uses_latest_verification(gate_service):
    """The most recent verification record decides the gated market."""
    add_profile("u1")
    add_verification("u1", "approved", datetime(2024, 1, 1, tzinfo=timezone.utc))
    add_verification("u1", "rejected", datetime(2024, 6, 1, tzinfo=timezone.utc))

    result = gate_service.evaluate(RouteFamily.MARKET, USER, pathname="/market", gated=True)
    assert result.redirect_to == "/verify-age"
    assert isinstance(gate_service.evaluate(RouteFamily.MARKET, None, pathname="/market"), GateAllow)


def test_service_subscription_families(gate_service):
    add_consumer_subscription("u1", status="canceled")
    result = gate_service.evaluate(RouteFamily.CONSUMER_SUBSCRIPTION, USER, pathname="/account")
    assert result.reason == "subscription_required"

    vendor_result = gate_service.evaluate(RouteFamily.VENDOR_SUBSCRIPTION, USER, pathname="/vendor/billing")
    assert vendor_result.redirect_to == "/vendor-registration"

    admin_result = gate_service.evaluate(RouteFamily.VENDOR_SUBSCRIPTION, ADMIN, pathname="/vendor/billing")
    assert isinstance(admin_result, GateAllow)
