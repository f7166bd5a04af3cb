"""
Tests for consumer/vendor access resolution.

Covers the admin override, subscription-status entitlement, the vendor
ownership check and the single elevated retry (fail closed when both reads
fail).
"""
import logging
from contextlib import contextmanager
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from marketplace.core.admin import AdminAllowlist
from marketplace.core.errors import AccessLookupError, DataStoreError
from marketplace.features.access.service import (
    ACTIVE_SUBSCRIPTION_STATUSES,
    ConsumerAccessResolver,
    VendorAccessResolver,
    get_consumer_resolver,
    get_vendor_resolver,
    is_consumer_subscription_active,
    is_subscription_active,
)
from marketplace.features.access.store import AccessStore, get_primary_store
from marketplace.models.records import ConsumerSubscriptionRecord, VendorRecord
from marketplace.tests.seed import add_consumer_subscription, add_vendor


ALLOWLIST = AdminAllowlist(emails=frozenset({"admin@example.com"}))


class FakeStore:
    """Records calls; raises DataStoreError when told to fail."""

    def __init__(self, subscription=None, vendor=None, fail=False):
        self.subscription = subscription
        self.vendor = vendor
        self.fail = fail
        self.calls = 0

    def fetch_consumer_subscription(self, user_id):
        self.calls += 1
        if self.fail:
            raise DataStoreError("boom")
        return self.subscription

    def fetch_vendor(self, user_id):
        self.calls += 1
        if self.fail:
            raise DataStoreError("boom")
        return self.vendor


@pytest.mark.parametrize(
    "status,expected",
    [
        ("active", True),
        ("trialing", True),
        ("past_due", False),
        ("canceled", False),
        ("incomplete", False),
        ("unpaid", False),
        ("", False),
        (None, False),
        ("ACTIVE", False),
    ],
)
def test_is_subscription_active(status, expected):
    """Only active and trialing count as paid."""
    assert is_subscription_active(status) is expected
    assert is_consumer_subscription_active(status) is expected


def test_active_statuses_are_exactly_active_and_trialing():
    assert ACTIVE_SUBSCRIPTION_STATUSES == frozenset({"active", "trialing"})


def test_admin_email_overrides_consumer_status_without_store_reads():
    """Allow-listed email is subscribed as admin; the store is never consulted."""
    primary, elevated = FakeStore(fail=True), FakeStore(fail=True)
    resolver = ConsumerAccessResolver(ALLOWLIST, primary, elevated)

    status = resolver.get_access_status("u1", "  Admin@Example.com ")

    assert status.model_dump() == {
        "is_subscribed": True,
        "subscription_status": "admin",
        "plan_key": "admin",
        "is_admin": True,
    }
    assert primary.calls == 0
    assert elevated.calls == 0


def test_admin_email_overrides_vendor_status():
    resolver = VendorAccessResolver(ALLOWLIST, FakeStore(), FakeStore())
    status = resolver.get_access_status("u1", "admin@example.com")
    assert status.is_vendor is True
    assert status.is_subscribed is True
    assert status.subscription_status == "admin"
    assert status.is_admin is True


def test_consumer_without_row_is_not_subscribed():
    resolver = ConsumerAccessResolver(ALLOWLIST, FakeStore(), FakeStore())
    status = resolver.get_access_status("u1", "user@example.com")
    assert status.is_subscribed is False
    assert status.subscription_status is None
    assert status.plan_key is None
    assert status.is_admin is False


def test_consumer_past_due_keeps_plan_key_but_is_not_subscribed():
    record = ConsumerSubscriptionRecord(user_id="u1", subscription_status="past_due", consumer_plan_key="consumer_plus_monthly")
    resolver = ConsumerAccessResolver(ALLOWLIST, FakeStore(subscription=record), FakeStore())
    status = resolver.get_access_status("u1", None)
    assert status.is_subscribed is False
    assert status.subscription_status == "past_due"
    assert status.plan_key == "consumer_plus_monthly"


def test_primary_failure_retries_once_with_elevated_store(caplog):
    """A primary read failure is retried exactly once under elevated credentials."""
    record = ConsumerSubscriptionRecord(user_id="u1", subscription_status="trialing", consumer_plan_key="consumer_vip_annual")
    primary = FakeStore(fail=True)
    elevated = FakeStore(subscription=record)
    resolver = ConsumerAccessResolver(ALLOWLIST, primary, elevated)

    with caplog.at_level(logging.WARNING):
        status = resolver.get_access_status("u1", "user@example.com")

    assert status.is_subscribed is True
    assert status.plan_key == "consumer_vip_annual"
    assert primary.calls == 1
    assert elevated.calls == 1
    assert any("retrying with elevated credentials" in r.getMessage() for r in caplog.records)


def test_both_reads_failing_fails_closed():
    """No access is granted when both lookups fail."""
    primary, elevated = FakeStore(fail=True), FakeStore(fail=True)
    resolver = ConsumerAccessResolver(ALLOWLIST, primary, elevated)

    with pytest.raises(AccessLookupError) as exc_info:
        resolver.get_access_status("u1", "user@example.com")

    assert exc_info.value.status_code == 500
    assert primary.calls == 1
    assert elevated.calls == 1


def test_vendor_owner_mismatch_is_not_a_vendor():
    """A vendor row owned by someone else never grants vendor access."""
    vendor = VendorRecord(id="v1", owner_user_id="someone-else", subscription_status="active")
    resolver = VendorAccessResolver(ALLOWLIST, FakeStore(vendor=vendor), FakeStore())
    status = resolver.get_access_status("u1", None)
    assert status.is_vendor is False
    assert status.is_subscribed is False


def test_vendor_subscription_status_drives_entitlement():
    vendor = VendorRecord(id="v1", owner_user_id="u1", subscription_status="canceled")
    resolver = VendorAccessResolver(ALLOWLIST, FakeStore(vendor=vendor), FakeStore())
    status = resolver.get_access_status("u1", None)
    assert status.is_vendor is True
    assert status.is_subscribed is False
    assert status.vendor_id == "v1"


def test_vendor_elevated_failure_fails_closed():
    resolver = VendorAccessResolver(ALLOWLIST, FakeStore(fail=True), FakeStore(fail=True))
    with pytest.raises(AccessLookupError):
        resolver.get_access_status("u1", None)


def test_resolvers_read_from_database():
    """The default resolvers read the seeded rows through SQLAlchemy."""
    add_consumer_subscription("u-db", status="active", plan_key="consumer_plus_annual")
    add_vendor("u-db", status="trialing")

    consumer = get_consumer_resolver(ALLOWLIST).get_access_status("u-db", "user@example.com")
    vendor = get_vendor_resolver(ALLOWLIST).get_access_status("u-db", "user@example.com")

    assert consumer.is_subscribed is True
    assert consumer.plan_key == "consumer_plus_annual"
    assert vendor.is_vendor is True
    assert vendor.is_subscribed is True
    assert vendor.vendor_id == "vendor-u-db"


def test_store_wraps_sqlalchemy_errors_as_data_store_error():
    """Driver failures surface as DataStoreError, which the resolver retries."""

    @contextmanager
    def broken_scope():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))
        yield

    store = AccessStore(broken_scope, name="broken")
    with pytest.raises(DataStoreError):
        store.fetch_profile("u1")


def test_store_reports_malformed_row():
    """A row that fails validation is a data store error, not a silent None."""

    @contextmanager
    def scope():
        session = MagicMock()
        session.execute.return_value.mappings.return_value.first.return_value = {
            "id": "v1",
            "owner_user_id": None,
        }
        yield session

    with pytest.raises(DataStoreError):
        AccessStore(scope).fetch_vendor("u-bad")


def test_store_missing_row_returns_none():
    assert get_primary_store().fetch_consumer_subscription("nobody") is None


def test_vendor_without_row_is_not_a_vendor():
    resolver = VendorAccessResolver(ALLOWLIST, FakeStore(), FakeStore())
    status = resolver.get_access_status("u1", "user@example.com")
    assert status.is_vendor is False
    assert status.is_subscribed is False
    assert status.vendor_id is None
