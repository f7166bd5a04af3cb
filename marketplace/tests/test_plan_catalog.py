"""Tests for the consumer and vendor plan catalogs."""

import pytest

from marketplace.features.plans.catalog import CatalogConfigError, PlanCatalog, PlanTemplate
from marketplace.features.plans.consumer import (
    build_consumer_catalog,
    get_consumer_catalog,
    get_consumer_entitlements,
    get_consumer_plan_by_key,
    get_consumer_plan_by_price_id,
)
from marketplace.features.plans.service import (
    find_shared_price_ids,
    get_missing_plan_config,
    get_plan_by_price_id,
    reset_plan_catalogs,
)
from marketplace.features.plans.vendor import (
    build_vendor_catalog,
    get_product_limit_status,
    get_vendor_catalog,
    get_vendor_entitlements,
    get_vendor_plan_by_key,
    get_vendor_plan_by_price_id,
)
from marketplace.models.plan import ConsumerPlan, VendorPlan


def test_vendor_pro_annual_lookup_by_price_id():
    """The Pro annual price id resolves to the Pro annual plan with its entitlements."""
    plan = get_vendor_plan_by_price_id("price_pro_year")
    assert plan is not None
    assert plan.plan_key == "vendor_pro_annual"
    assert plan.product_limit == 200
    assert plan.commission_percent == 5
    assert plan.billing_interval == "year"
    assert plan.sub_price_note == "$1,860 | 15% off"


def test_all_configured_plans_present_in_declaration_order():
    """Six consumer and six vendor plans, Starter first, monthly before annual."""
    consumer_keys = [plan.plan_key for plan in get_consumer_catalog().plans]
    vendor_keys = [plan.plan_key for plan in get_vendor_catalog().plans]
    assert consumer_keys == [
        "consumer_starter_monthly",
        "consumer_starter_annual",
        "consumer_plus_monthly",
        "consumer_plus_annual",
        "consumer_vip_monthly",
        "consumer_vip_annual",
    ]
    assert vendor_keys[0] == "vendor_starter_monthly"
    assert vendor_keys[-1] == "vendor_enterprise_annual"
    assert len(vendor_keys) == 6


def test_every_price_id_maps_back_to_its_plan():
    """Lookup by price id round-trips for every configured plan."""
    for plan in get_consumer_catalog():
        assert get_plan_by_price_id(plan.price_id) == plan
    for plan in get_vendor_catalog():
        assert get_plan_by_price_id(plan.price_id) == plan


def test_unknown_and_empty_lookups_return_none():
    """Unknown keys or price ids are a negative result, never an error."""
    assert get_consumer_plan_by_key("consumer_gold_monthly") is None
    assert get_consumer_plan_by_key(None) is None
    assert get_consumer_plan_by_price_id("") is None
    assert get_vendor_plan_by_key("") is None
    assert get_plan_by_price_id("price_missing") is None


def test_unconfigured_price_hides_plan_and_reports_missing_key(settings_factory):
    """A blank price id omits the plan and lists its settings key."""
    cfg = settings_factory(
        STRIPE_VENDOR_PRO_MONTHLY_PRICE_ID="price_pro_month",
        STRIPE_VENDOR_PRO_ANNUAL_PRICE_ID="   ",
    )
    catalog = build_vendor_catalog(cfg)
    assert [plan.plan_key for plan in catalog] == ["vendor_pro_monthly"]
    assert "STRIPE_VENDOR_PRO_ANNUAL_PRICE_ID" in catalog.missing_config
    assert catalog.get_plan_by_key("vendor_pro_annual") is None


def test_empty_configuration_builds_empty_catalog(settings_factory):
    """No prices at all still builds; every key is reported missing."""
    catalog = build_consumer_catalog(settings_factory())
    assert catalog.is_empty
    assert len(catalog.missing_config) == 6


def test_missing_plan_config_lists_both_families(monkeypatch, test_settings):
    monkeypatch.setattr(test_settings, "STRIPE_CONSUMER_VIP_ANNUAL_PRICE_ID", None)
    reset_plan_catalogs()
    missing = get_missing_plan_config()
    assert missing == {"consumer": ["STRIPE_CONSUMER_VIP_ANNUAL_PRICE_ID"], "vendor": []}


def test_duplicate_price_id_within_family_is_rejected(settings_factory):
    """Two plans sharing a price id is a configuration defect."""
    cfg = settings_factory(
        STRIPE_CONSUMER_STARTER_MONTHLY_PRICE_ID="price_dup",
        STRIPE_CONSUMER_PLUS_MONTHLY_PRICE_ID="price_dup",
    )
    with pytest.raises(CatalogConfigError):
        build_consumer_catalog(cfg)


def test_duplicate_plan_key_is_rejected():
    template = PlanTemplate(
        env_key="X",
        attributes=dict(
            plan_key="consumer_starter_monthly",
            tier="Starter",
            billing_cycle="monthly",
            billing_interval="month",
            display_name="Consumer Starter",
            image_url="/x.png",
            image_alt="x",
            loyalty_multiplier=1.0,
            referral_reward_points=250,
        ),
    )
    first = ConsumerPlan(price_id="price_a", env_key="A", **template.attributes)
    second = ConsumerPlan(price_id="price_b", env_key="B", **template.attributes)
    with pytest.raises(CatalogConfigError):
        PlanCatalog([first, second])


def test_shared_price_ids_across_families_are_detected(monkeypatch, test_settings):
    monkeypatch.setattr(test_settings, "STRIPE_VENDOR_STARTER_MONTHLY_PRICE_ID", "price_consumer_starter_month")
    reset_plan_catalogs()
    assert find_shared_price_ids() == ["price_consumer_starter_month"]


def test_catalog_is_read_only():
    """Plans are frozen and the plan list is a tuple."""
    catalog = get_vendor_catalog()
    assert isinstance(catalog.plans, tuple)
    plan = catalog.plans[0]
    with pytest.raises(Exception):
        plan.commission_percent = 0


def test_consumer_entitlements_follow_tier():
    """Multiplier and referral reward come from the tier, not the cadence."""
    vip = get_consumer_entitlements("consumer_vip_annual")
    assert vip.tier == "VIP"
    assert vip.billing_cycle == "annual"
    assert vip.loyalty_multiplier == 2.0
    assert vip.referral_reward_points == 1000
    assert get_consumer_entitlements("consumer_plus_monthly").loyalty_multiplier == 1.5
    assert get_consumer_entitlements("nope") is None


def test_vendor_entitlements_per_tier():
    starter = get_vendor_entitlements("vendor_starter_monthly")
    enterprise = get_vendor_entitlements("vendor_enterprise_annual")
    assert (starter.product_limit, starter.commission_percent) == (10, 7)
    assert enterprise.product_limit is None
    assert enterprise.commission_percent == 0
    assert get_vendor_entitlements(None) is None


def test_product_limit_status():
    """Reached at the limit; an unlimited plan is never reached."""
    assert get_product_limit_status(9, 10).reached is False
    assert get_product_limit_status(10, 10).reached is True
    assert get_product_limit_status(11, 10).limit == 10
    unlimited = get_product_limit_status(10_000, None)
    assert unlimited.reached is False
    assert unlimited.limit is None


def test_plan_models_carry_display_fields():
    plan = get_vendor_plan_by_key("vendor_enterprise_annual")
    assert isinstance(plan, VendorPlan)
    assert plan.headline_price_text == "$2,805/year"
    assert plan.product_limit_text == "Product Limit: Unlimited products"
    assert plan.limitation_bullets == ()
    assert plan.image_url.endswith(".png")


def test_consumer_plus_monthly_by_key():
    plan = get_consumer_plan_by_key("consumer_plus_monthly")
    assert plan.tier == "Plus"
    assert plan.billing_interval == "month"
    assert plan.loyalty_multiplier == 1.5


def test_key_and_price_lookups_agree():
    """get_plan_by_key(get_plan_by_price_id(p).plan_key).price_id == p for every configured plan."""
    for catalog in (get_consumer_catalog(), get_vendor_catalog()):
        for plan in catalog:
            found = catalog.get_plan_by_price_id(plan.price_id)
            assert catalog.get_plan_by_key(found.plan_key).price_id == plan.price_id


def test_plan_image_urls_use_plan_key():
    assert get_consumer_plan_by_key("consumer_vip_annual").image_url == "/images/consumer-plans/consumer_vip_annual.png"
    assert get_vendor_plan_by_key("vendor_pro_monthly").image_url == "/images/vendor-plans/vendor_pro_monthly.png"
