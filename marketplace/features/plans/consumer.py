"""
marketplace/features/plans/consumer.py

Consumer plan family: Starter / Plus / VIP, monthly and annual.
"""

from typing import Optional

from marketplace.core.config import Settings, settings
from marketplace.features.plans.catalog import PlanCatalog, PlanTemplate, settings_price_lookup
from marketplace.models.plan import ConsumerEntitlements, ConsumerPlan


LOYALTY_MULTIPLIERS = {
    "Starter": 1.0,
    "Plus": 1.5,
    "VIP": 2.0,
}

REFERRAL_REWARD_POINTS = {
    "Starter": 250,
    "Plus": 500,
    "VIP": 1000,
}

_FEATURES = {
    "Starter": ("Monthly loyalty points", "Subscriber-only offers", "Member rewards"),
    "Plus": ("More monthly loyalty points", "Enhanced member rewards", "Early access perks"),
    "VIP": ("Highest monthly loyalty points", "Best perks and rewards", "Priority member support"),
}

_CADENCES = (("monthly", "month"), ("annual", "year"))


def _consumer_templates():
    for tier in ("Starter", "Plus", "VIP"):
        for cycle, interval in _CADENCES:
            plan_key = f"consumer_{tier.lower()}_{cycle}"
            yield PlanTemplate(
                env_key=f"STRIPE_CONSUMER_{tier.upper()}_{cycle.upper()}_PRICE_ID",
                attributes={
                    "plan_key": plan_key,
                    "tier": tier,
                    "billing_cycle": cycle,
                    "billing_interval": interval,
                    "display_name": f"Consumer {tier}",
                    "image_url": f"/images/consumer-plans/{plan_key}.png",
                    "image_alt": f"Consumer {tier} {cycle} plan",
                    "loyalty_multiplier": LOYALTY_MULTIPLIERS[tier],
                    "referral_reward_points": REFERRAL_REWARD_POINTS[tier],
                    "feature_summary": _FEATURES[tier],
                },
            )


CONSUMER_PLAN_TEMPLATES = tuple(_consumer_templates())

_consumer_catalog: Optional[PlanCatalog[ConsumerPlan]] = None


def build_consumer_catalog(settings_obj: Optional[Settings] = None) -> PlanCatalog[ConsumerPlan]:
    return PlanCatalog.build(
        ConsumerPlan,
        CONSUMER_PLAN_TEMPLATES,
        settings_price_lookup(settings_obj or settings),
    )


def get_consumer_catalog() -> PlanCatalog[ConsumerPlan]:
    """Process-wide consumer catalog, built on first use."""
    global _consumer_catalog
    if _consumer_catalog is None:
        _consumer_catalog = build_consumer_catalog()
    return _consumer_catalog


def reset_consumer_catalog() -> None:
    global _consumer_catalog
    _consumer_catalog = None


def get_consumer_plan_by_key(plan_key: Optional[str]) -> Optional[ConsumerPlan]:
    return get_consumer_catalog().get_plan_by_key(plan_key)


def get_consumer_plan_by_price_id(price_id: Optional[str]) -> Optional[ConsumerPlan]:
    return get_consumer_catalog().get_plan_by_price_id(price_id)


def get_consumer_entitlements(plan_key: Optional[str]) -> Optional[ConsumerEntitlements]:
    plan = get_consumer_plan_by_key(plan_key)
    if plan is None:
        return None
    return ConsumerEntitlements(
        tier=plan.tier,
        billing_cycle=plan.billing_cycle,
        loyalty_multiplier=plan.loyalty_multiplier,
        referral_reward_points=plan.referral_reward_points,
    )
