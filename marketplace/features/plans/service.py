"""
marketplace/features/plans/service.py

Cross-family plan lookups and diagnostics.
"""

from typing import Dict, List, Optional, Union

from marketplace.features.plans.consumer import (
    get_consumer_catalog,
    reset_consumer_catalog,
)
from marketplace.features.plans.vendor import (
    get_vendor_catalog,
    reset_vendor_catalog,
)
from marketplace.models.plan import ConsumerPlan, VendorPlan


def get_plan_by_price_id(price_id: Optional[str]) -> Optional[Union[ConsumerPlan, VendorPlan]]:
    """Find a plan in either family by its Stripe price id."""
    return (
        get_consumer_catalog().get_plan_by_price_id(price_id)
        or get_vendor_catalog().get_plan_by_price_id(price_id)
    )


def get_plan_by_key(plan_key: Optional[str]) -> Optional[Union[ConsumerPlan, VendorPlan]]:
    return (
        get_consumer_catalog().get_plan_by_key(plan_key)
        or get_vendor_catalog().get_plan_by_key(plan_key)
    )


def get_missing_plan_config() -> Dict[str, List[str]]:
    """Settings keys with no price id, per family."""
    return {
        "consumer": list(get_consumer_catalog().missing_config),
        "vendor": list(get_vendor_catalog().missing_config),
    }


def find_shared_price_ids() -> List[str]:
    """Price ids configured in both families; each must map to one plan."""
    consumer_ids = {plan.price_id for plan in get_consumer_catalog()}
    vendor_ids = {plan.price_id for plan in get_vendor_catalog()}
    return sorted(consumer_ids & vendor_ids)


def reset_plan_catalogs() -> None:
    """Forget both catalogs so the next lookup rebuilds from settings."""
    reset_consumer_catalog()
    reset_vendor_catalog()
