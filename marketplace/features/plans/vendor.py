"""
marketplace/features/plans/vendor.py

Vendor plan family: Starter / Pro / Enterprise, monthly and annual.

Entitlements per tier:
- Starter: up to 10 products, 7% commission
- Pro: up to 200 products, 5% commission
- Enterprise: unlimited products (None), 0% commission
"""

from typing import Optional

from marketplace.core.config import Settings, settings
from marketplace.features.plans.catalog import PlanCatalog, PlanTemplate, settings_price_lookup
from marketplace.models.plan import ProductLimitStatus, VendorEntitlements, VendorPlan


_STARTER_INCLUDED = (
    "Upload and sell up to 10 approved products",
    "Order fulfillment access",
    "Featured on public vendor feed",
    "Geographic listing for local discovery",
)
_STARTER_LIMITATIONS = (
    "7% commission per sale",
    "No direct messaging with customers",
    "No external website links",
)
_PRO_LIMITATIONS = ("5% commission per sale", "No direct messaging with customers")
_ENTERPRISE_INCLUDED = (
    "Upload unlimited approved products",
    "0% commission on all sales",
    "Direct messaging with customers",
    "External website link on vendor profile",
    "VIP placement and priority marketplace visibility",
    "Exclusive discounts & promo rewards",
)

_TIERS = {
    "Starter": {
        "display_name": "Vendor Starter",
        "commission_percent": 7,
        "product_limit": 10,
        "product_limit_text": "Product Limit: Up to 10 products",
    },
    "Pro": {
        "display_name": "Vendor Pro",
        "commission_percent": 5,
        "product_limit": 200,
        "product_limit_text": "Product Limit: Up to 200 products",
    },
    "Enterprise": {
        "display_name": "Vendor Enterprise (VIP)",
        "commission_percent": 0,
        "product_limit": None,
        "product_limit_text": "Product Limit: Unlimited products",
    },
}


def _vendor_template(tier: str, cycle: str, headline: str, included, limitations, sub_note: Optional[str] = None) -> PlanTemplate:
    plan_key = f"vendor_{tier.lower()}_{cycle}"
    base = _TIERS[tier]
    return PlanTemplate(
        env_key=f"STRIPE_VENDOR_{tier.upper()}_{cycle.upper()}_PRICE_ID",
        attributes={
            "plan_key": plan_key,
            "tier": tier,
            "billing_cycle": cycle,
            "billing_interval": "month" if cycle == "monthly" else "year",
            "display_name": base["display_name"],
            "headline_price_text": headline,
            "sub_price_note": sub_note,
            "commission_text": f"Commission: {base['commission_percent']}%",
            "commission_percent": base["commission_percent"],
            "product_limit": base["product_limit"],
            "product_limit_text": base["product_limit_text"],
            "included_bullets": tuple(included),
            "limitation_bullets": tuple(limitations),
            "image_url": f"/images/vendor-plans/{plan_key}.png",
            "image_alt": f"{base['display_name']} {cycle} plan",
        },
    )


VENDOR_PLAN_TEMPLATES = (
    _vendor_template("Starter", "monthly", "$70/month", _STARTER_INCLUDED, _STARTER_LIMITATIONS),
    _vendor_template("Starter", "annual", "$714/year", _STARTER_INCLUDED, _STARTER_LIMITATIONS, "$840 | 15% off"),
    _vendor_template(
        "Pro", "monthly", "$150/month",
        (
            "Upload and sell up to 200 approved products",
            "Reduced 5% commission",
            "Vendor logo & branded storefront",
            "Featured product announcements",
            "Ability to run discounts and promotions",
        ),
        _PRO_LIMITATIONS,
    ),
    _vendor_template(
        "Pro", "annual", "$1,530/year",
        (
            "Upload and sell up to 200 approved products",
            "Reduced 5% commission",
            "Vendor logo & branded storefront",
            "Mass email alerts for new products",
            "Ability to run discounts and promotions",
        ),
        _PRO_LIMITATIONS,
        "$1,860 | 15% off",
    ),
    _vendor_template("Enterprise", "monthly", "$275/month", _ENTERPRISE_INCLUDED, ()),
    _vendor_template(
        "Enterprise", "annual", "$2,805/year",
        _ENTERPRISE_INCLUDED + ("Legacy Benefit: Annual subscribers may qualify for legacy pricing",),
        (),
        "$3,300 | 15% off",
    ),
)

_vendor_catalog: Optional[PlanCatalog[VendorPlan]] = None


def build_vendor_catalog(settings_obj: Optional[Settings] = None) -> PlanCatalog[VendorPlan]:
    return PlanCatalog.build(
        VendorPlan,
        VENDOR_PLAN_TEMPLATES,
        settings_price_lookup(settings_obj or settings),
    )


def get_vendor_catalog() -> PlanCatalog[VendorPlan]:
    """Process-wide vendor catalog, built on first use."""
    global _vendor_catalog
    if _vendor_catalog is None:
        _vendor_catalog = build_vendor_catalog()
    return _vendor_catalog


def reset_vendor_catalog() -> None:
    global _vendor_catalog
    _vendor_catalog = None


def get_vendor_plan_by_key(plan_key: Optional[str]) -> Optional[VendorPlan]:
    return get_vendor_catalog().get_plan_by_key(plan_key)


def get_vendor_plan_by_price_id(price_id: Optional[str]) -> Optional[VendorPlan]:
    return get_vendor_catalog().get_plan_by_price_id(price_id)


def get_vendor_entitlements(plan_key: Optional[str]) -> Optional[VendorEntitlements]:
    plan = get_vendor_plan_by_key(plan_key)
    if plan is None:
        return None
    return VendorEntitlements(
        tier=plan.tier,
        product_limit=plan.product_limit,
        commission_percent=plan.commission_percent,
    )


def get_product_limit_status(current_count: int, limit: Optional[int]) -> ProductLimitStatus:
    """A None limit is unlimited and never reached."""
    if limit is None:
        return ProductLimitStatus(reached=False, limit=None)
    return ProductLimitStatus(reached=current_count >= limit, limit=limit)
