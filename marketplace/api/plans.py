"""
Plan catalog API.

Only plans whose Stripe price id is configured are listed. The diagnostics
endpoint tells an admin which settings keys are still missing.
"""
from typing import Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from marketplace.core.auth import Identity, require_admin
from marketplace.features.plans.consumer import get_consumer_catalog
from marketplace.features.plans.service import find_shared_price_ids, get_missing_plan_config
from marketplace.features.plans.vendor import get_vendor_catalog
from marketplace.models.plan import ConsumerPlan, VendorPlan

router = APIRouter(prefix="/plans", tags=["plans"])


class ConsumerPlansResponse(BaseModel):
    plans: List[ConsumerPlan]
    has_consumer_plans: bool


class VendorPlansResponse(BaseModel):
    plans: List[VendorPlan]
    has_vendor_plans: bool


class PlanDiagnosticsResponse(BaseModel):
    missing_config: Dict[str, List[str]]
    shared_price_ids: List[str]


@router.get("/consumer", response_model=ConsumerPlansResponse)
def list_consumer_plans():
    catalog = get_consumer_catalog()
    return ConsumerPlansResponse(plans=list(catalog.plans), has_consumer_plans=not catalog.is_empty)


@router.get("/vendor", response_model=VendorPlansResponse)
def list_vendor_plans():
    catalog = get_vendor_catalog()
    return VendorPlansResponse(plans=list(catalog.plans), has_vendor_plans=not catalog.is_empty)


@router.get("/diagnostics", response_model=PlanDiagnosticsResponse)
def plan_diagnostics(admin: Identity = Depends(require_admin)):
    """Settings keys with no price id, per family (admin only)."""
    return PlanDiagnosticsResponse(
        missing_config=get_missing_plan_config(),
        shared_price_ids=find_shared_price_ids(),
    )
