"""
Product compliance API.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from marketplace.core.auth import Identity, get_current_identity
from marketplace.features.compliance.service import (
    DELTA8_WARNING_TEXT,
    ComplianceIssue,
    ProductCompliancePayload,
    get_intoxicating_cutoff_date,
    requires_warning,
    validate_product_compliance,
)

router = APIRouter(prefix="/compliance", tags=["compliance"])


class ComplianceResponse(BaseModel):
    ok: bool
    issues: List[ComplianceIssue]
    warning_text: Optional[str] = None
    intoxicating_allowed_until: str


@router.post("/products/validate", response_model=ComplianceResponse)
def validate_product(
    payload: ProductCompliancePayload,
    identity: Identity = Depends(get_current_identity),
):
    issues = validate_product_compliance(payload)
    return ComplianceResponse(
        ok=not issues,
        issues=issues,
        warning_text=DELTA8_WARNING_TEXT if requires_warning(payload.product_type) else None,
        intoxicating_allowed_until=get_intoxicating_cutoff_date(),
    )
