"""
marketplace/features/compliance/service.py

Product compliance rules: COA requirements, the intoxicating-product cutoff
date and the Delta-8 disclaimer.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from marketplace.core.config import settings


DELTA8_WARNING_TEXT = (
    "Warning: This Delta-8 product may contain heavy metals or harsh chemicals unless the "
    "vendor provides verified documentation of safe manufacturing processes. Use at your own discretion."
)


class ProductType(str, Enum):
    NON_INTOXICATING = "non_intoxicating"
    INTOXICATING = "intoxicating"
    DELTA8 = "delta8"


class ProductCompliancePayload(BaseModel):
    product_type: ProductType
    coa_url: Optional[str] = None
    coa_object_path: Optional[str] = None
    delta8_disclaimer_ack: bool = False
    category_requires_coa: bool = False


class ComplianceIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


def get_intoxicating_cutoff_date() -> str:
    return settings.INTOXICATING_ALLOWED_UNTIL


def _parse_cutoff(value: str) -> Optional[datetime]:
    try:
        parsed = date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None
    return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)


def is_intoxicating_allowed_now(now: Optional[datetime] = None, cutoff: Optional[str] = None) -> bool:
    """True until the cutoff date (UTC midnight); an unparseable cutoff disallows."""
    cutoff_at = _parse_cutoff(cutoff if cutoff is not None else get_intoxicating_cutoff_date())
    if cutoff_at is None:
        return False
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current < cutoff_at


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def validate_product_compliance(
    payload: ProductCompliancePayload,
    now: Optional[datetime] = None,
) -> List[ComplianceIssue]:
    issues: List[ComplianceIssue] = []

    if payload.category_requires_coa and not (_present(payload.coa_url) or _present(payload.coa_object_path)):
        issues.append(ComplianceIssue(field="coa_url", message="COA is required for this product category"))

    if payload.product_type is ProductType.INTOXICATING and not is_intoxicating_allowed_now(now):
        issues.append(
            ComplianceIssue(
                field="product_type",
                message=(
                    f"Intoxicating products are only allowed until {get_intoxicating_cutoff_date()}. "
                    "The cutoff date has passed."
                ),
            )
        )

    if payload.product_type is ProductType.DELTA8 and not payload.delta8_disclaimer_ack:
        issues.append(
            ComplianceIssue(
                field="delta8_disclaimer_ack",
                message="Delta-8 disclaimer acknowledgement is required",
            )
        )

    return issues


def requires_warning(product_type: ProductType) -> bool:
    return product_type is ProductType.DELTA8
