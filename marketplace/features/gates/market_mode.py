"""
marketplace/features/gates/market_mode.py

Market modes and the gated (intoxicating) market check.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from marketplace.models.records import ProfileRecord
from marketplace.models.verification import VerificationSummary


class MarketMode(str, Enum):
    CBD_WELLNESS = "CBD_WELLNESS"
    INDUSTRIAL = "INDUSTRIAL"
    SERVICES = "SERVICES"
    INTOXICATING = "INTOXICATING"


_ALIASES = {
    "CBD": MarketMode.CBD_WELLNESS,
    "GATED": MarketMode.INTOXICATING,
}

GATED_MARKET_REQUIRES_VERIFICATION = "GATED_MARKET_REQUIRES_VERIFICATION"
GATED_MARKET_MESSAGE = "Intoxicating market requires 21+ verification."


class MarketAccessResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    status: Optional[int] = None
    code: Optional[str] = None
    message: Optional[str] = None


def normalize_market_mode(value: Optional[str]) -> Optional[MarketMode]:
    if not value:
        return None
    if value in MarketMode.__members__:
        return MarketMode(value)
    return _ALIASES.get(value)


def is_gated_mode(mode: Optional[MarketMode]) -> bool:
    return mode is MarketMode.INTOXICATING


def enforce_gated_market_access(
    profile: Optional[ProfileRecord],
    verification: VerificationSummary,
    *,
    is_admin: bool = False,
) -> MarketAccessResult:
    """Admins pass; everyone else needs an approved verification."""
    if is_admin or (profile is not None and profile.has_admin_role):
        return MarketAccessResult(ok=True)
    if verification.status == "approved":
        return MarketAccessResult(ok=True)
    return MarketAccessResult(
        ok=False,
        status=403,
        code=GATED_MARKET_REQUIRES_VERIFICATION,
        message=GATED_MARKET_MESSAGE,
    )
