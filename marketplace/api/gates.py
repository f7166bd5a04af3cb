"""
Gate API.

Front-end layouts ask whether the caller may enter a route family and get
either {"allow": true} or {"redirect_to": ..., "reason": ...}.
"""
import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query

from marketplace.api.deps import gate_service
from marketplace.core.auth import Identity, get_current_identity, get_optional_identity
from marketplace.features.access.store import get_primary_store
from marketplace.features.gates.market_mode import (
    MarketAccessResult,
    enforce_gated_market_access,
    is_gated_mode,
    normalize_market_mode,
)
from marketplace.features.gates.service import GateService, RouteFamily
from marketplace.features.verification.service import summarize_verification
from marketplace.models.gate import GateAllow, GateRedirect

logger = logging.getLogger("marketplace")

router = APIRouter(prefix="/gates", tags=["gates"])


@router.get("/market-access", response_model=MarketAccessResult)
def market_access(
    mode: str = Query(..., description="Market mode, e.g. CBD_WELLNESS or INTOXICATING"),
    identity: Identity = Depends(get_current_identity),
    gates: GateService = Depends(gate_service),
):
    """Listing/purchase check for a market mode; non-gated modes always pass."""
    market_mode = normalize_market_mode(mode)
    if not is_gated_mode(market_mode):
        return MarketAccessResult(ok=True)

    store = get_primary_store()
    profile = store.fetch_profile(identity.user_id)
    verification = summarize_verification(store.fetch_latest_verification(identity.user_id))
    return enforce_gated_market_access(
        profile,
        verification,
        is_admin=gates.is_admin(identity, profile),
    )


@router.get("/{family}", response_model=Union[GateAllow, GateRedirect])
def evaluate_gate(
    family: RouteFamily,
    path: str = Query("/", description="Path the caller is trying to reach"),
    gated: bool = Query(False),
    mode: Optional[str] = Query(None),
    identity: Optional[Identity] = Depends(get_optional_identity),
    gates: GateService = Depends(gate_service),
):
    if mode is not None:
        gated = gated or is_gated_mode(normalize_market_mode(mode))

    result = gates.evaluate(family, identity, pathname=path, gated=gated)
    if isinstance(result, GateRedirect):
        logger.info(
            "[gate] redirect",
            extra={
                "user_id": identity.user_id if identity else None,
                "event_type": f"gate.{family.value}",
                "error_code": result.reason,
            },
        )
    return result
