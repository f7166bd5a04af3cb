"""
Billing API routes.

Minimal surface:
- POST /v1/billing/checkout: Create subscription checkout session
- POST /v1/billing/webhook: Handle Stripe webhooks
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, field_validator

from marketplace.core.auth import Identity, get_current_identity
from marketplace.core.errors import BillingDisabledError
from marketplace.features.billing.provider import BillingProviderError, BillingWebhookError
from marketplace.features.billing.service import (
    billing_enabled,
    process_webhook_event,
    start_checkout,
)

logger = logging.getLogger("marketplace")

router = APIRouter(prefix="/billing", tags=["billing"])


class CheckoutRequest(BaseModel):
    """Request to create checkout session."""
    plan_key: str
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None
    affiliate_code: Optional[str] = None

    @field_validator("plan_key", "affiliate_code")
    @classmethod
    def _trim(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class CheckoutResponse(BaseModel):
    """Response with checkout URL."""
    url: str


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(body: CheckoutRequest, identity: Identity = Depends(get_current_identity)):
    """
    Create Stripe checkout session for a catalog plan.

    Errors:
        503: Billing disabled (STRIPE_SECRET_KEY not set)
        400: Unknown or unconfigured plan_key
        502: Stripe API error
    """
    if not billing_enabled():
        raise BillingDisabledError("Billing is not configured")

    try:
        url = start_checkout(
            identity.user_id,
            body.plan_key or "",
            email=identity.email,
            success_url=body.success_url,
            cancel_url=body.cancel_url,
            affiliate_code=body.affiliate_code,
        )
    except BillingProviderError as e:
        logger.error(
            "[billing] checkout failed",
            extra={"user_id": identity.user_id, "error_code": "stripe_error", "error_message": str(e)},
        )
        raise HTTPException(status_code=502, detail="Payment provider error")

    if not url:
        raise BillingDisabledError("Billing is not configured")
    return CheckoutResponse(url=url)


@router.post("/webhook")
async def handle_webhook(request: Request):
    """
    Handle Stripe webhook events.

    Verifies signature, processes event idempotently, and syncs subscription
    state. Event deduplication uses stripe_event_id (billing_events table).

    Errors:
        400: Invalid signature or payload
        503: Billing disabled
    """
    if not billing_enabled():
        raise BillingDisabledError("Billing is not configured")

    # Raw body is required for signature verification
    body = await request.body()
    headers = dict(request.headers)

    try:
        result = process_webhook_event(headers, body)
    except BillingWebhookError as e:
        logger.warning("[billing] webhook rejected", extra={"error_code": "invalid_webhook", "error_message": str(e)})
        raise HTTPException(status_code=400, detail="Invalid webhook")
    return {"received": True, "event_id": result.event_id}
