"""
Billing service orchestrator.

Coordinates:
- Subscription checkout for consumer and vendor plans
- Webhook processing (idempotent by Stripe event id)
- Subscription state sync into consumer_subscriptions / vendors

All Stripe-specific code is in stripe_provider.py.
"""
import hashlib
import logging
from datetime import datetime, timezone
from typing import Optional, Dict

from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from marketplace.core.config import settings
from marketplace.core.database import (
    get_db_session,
    billing_events,
    consumer_subscriptions,
    vendors,
)
from marketplace.core.errors import ValidationError
from marketplace.core.logging import log_event
from marketplace.features.billing.provider import (
    BillingProvider,
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
)
from marketplace.features.billing.stripe_provider import StripeProvider
from marketplace.features.loyalty.ledger import award_points
from marketplace.features.loyalty.rules import get_subscription_bonus_points
from marketplace.features.plans.service import get_plan_by_key, get_plan_by_price_id
from marketplace.models.plan import ConsumerPlan, VendorPlan

logger = logging.getLogger(__name__)


def billing_enabled() -> bool:
    """Check if billing is enabled (Stripe configured)."""
    return bool(settings.STRIPE_SECRET_KEY)


def get_provider() -> Optional[BillingProvider]:
    """Get billing provider if billing is enabled."""
    if not billing_enabled():
        return None
    return StripeProvider()


def _plan_type(plan) -> str:
    return "vendor" if isinstance(plan, VendorPlan) else "consumer"


def start_checkout(
    user_id: str,
    plan_key: str,
    *,
    email: Optional[str] = None,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    affiliate_code: Optional[str] = None,
) -> Optional[str]:
    """
    Start a subscription checkout for a catalog plan.

    Returns:
        Checkout URL, or None if billing disabled

    Raises:
        ValidationError: plan_key unknown or its price id is not configured
        BillingProviderError: If checkout creation fails
    """
    provider = get_provider()
    if not provider:
        return None

    plan = get_plan_by_key(plan_key)
    if plan is None:
        raise ValidationError(f"Unknown or unconfigured plan: {plan_key}")

    plan_type = _plan_type(plan)
    base_url = settings.APP_BASE_URL.rstrip("/")
    metadata: Dict[str, str] = {
        "user_id": user_id,
        "plan_key": plan.plan_key,
        "plan_type": plan_type,
        "price_id": plan.price_id,
    }
    if affiliate_code:
        metadata["affiliate_code"] = affiliate_code

    url = provider.create_checkout_session(
        price_id=plan.price_id,
        success_url=success_url or f"{base_url}/{plan_type}/dashboard?checkout=success",
        cancel_url=cancel_url or f"{base_url}/pricing?tab={plan_type}&checkout=canceled",
        client_reference_id=user_id,
        customer_email=email,
        metadata=metadata,
    )
    logger.info(
        "[billing] checkout session created",
        extra={"user_id": user_id, "event_type": "checkout.created"},
    )
    return url


def _apply_consumer_subscription(session, user_id: str, result: BillingWebhookResult, plan: ConsumerPlan) -> bool:
    """Upsert the consumer subscription row. Returns True when the row is newly created."""
    existing = session.execute(
        select(consumer_subscriptions.c.user_id).where(consumer_subscriptions.c.user_id == user_id)
    ).first()
    values = {
        "subscription_status": result.status,
        "consumer_plan_key": plan.plan_key,
        "stripe_subscription_id": result.subscription_id,
        "updated_at": datetime.now(timezone.utc),
    }
    if existing:
        session.execute(
            update(consumer_subscriptions)
            .where(consumer_subscriptions.c.user_id == user_id)
            .values(**values)
        )
        return False
    session.execute(insert(consumer_subscriptions).values(user_id=user_id, **values))
    return True


def _apply_vendor_subscription(session, user_id: str, result: BillingWebhookResult, plan: VendorPlan) -> None:
    updated = session.execute(
        update(vendors)
        .where(vendors.c.owner_user_id == user_id)
        .values(
            subscription_status=result.status,
            vendor_plan_key=plan.plan_key,
            stripe_subscription_id=result.subscription_id,
        )
    )
    if updated.rowcount == 0:
        logger.warning(
            "[billing] no vendor row for subscription owner",
            extra={"user_id": user_id, "error_code": "vendor_not_found"},
        )


def apply_subscription_state(result: BillingWebhookResult) -> None:
    """
    Apply a parsed subscription event to the database (idempotent).

    Events without a user, status or a price id that maps to a catalog plan
    are ignored.
    """
    if not (result.user_id and result.status):
        return

    plan = get_plan_by_price_id(result.price_id)
    if plan is None:
        logger.warning(
            "[billing] price id does not map to a plan",
            extra={"user_id": result.user_id, "error_code": "unknown_price", "event_type": result.event_type},
        )
        return

    created = False
    with get_db_session() as session:
        if isinstance(plan, VendorPlan):
            _apply_vendor_subscription(session, result.user_id, result, plan)
        else:
            created = _apply_consumer_subscription(session, result.user_id, result, plan)

    # First consumer subscription earns the welcome bonus
    if created and result.status in ("active", "trialing"):
        award_points(
            result.user_id,
            get_subscription_bonus_points(),
            event_type="subscription",
            details={"plan_key": plan.plan_key, "subscription_id": result.subscription_id},
        )


def process_webhook_event(headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
    """
    Process billing webhook event (idempotent).

    1. Verify signature
    2. Check idempotency (skip if already processed)
    3. Apply subscription state changes
    4. Mark as processed

    Raises:
        BillingWebhookError: If billing disabled or signature invalid
    """
    provider = get_provider()
    if not provider:
        raise BillingWebhookError("Billing not enabled")

    result = provider.handle_webhook(headers, body)

    payload_hash = hashlib.sha256(body).hexdigest()

    try:
        with get_db_session() as session:
            existing = session.execute(
                select(billing_events.c.processed).where(
                    billing_events.c.stripe_event_id == result.event_id
                )
            ).first()
            if existing is not None and existing.processed:
                logger.info(
                    "[billing] duplicate webhook event skipped",
                    extra={"event_type": result.event_type},
                )
                return result

            if existing is None:
                session.execute(
                    insert(billing_events).values(
                        stripe_event_id=result.event_id,
                        event_type=result.event_type,
                        payload_hash=payload_hash,
                        processed=False,
                    )
                )
            else:
                # Earlier delivery failed before it was marked processed
                logger.warning(
                    "[billing] retrying unprocessed webhook event",
                    extra={"event_type": result.event_type, "error_code": "webhook_retry"},
                )
    except IntegrityError:
        # Another worker recorded this event first
        return result

    try:
        if result.is_subscription_event:
            apply_subscription_state(result)

        with get_db_session() as session:
            session.execute(
                update(billing_events)
                .where(billing_events.c.stripe_event_id == result.event_id)
                .values(processed=True, processed_at=datetime.now(timezone.utc), error=None)
            )
    except Exception as e:
        with get_db_session() as session:
            session.execute(
                update(billing_events)
                .where(billing_events.c.stripe_event_id == result.event_id)
                .values(error=str(e))
            )
        raise

    log_event(
        "info",
        "[billing] webhook processed",
        request_id=None,
        user_id=result.user_id,
        event_type=result.event_type,
        extra={"subscription_id": result.subscription_id, "status": result.status},
    )
    return result


__all__ = [
    "BillingProviderError",
    "BillingWebhookError",
    "billing_enabled",
    "get_provider",
    "start_checkout",
    "apply_subscription_state",
    "process_webhook_event",
]
