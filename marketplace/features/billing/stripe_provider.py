"""
Stripe billing provider implementation.

Implements BillingProvider protocol using Stripe API.
Handles webhook signature verification and event parsing.
"""
from typing import Dict, Any, Optional
import stripe

from marketplace.core.config import settings
from marketplace.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
)


# Stripe statuses folded into our status vocabulary
_STATUS_ALIASES = {
    "incomplete_expired": "canceled",
}


def normalize_subscription_status(status: Optional[str]) -> Optional[str]:
    if not status:
        return None
    return _STATUS_ALIASES.get(status, status)


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key (defaults to STRIPE_SECRET_KEY setting)
            webhook_secret: Stripe webhook secret (defaults to STRIPE_WEBHOOK_SECRET setting)
        """
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key

    def create_checkout_session(
        self,
        price_id: str,
        success_url: str,
        cancel_url: str,
        *,
        client_reference_id: str,
        customer_email: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """Create Stripe subscription checkout session."""
        session_metadata = dict(metadata or {})
        params: Dict[str, Any] = {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": client_reference_id,
            "metadata": session_metadata,
            # Subscription events only carry the subscription's own metadata
            "subscription_data": {"metadata": session_metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email
        try:
            session = stripe.checkout.Session.create(**params)
            return session.url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")

        sig_header = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig_header:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            event = stripe.Webhook.construct_event(
                body, sig_header, self.webhook_secret
            )
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        return self._parse_event(event)

    def _parse_event(self, event: Dict[str, Any]) -> BillingWebhookResult:
        """Parse Stripe event into normalized BillingWebhookResult."""
        event_type = event["type"]
        data = event.get("data", {}).get("object", {}) or {}
        metadata = dict(data.get("metadata") or {})

        subscription_id = None
        price_id = metadata.get("price_id")
        status = None
        user_id = metadata.get("user_id")

        if event_type.startswith("customer.subscription."):
            subscription_id = data.get("id")
            status = normalize_subscription_status(data.get("status"))
            if event_type == "customer.subscription.deleted":
                status = "canceled"
            items = (data.get("items") or {}).get("data") or []
            if items:
                price_id = (items[0].get("price") or {}).get("id") or price_id
        elif event_type == "checkout.session.completed":
            subscription_id = data.get("subscription")
            user_id = user_id or data.get("client_reference_id")

        return BillingWebhookResult(
            event_id=event["id"],
            event_type=event_type,
            user_id=user_id,
            subscription_id=subscription_id,
            price_id=price_id,
            status=status,
            metadata=metadata,
        )
