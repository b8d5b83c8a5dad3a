"""
Billing service: Stripe checkout sessions and subscription webhooks.

Checkout creates a subscription session for a tier whose price ID is
configured. Webhook events are verified against STRIPE_WEBHOOK_SECRET and
mirrored onto the user's profile row (tier, status, Stripe ids).
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import stripe

from app.config import Settings
from app.errors import BillingConfigError, BillingError
from app.models.media import FREE_TIER
from app.services.supabase_service import KnowledgeBaseStore
from app.utils.logging_utils import APP_LOGGER_NAME


logger = logging.getLogger(APP_LOGGER_NAME)

# Subscription statuses that drop the user back to the free tier
INACTIVE_STATUSES = ("canceled", "unpaid", "incomplete_expired")


class BillingService:
    def __init__(self, settings: Settings, store: KnowledgeBaseStore):
        self.settings = settings
        self.store = store

    @property
    def configured(self) -> bool:
        return bool(self.settings.stripe_secret_key)

    async def create_checkout_session(self, user_id: str, tier: str, email: Optional[str] = None) -> str:
        """
        Create a Stripe Checkout session for a subscription tier.

        Returns:
            The hosted checkout URL

        Raises:
            BillingConfigError: Stripe key or tier price not configured
            BillingError: Unknown tier (400) or Stripe API failure (500)
        """
        if not self.configured:
            raise BillingConfigError("Stripe not configured. Set STRIPE_SECRET_KEY.")

        prices = self.settings.stripe_prices
        if tier not in prices:
            raise BillingError(f"Invalid tier: {tier}")
        price_id = prices[tier]
        if not price_id:
            raise BillingConfigError(f"No Stripe price configured for tier '{tier}'")

        frontend_url = self.settings.frontend_url.rstrip('/')
        params: Dict[str, Any] = {
            "api_key": self.settings.stripe_secret_key,
            "mode": "subscription",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": f"{frontend_url}/dashboard?checkout=success",
            "cancel_url": f"{frontend_url}/dashboard?checkout=cancelled",
            "client_reference_id": user_id,
            "metadata": {"user_id": user_id, "tier": tier},
            "subscription_data": {"metadata": {"user_id": user_id, "tier": tier}},
        }
        if email:
            params["customer_email"] = email

        try:
            session = await asyncio.to_thread(stripe.checkout.Session.create, **params)
        except stripe.StripeError as e:
            raise BillingError(f"Failed to create checkout session: {e.user_message or str(e)}", status_code=500)

        logger.info(f"Checkout session {session.id} created for user {user_id} ({tier})")
        return session.url

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Any:
        """
        Verify a webhook payload's signature and parse it.

        Raises:
            BillingConfigError: Webhook secret not configured
            BillingError: Bad payload or signature (400)
        """
        if not self.settings.stripe_webhook_secret:
            raise BillingConfigError("Stripe webhook secret not configured. Set STRIPE_WEBHOOK_SECRET.")
        if not signature:
            raise BillingError("Missing Stripe-Signature header")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.settings.stripe_webhook_secret)
        except ValueError:
            raise BillingError("Invalid webhook payload")
        except stripe.SignatureVerificationError:
            raise BillingError("Invalid webhook signature")

    async def handle_event(self, event: Any) -> bool:
        """
        Apply a verified event to the user's profile.

        Returns:
            True if the event type was handled, False if ignored
        """
        event_type = event["type"]
        data = event["data"]["object"]

        if event_type == "checkout.session.completed":
            metadata = data.get("metadata") or {}
            user_id = data.get("client_reference_id") or metadata.get("user_id")
            if not user_id:
                logger.warning(f"Checkout session {data.get('id')} has no user reference; ignoring")
                return False
            await self.store.update_profile(user_id, {
                "subscription_tier": metadata.get("tier") or "pro",
                "subscription_status": "active",
                "stripe_customer_id": data.get("customer"),
                "stripe_subscription_id": data.get("subscription"),
            })
            logger.info(f"Subscription activated for user {user_id}")
            return True

        if event_type == "customer.subscription.updated":
            status = data.get("status")
            fields: Dict[str, Any] = {"subscription_status": status}
            if status in INACTIVE_STATUSES:
                fields["subscription_tier"] = FREE_TIER
            await self.store.update_profile_by_customer(data.get("customer"), fields)
            logger.info(f"Subscription {data.get('id')} updated: {status}")
            return True

        if event_type == "customer.subscription.deleted":
            await self.store.update_profile_by_customer(data.get("customer"), {
                "subscription_tier": FREE_TIER,
                "subscription_status": "canceled",
                "stripe_subscription_id": None,
            })
            logger.info(f"Subscription {data.get('id')} deleted")
            return True

        logger.info(f"Ignoring Stripe event {event_type}")
        return False
