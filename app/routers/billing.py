"""
Billing router: Stripe checkout and webhook endpoints.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Request

from app.dependencies import get_billing_service, get_current_user, get_logger
from app.errors import MediaAppError, error_response
from app.models import CheckoutRequest, CheckoutResponse
from app.services.billing_service import BillingService


router = APIRouter(prefix="/api", tags=["Billing"])


@router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    body: CheckoutRequest = Body(...),
    user: Dict[str, Any] = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
    logger: logging.LoggerAdapter = Depends(get_logger),
):
    """
    Start a Stripe Checkout subscription for the authenticated user.

    userId in the body, when given, must match the bearer token's user.
    """
    if body.user_id and body.user_id != user["id"]:
        return error_response(403, "User ID does not match the authenticated user")

    try:
        url = await billing.create_checkout_session(user["id"], body.tier, email=user.get("email"))
    except MediaAppError as e:
        logger.error(f"Checkout failed: {e.message}")
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception(f"Unexpected checkout error: {str(e)}")
        return error_response(500, f"Failed to create checkout session: {str(e)}")

    return {"success": True, "url": url}


@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    billing: BillingService = Depends(get_billing_service),
    logger: logging.LoggerAdapter = Depends(get_logger),
):
    """
    Receive signed Stripe events and mirror subscription changes onto the
    user's profile. The raw body is needed for signature verification.
    """
    payload = await request.body()
    try:
        event = billing.construct_event(payload, stripe_signature)
        await billing.handle_event(event)
    except MediaAppError as e:
        logger.error(f"Stripe webhook rejected: {e.message}")
        return error_response(e.status_code, e.message)

    return {"received": True}
