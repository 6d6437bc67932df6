"""Stripe checkout: create sessions and verify webhook deliveries."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote
from uuid import UUID

import stripe

from letter_to_you.core.config import settings
from letter_to_you.core.errors import ConfigurationError, LetterError, ValidationError

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_EXPIRED = "checkout.session.expired"


class CheckoutError(LetterError):
    status_code = 500
    default_message = "Failed to create checkout session"


@dataclass
class CheckoutSession:
    session_id: str
    url: str


def build_success_url(mode: str) -> str:
    # {CHECKOUT_SESSION_ID} is substituted by Stripe
    return (
        f"{settings.SITE_URL.rstrip('/')}/write/{quote(mode)}"
        "?payment=success&session_id={CHECKOUT_SESSION_ID}"
    )


def build_cancel_url() -> str:
    return f"{settings.SITE_URL.rstrip('/')}/?payment=cancelled"


def create_checkout_session(
    *, user_id: UUID, mode: str, mode_name: str | None = None
) -> CheckoutSession:
    """
    Create a one-off payment session for a letter mode.

    The purchase is keyed by metadata (userId, letterMode, modeName); the
    webhook reads it back when the payment completes.

    Raises:
        ConfigurationError: Stripe keys are missing
        CheckoutError: Stripe rejected the request
    """
    if not settings.STRIPE_SECRET_KEY or not settings.STRIPE_PRICE_ID:
        logger.error("Stripe checkout not configured")
        raise ConfigurationError("Payment system not configured")

    try:
        session = stripe.checkout.Session.create(
            api_key=settings.STRIPE_SECRET_KEY,
            payment_method_types=["card"],
            line_items=[{"price": settings.STRIPE_PRICE_ID, "quantity": 1}],
            mode="payment",
            success_url=build_success_url(mode),
            cancel_url=build_cancel_url(),
            metadata={
                "userId": str(user_id),
                "letterMode": mode,
                "modeName": mode_name or mode,
            },
            billing_address_collection="required",
            allow_promotion_codes=True,
        )
    except stripe.StripeError as exc:
        logger.error("Stripe checkout error: %s", type(exc).__name__)
        raise CheckoutError(details=getattr(exc, "user_message", None) or str(exc))

    logger.info("Checkout session created for mode %s", mode)
    return CheckoutSession(session_id=session.id, url=session.url)


def parse_webhook_event(payload: bytes, signature: str | None) -> dict[str, Any]:
    """
    Verify a webhook delivery's signature and decode it.

    Raises:
        ConfigurationError: webhook secret missing
        ValidationError: signature missing or invalid, or body not JSON
    """
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET not configured")
        raise ConfigurationError("Webhook secret not configured")
    if not signature:
        raise ValidationError("No signature")

    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"), signature, settings.STRIPE_WEBHOOK_SECRET
        )
    except stripe.SignatureVerificationError:
        logger.warning("Webhook signature verification failed")
        raise ValidationError("Webhook Error: invalid signature")

    try:
        return json.loads(payload)
    except ValueError:
        raise ValidationError("Webhook Error: invalid payload")


@dataclass
class CompletedCheckout:
    session_id: str
    user_id: str
    letter_mode: str
    mode_name: str | None
    amount: int | None
    currency: str | None
    payment_intent: str | None


def completed_checkout_from_event(event: dict[str, Any]) -> CompletedCheckout:
    """
    Pull purchase fields out of a checkout.session.completed event.

    Raises:
        ValidationError: userId or letterMode metadata missing
    """
    return completed_checkout_from_session(event.get("data", {}).get("object", {}) or {})


def completed_checkout_from_session(session: dict[str, Any]) -> CompletedCheckout:
    metadata = session.get("metadata") or {}
    user_id = metadata.get("userId")
    letter_mode = metadata.get("letterMode")
    if not user_id or not letter_mode:
        logger.error("Checkout %s completed without purchase metadata", session.get("id"))
        raise ValidationError("Missing metadata")

    payment_intent = session.get("payment_intent")
    if isinstance(payment_intent, dict):
        payment_intent = payment_intent.get("id")

    return CompletedCheckout(
        session_id=session["id"],
        user_id=user_id,
        letter_mode=letter_mode,
        mode_name=metadata.get("modeName"),
        amount=session.get("amount_total"),
        currency=session.get("currency"),
        payment_intent=payment_intent,
    )


def retrieve_completed_checkout(session_id: str) -> CompletedCheckout | None:
    """
    Look a checkout session up directly at Stripe.

    Used when the browser returns before the webhook: a paid session with
    purchase metadata is returned, anything else (unknown, unpaid, no
    metadata) is None.

    Raises:
        ConfigurationError: Stripe keys are missing
        CheckoutError: Stripe could not be reached
    """
    if not settings.STRIPE_SECRET_KEY:
        raise ConfigurationError("Payment system not configured")

    try:
        session = stripe.checkout.Session.retrieve(
            session_id, api_key=settings.STRIPE_SECRET_KEY
        )
    except stripe.InvalidRequestError:
        logger.info("Checkout session %s not found at Stripe", session_id)
        return None
    except stripe.StripeError as exc:
        logger.warning("Stripe lookup failed: %s", type(exc).__name__)
        raise CheckoutError("Failed to look up checkout session")

    if session.get("payment_status") != "paid":
        return None
    try:
        return completed_checkout_from_session(session)
    except ValidationError:
        return None
