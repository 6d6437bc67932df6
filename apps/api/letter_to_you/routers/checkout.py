"""Checkout router - Stripe checkout, purchase verification and consumption.

The browser leaves for Stripe and comes back on a cross-site redirect, so
every endpoint here accepts an explicit userId and falls back to the
checkout cookie when the auth session did not survive the round trip.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from letter_to_you.core.config import settings
from letter_to_you.core.deps import get_db, get_optional_user, parse_user_id, resolve_user_id
from letter_to_you.core.errors import ConflictError, LetterError, ValidationError
from letter_to_you.core.security import CHECKOUT_USER_COOKIE, AuthUser, set_continuity_cookie
from letter_to_you.core.structured_logging import build_log_context
from letter_to_you.schemas.checkout import (
    CheckoutSessionResponse,
    CreateCheckoutRequest,
    MarkPurchaseUsedRequest,
    MarkPurchaseUsedResponse,
    PurchaseSummary,
    SetCheckoutCookieRequest,
    UsedPurchase,
    VerifyPurchaseRequest,
    VerifyPurchaseResponse,
    WebhookAck,
)
from letter_to_you.schemas.common import SuccessResponse
from letter_to_you.services import checkout_service, purchase_service, question_bank

router = APIRouter(tags=["checkout"])
logger = logging.getLogger(__name__)


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    request: Request,
    data: CreateCheckoutRequest,
    user: AuthUser | None = Depends(get_optional_user),
):
    """Create a Stripe checkout session for one letter of a paid mode."""
    if user is None and not data.user_id:
        raise ValidationError("User must be logged in to purchase")
    if not data.mode:
        raise ValidationError("Letter mode is required")

    mode = question_bank.get_mode(data.mode)
    if mode is None:
        raise ValidationError(f"Unknown letter mode: {data.mode}")
    if not mode.paid:
        raise ValidationError("This mode does not require payment")

    user_id = resolve_user_id(request, data.user_id, user)
    session = checkout_service.create_checkout_session(
        user_id=user_id,
        mode=mode.id,
        mode_name=data.mode_name or mode.name,
    )
    logger.info(
        "Checkout started",
        extra=build_log_context(user_id=str(user_id), mode=mode.id, route=request.url.path),
    )
    return CheckoutSessionResponse(session_id=session.session_id, url=session.url)


@router.post("/set-checkout-cookie", response_model=SuccessResponse)
def set_checkout_cookie(
    request: Request,
    response: Response,
    data: SetCheckoutCookieRequest,
    user: AuthUser | None = Depends(get_optional_user),
):
    """Remember the user id in an HTTP-only cookie before leaving for checkout."""
    if user is None and not data.user_id:
        raise ValidationError("userId is required")
    user_id = resolve_user_id(request, data.user_id, user)
    set_continuity_cookie(
        response, CHECKOUT_USER_COOKIE, str(user_id), settings.CHECKOUT_COOKIE_MAX_AGE
    )
    return SuccessResponse()


def _reconcile_checkout(db: Session, user_id: UUID, session_id: str):
    """Record a paid checkout whose webhook has not landed yet."""
    try:
        completed = checkout_service.retrieve_completed_checkout(session_id)
    except LetterError as exc:
        logger.warning("Checkout reconcile skipped: %s", exc.message)
        return None
    if completed is None:
        return None
    try:
        owner = parse_user_id(completed.user_id)
    except ValidationError:
        return None
    if owner != user_id:
        logger.warning("Checkout %s belongs to another user", session_id)
        return None

    purchase, created = purchase_service.record_purchase(
        db,
        user_id=owner,
        letter_mode=completed.letter_mode,
        mode_name=completed.mode_name,
        stripe_session_id=completed.session_id,
        stripe_payment_intent=completed.payment_intent,
        amount=completed.amount,
        currency=completed.currency,
    )
    if created:
        logger.info("Purchase recorded ahead of webhook for checkout %s", session_id)
    return None if purchase.used else purchase


def _verify(db: Session, user_id: UUID, session_id: str | None) -> VerifyPurchaseResponse:
    if session_id:
        purchase = purchase_service.find_unused_purchase(
            db, user_id=user_id, stripe_session_id=session_id
        ) or _reconcile_checkout(db, user_id, session_id)
        if purchase is None:
            return VerifyPurchaseResponse(
                valid=False, message="Purchase not found or already used"
            )
        return VerifyPurchaseResponse(
            valid=True, purchase=PurchaseSummary.model_validate(purchase)
        )

    purchases = purchase_service.list_unused_purchases(db, user_id)
    return VerifyPurchaseResponse(
        purchases=[PurchaseSummary.model_validate(p) for p in purchases]
    )


@router.get(
    "/verify-purchase",
    response_model=VerifyPurchaseResponse,
    response_model_exclude_none=True,
)
def verify_purchase_get(
    request: Request,
    user_id: str | None = Query(None, alias="userId"),
    session_id: str | None = Query(None, alias="sessionId"),
    user: AuthUser | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Check for a completed, unused purchase.

    With sessionId: verdict for that checkout only. Without: every unused
    purchase for the user, newest first.
    """
    return _verify(db, resolve_user_id(request, user_id, user), session_id)


@router.post(
    "/verify-purchase",
    response_model=VerifyPurchaseResponse,
    response_model_exclude_none=True,
)
def verify_purchase_post(
    request: Request,
    data: VerifyPurchaseRequest,
    user: AuthUser | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return _verify(db, resolve_user_id(request, data.user_id, user), data.session_id)


@router.post("/mark-purchase-used", response_model=MarkPurchaseUsedResponse)
def mark_purchase_used(
    request: Request,
    data: MarkPurchaseUsedRequest,
    user: AuthUser | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Consume a purchase. Exactly one concurrent caller succeeds; the rest get 409."""
    user_id = resolve_user_id(request, data.user_id, user)
    purchase = purchase_service.mark_used(
        db, purchase_id=data.purchase_id, user_id=user_id, letter_id=data.letter_id
    )
    if purchase is None:
        raise ConflictError("Purchase not found or already used")
    return MarkPurchaseUsedResponse(
        purchase=UsedPurchase(id=purchase.id, used_at=purchase.used_at)
    )


@router.post("/stripe-webhook", response_model=WebhookAck)
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Receive Stripe webhook events.

    Security:
    - Verifies the Stripe-Signature header against the raw body

    Processing:
    - checkout.session.completed records a purchase (idempotent per session)
    - Store failures are logged and still acknowledged so Stripe stops retrying
    """
    payload = await request.body()
    event = checkout_service.parse_webhook_event(
        payload, request.headers.get("stripe-signature")
    )
    event_type = event.get("type")

    if event_type == checkout_service.CHECKOUT_COMPLETED:
        completed = checkout_service.completed_checkout_from_event(event)
        try:
            user_id = parse_user_id(completed.user_id)
        except ValidationError:
            logger.error("Checkout %s has a malformed userId", completed.session_id)
            raise ValidationError("Missing metadata")

        try:
            purchase_service.record_purchase(
                db,
                user_id=user_id,
                letter_mode=completed.letter_mode,
                mode_name=completed.mode_name,
                stripe_session_id=completed.session_id,
                stripe_payment_intent=completed.payment_intent,
                amount=completed.amount,
                currency=completed.currency,
            )
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "Failed to record purchase for checkout %s",
                completed.session_id,
                exc_info=exc,
            )
    elif event_type == checkout_service.CHECKOUT_EXPIRED:
        session_id = event.get("data", {}).get("object", {}).get("id")
        logger.info("Checkout session expired: %s", session_id)
    else:
        logger.info("Unhandled Stripe event type: %s", event_type)

    return WebhookAck()
