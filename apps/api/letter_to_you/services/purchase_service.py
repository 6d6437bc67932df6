"""Purchase service: record completed checkouts and consume them exactly once."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from letter_to_you.db.enums import PurchaseStatus
from letter_to_you.db.models import Purchase
from letter_to_you.utils.dates import now_utc

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "NZD"


def record_purchase(
    db: Session,
    *,
    user_id: UUID,
    letter_mode: str,
    stripe_session_id: str,
    mode_name: str | None = None,
    amount: int | None = None,
    currency: str | None = None,
    stripe_payment_intent: str | None = None,
) -> tuple[Purchase, bool]:
    """
    Record a completed checkout.

    Idempotent on stripe_session_id: a redelivered webhook returns the
    existing row. Returns (purchase, created).
    """
    existing = get_by_session_id(db, stripe_session_id)
    if existing:
        logger.info("Purchase for checkout %s already recorded", stripe_session_id)
        return existing, False

    purchase = Purchase(
        user_id=user_id,
        letter_mode=letter_mode,
        mode_name=mode_name or letter_mode,
        stripe_session_id=stripe_session_id,
        stripe_payment_intent=stripe_payment_intent,
        amount=amount or 0,
        currency=(currency or DEFAULT_CURRENCY).upper(),
        status=PurchaseStatus.COMPLETED.value,
    )
    db.add(purchase)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent delivery of the same event won the insert
        db.rollback()
        existing = get_by_session_id(db, stripe_session_id)
        if existing is None:
            raise
        return existing, False
    db.refresh(purchase)
    logger.info("Purchase recorded: %s", purchase.id)
    return purchase, True


def get_by_session_id(db: Session, stripe_session_id: str) -> Purchase | None:
    return (
        db.query(Purchase)
        .filter(Purchase.stripe_session_id == stripe_session_id)
        .first()
    )


def find_unused_purchase(
    db: Session, *, user_id: UUID, stripe_session_id: str
) -> Purchase | None:
    """Completed, unused purchase for this checkout session and user."""
    return (
        db.query(Purchase)
        .filter(
            Purchase.stripe_session_id == stripe_session_id,
            Purchase.user_id == user_id,
            Purchase.status == PurchaseStatus.COMPLETED.value,
            Purchase.used.is_(False),
        )
        .first()
    )


def list_unused_purchases(
    db: Session, user_id: UUID, letter_mode: str | None = None
) -> list[Purchase]:
    """Completed, unused purchases, newest first (optionally for one mode)."""
    query = db.query(Purchase).filter(
        Purchase.user_id == user_id,
        Purchase.status == PurchaseStatus.COMPLETED.value,
        Purchase.used.is_(False),
    )
    if letter_mode:
        query = query.filter(Purchase.letter_mode == letter_mode)
    return query.order_by(Purchase.created_at.desc()).all()


def mark_used(
    db: Session,
    *,
    purchase_id: UUID,
    user_id: UUID,
    letter_id: UUID | None = None,
) -> Purchase | None:
    """
    Consume a purchase.

    A single conditional UPDATE guarded by ``used = false`` and ownership:
    exactly one concurrent caller sees a row change. Losers (already used,
    wrong owner, unknown id) get None and nothing is written.
    """
    result = db.execute(
        update(Purchase)
        .where(
            Purchase.id == purchase_id,
            Purchase.user_id == user_id,
            Purchase.used.is_(False),
        )
        .values(used=True, used_at=now_utc(), letter_id=letter_id)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    if result.rowcount != 1:
        logger.info("Purchase %s not consumed (missing, not owned or already used)", purchase_id)
        return None

    purchase = db.get(Purchase, purchase_id)
    if purchase is not None:
        db.refresh(purchase)
    logger.info("Purchase marked as used: %s", purchase_id)
    return purchase
