"""Letter archive service: save, list, fetch, delete and schedule letters."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from letter_to_you.core.errors import NotFoundError, PersistenceError, ValidationError
from letter_to_you.db.enums import DeliveryOption, DeliveryStatus, EmailStatus, LetterSort
from letter_to_you.db.models import Letter, ScheduledEmail
from letter_to_you.utils.dates import add_months, now_utc

logger = logging.getLogger(__name__)


def count_words(text: str) -> int:
    """Whitespace-delimited word count."""
    return len(text.split())


def create_letter(
    db: Session,
    *,
    user_id: UUID,
    letter_content: str,
    mode: str | None = None,
    tone: str | None = None,
    questions: list[dict[str, Any]] | None = None,
) -> Letter:
    """
    Persist an immediately delivered letter.

    Raises:
        PersistenceError: the insert failed
    """
    letter = Letter(
        user_id=user_id,
        mode=mode or "general",
        tone=tone or "warm",
        questions=questions or [],
        letter_content=letter_content,
        word_count=count_words(letter_content),
        delivery_status=DeliveryStatus.IMMEDIATE.value,
    )
    db.add(letter)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to save letter for user %s", user_id, exc_info=exc)
        raise PersistenceError("Failed to save letter", details=type(exc).__name__)
    db.refresh(letter)
    logger.info("Letter saved for user %s", user_id)
    return letter


_SORT_ORDERS = {
    LetterSort.NEWEST: lambda: (Letter.created_at.desc(),),
    LetterSort.OLDEST: lambda: (Letter.created_at.asc(),),
    LetterSort.MODE: lambda: (Letter.mode.asc(), Letter.created_at.desc()),
    LetterSort.TONE: lambda: (Letter.tone.asc(), Letter.created_at.desc()),
}


def list_letters(
    db: Session, user_id: UUID, sort: LetterSort = LetterSort.NEWEST
) -> list[Letter]:
    """Letters owned by the user, in the requested order."""
    return (
        db.query(Letter)
        .filter(Letter.user_id == user_id)
        .order_by(*_SORT_ORDERS[sort]())
        .all()
    )


def get_letter(db: Session, user_id: UUID, letter_id: UUID) -> Letter:
    letter = (
        db.query(Letter)
        .filter(Letter.id == letter_id, Letter.user_id == user_id)
        .first()
    )
    if not letter:
        raise NotFoundError("Letter not found")
    return letter


def delete_letter(db: Session, user_id: UUID, letter_id: UUID) -> None:
    """Delete a letter owned by the user (and any pending delivery)."""
    letter = get_letter(db, user_id, letter_id)
    db.delete(letter)
    db.commit()
    logger.info("Letter %s deleted", letter_id)


# =============================================================================
# Future letters
# =============================================================================

def compute_delivery_date(
    option: DeliveryOption | str,
    custom_date: date | None = None,
    now: datetime | None = None,
) -> datetime:
    """
    Delivery timestamp for a future-letter preset.

    Custom dates deliver at midnight UTC and must be at least tomorrow.

    Raises:
        ValidationError: unknown option, or missing/too-early custom date
    """
    now = now or now_utc()
    try:
        option = DeliveryOption(option)
    except ValueError:
        raise ValidationError(f"Invalid delivery option: {option}")

    if option == DeliveryOption.ONE_WEEK:
        return now + timedelta(days=7)
    if option == DeliveryOption.ONE_MONTH:
        return add_months(now, 1)
    if option == DeliveryOption.THREE_MONTHS:
        return add_months(now, 3)
    if option == DeliveryOption.SIX_MONTHS:
        return add_months(now, 6)
    if option == DeliveryOption.ONE_YEAR:
        return add_months(now, 12)

    if custom_date is None:
        raise ValidationError("Please select a delivery date")
    tomorrow = (now + timedelta(days=1)).date()
    if custom_date < tomorrow:
        raise ValidationError("Delivery date must be tomorrow or later")
    return datetime.combine(custom_date, time.min, tzinfo=timezone.utc)


def schedule_letter(
    db: Session,
    *,
    user_id: UUID,
    letter_content: str,
    delivery_date: datetime,
    mode: str | None = None,
    tone: str | None = None,
    questions: list[dict[str, Any]] | None = None,
) -> tuple[Letter, ScheduledEmail]:
    """
    Save a letter for future delivery and queue its email.

    The letter and its ScheduledEmail are written in one transaction.
    """
    letter = Letter(
        user_id=user_id,
        mode=mode or "general",
        tone=tone or "warm",
        questions=questions or [],
        letter_content=letter_content,
        word_count=count_words(letter_content),
        delivery_status=DeliveryStatus.SCHEDULED.value,
        is_future_letter=True,
        delivery_date=delivery_date,
    )
    db.add(letter)
    try:
        db.flush()
        scheduled = ScheduledEmail(
            user_id=user_id,
            letter_id=letter.id,
            scheduled_for=delivery_date,
            status=EmailStatus.PENDING.value,
        )
        db.add(scheduled)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to schedule letter for user %s", user_id, exc_info=exc)
        raise PersistenceError("Failed to schedule letter", details=type(exc).__name__)

    db.refresh(letter)
    db.refresh(scheduled)
    logger.info("Letter %s scheduled for %s", letter.id, delivery_date.isoformat())
    return letter, scheduled
