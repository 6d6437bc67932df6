"""Scheduled delivery sweep for future letters.

Picks up pending ScheduledEmail rows that are due, emails each letter, and
moves both the row and its letter to their final state. Each row leaves
``pending`` exactly once: the status flip is a conditional update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from letter_to_you.core.config import settings
from letter_to_you.core.errors import ConfigurationError
from letter_to_you.db.enums import DeliveryStatus, EmailStatus
from letter_to_you.db.models import Letter, Profile, ScheduledEmail
from letter_to_you.services import resend_email_service
from letter_to_you.services.letter_generation_service import format_letter_date
from letter_to_you.utils.dates import now_utc

logger = logging.getLogger(__name__)

DEFAULT_RECIPIENT_NAME = "Friend"


@dataclass
class SweepResult:
    processed: int = 0
    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if not self.processed:
            return "No emails to send"
        return "Email processing complete"


def get_due_emails(
    db: Session, now: datetime | None = None, limit: int | None = None
) -> list[ScheduledEmail]:
    return (
        db.query(ScheduledEmail)
        .filter(
            ScheduledEmail.status == EmailStatus.PENDING.value,
            ScheduledEmail.scheduled_for <= (now or now_utc()),
        )
        .order_by(ScheduledEmail.scheduled_for.asc())
        .limit(limit or settings.SCHEDULED_EMAIL_BATCH_SIZE)
        .all()
    )


def _finish(
    db: Session,
    scheduled_id: UUID,
    letter_id: UUID,
    *,
    sent: bool,
    error_message: str | None = None,
) -> bool:
    """Move a pending row (and its letter) to sent/delivered or failed/failed."""
    now = now_utc()
    values = (
        {"status": EmailStatus.SENT.value, "sent_at": now}
        if sent
        else {"status": EmailStatus.FAILED.value, "error_message": error_message}
    )
    result = db.execute(
        update(ScheduledEmail)
        .where(
            ScheduledEmail.id == scheduled_id,
            ScheduledEmail.status == EmailStatus.PENDING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        logger.info("Scheduled email %s already processed", scheduled_id)
        return False

    letter_values = (
        {"delivery_status": DeliveryStatus.DELIVERED.value, "delivered_at": now}
        if sent
        else {"delivery_status": DeliveryStatus.FAILED.value}
    )
    db.execute(
        update(Letter)
        .where(Letter.id == letter_id)
        .values(**letter_values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return True


async def deliver_one(db: Session, scheduled: ScheduledEmail) -> tuple[bool, str | None]:
    """Send one scheduled letter. Returns (sent, error_message)."""
    letter = db.get(Letter, scheduled.letter_id)
    profile = db.get(Profile, scheduled.user_id)
    email = profile.email if profile else None
    if not email or letter is None or not letter.letter_content:
        return False, "Missing email or letter content"

    name = (profile.display_name if profile else None) or DEFAULT_RECIPIENT_NAME
    written_on = format_letter_date(letter.created_at)
    success, error, message_id = await resend_email_service.send_email(
        to_email=email,
        subject=resend_email_service.FUTURE_LETTER_SUBJECT,
        html=resend_email_service.format_future_letter_html(name, letter.letter_content, written_on),
        text=resend_email_service.format_future_letter_text(name, letter.letter_content, written_on),
        idempotency_key=f"scheduled-email/{scheduled.id}",
    )
    if success:
        logger.info("Scheduled email %s sent, message_id=%s", scheduled.id, message_id)
    return success, error


async def send_due_emails(db: Session, now: datetime | None = None) -> SweepResult:
    """
    Deliver every due pending letter (one batch).

    Raises:
        ConfigurationError: email delivery is not configured (nothing is touched)
    """
    if not resend_email_service.is_configured():
        raise ConfigurationError("Email delivery not configured")

    due = get_due_emails(db, now)
    result = SweepResult()
    if not due:
        logger.info("No emails due for delivery")
        return result

    logger.info("Found %d emails to send", len(due))
    for scheduled in due:
        scheduled_id, letter_id = scheduled.id, scheduled.letter_id
        sent, error = await deliver_one(db, scheduled)
        if not _finish(db, scheduled_id, letter_id, sent=sent, error_message=error):
            continue
        result.processed += 1
        if sent:
            result.success += 1
        else:
            result.failed += 1
            result.errors.append(error or "Unknown error")
            logger.warning("Failed to send scheduled email %s: %s", scheduled_id, error)
    return result
