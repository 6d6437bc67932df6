"""Letters router - generation, comparison, saving, emailing and the archive."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from letter_to_you.core.deps import (
    get_current_user,
    get_current_user_id,
    get_db,
    get_optional_user,
    resolve_user_id,
)
from letter_to_you.core.errors import ConfigurationError, LetterError, ValidationError
from letter_to_you.core.rate_limit import GENERATE_LIMIT, limiter
from letter_to_you.core.security import AuthUser
from letter_to_you.core.structured_logging import build_log_context
from letter_to_you.db.enums import LetterSort
from letter_to_you.schemas.letter import (
    CompareLettersRequest,
    CompareLettersResponse,
    EmailLetterRequest,
    EmailLetterResponse,
    GenerateLetterRequest,
    GenerateLetterResponse,
    LetterRead,
    SaveLetterRequest,
    SaveLetterResponse,
    SavedLetterSummary,
    ScheduleLetterRequest,
    ScheduledLetterRead,
)
from letter_to_you.services import (
    letter_generation_service,
    letter_service,
    profile_service,
    question_bank,
    resend_email_service,
)
from letter_to_you.services.letter_generation_service import ComparableLetter

router = APIRouter(tags=["letters"])
logger = logging.getLogger(__name__)


# ============================================================================
# Generation
# ============================================================================


@router.post("/generate-letter", response_model=GenerateLetterResponse)
@limiter.limit(GENERATE_LIMIT)
async def generate_letter(request: Request, data: GenerateLetterRequest):
    """Generate a letter from a formatted interview transcript."""
    if not data.qa_pairs or not data.qa_pairs.strip():
        raise ValidationError("Missing question/answer pairs")

    mode_id = data.mode or "general"
    mode_name = data.mode_name or question_bank.mode_name(mode_id)
    logger.info(
        "Generating letter",
        extra=build_log_context(mode=mode_id, route=request.url.path),
    )
    letter = await letter_generation_service.generate_letter(
        mode_name=mode_name, tone=data.tone, transcript=data.qa_pairs
    )
    return GenerateLetterResponse(letter=letter)


@router.post("/compare-letters", response_model=CompareLettersResponse)
@limiter.limit(GENERATE_LIMIT)
async def compare_letters(request: Request, data: CompareLettersRequest):
    """Narrative of how the writer changed between two letters (older first)."""
    if data.letter1 is None or data.letter2 is None:
        raise ValidationError("Missing letter data")

    comparison = await letter_generation_service.compare_letters(
        ComparableLetter(content=data.letter1.content, mode=data.letter1.mode, date=data.letter1.date),
        ComparableLetter(content=data.letter2.content, mode=data.letter2.mode, date=data.letter2.date),
    )
    return CompareLettersResponse(comparison=comparison)


# ============================================================================
# Saving / emailing
# ============================================================================


@router.post("/save-letter", response_model=SaveLetterResponse)
def save_letter(
    request: Request,
    data: SaveLetterRequest,
    user: AuthUser | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Save a letter server-side.

    Used when the client lost its auth session on the way back from
    checkout; the user id then comes from the body or the checkout cookie.
    """
    if not data.letter_content or not data.letter_content.strip():
        raise ValidationError("Missing required field: letterContent")
    user_id = resolve_user_id(request, data.user_id, user)

    letter = letter_service.create_letter(
        db,
        user_id=user_id,
        letter_content=data.letter_content,
        mode=data.mode,
        tone=data.tone,
        questions=data.questions,
    )
    return SaveLetterResponse(letter=SavedLetterSummary.model_validate(letter))


@router.post("/email-letter", response_model=EmailLetterResponse)
@limiter.limit(GENERATE_LIMIT)
async def email_letter(request: Request, data: EmailLetterRequest):
    """Email a freshly written letter to the given address."""
    if not data.email or not data.letter_content:
        raise ValidationError("Missing email or letter content")
    if not resend_email_service.is_configured():
        raise ConfigurationError("Email delivery not configured")

    success, error = await resend_email_service.send_letter_now(
        to_email=data.email, letter_content=data.letter_content
    )
    if not success:
        logger.warning("Letter email failed: %s", error)
        raise LetterError("Failed to send email", details=error)
    return EmailLetterResponse()


# ============================================================================
# Archive
# ============================================================================


@router.get("/letters", response_model=list[LetterRead])
def list_letters(
    sort: LetterSort = Query(LetterSort.NEWEST),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the user's letters (newest, oldest, mode or tone order)."""
    return letter_service.list_letters(db, user_id, sort)


@router.post("/letters/schedule", response_model=ScheduledLetterRead, status_code=201)
def schedule_letter(
    data: ScheduleLetterRequest,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Save a letter for future delivery by email."""
    profile = profile_service.ensure_profile(db, user)
    if not profile.email:
        raise ValidationError("An email address is required for future letters")

    delivery_date = letter_service.compute_delivery_date(
        data.delivery_option, data.custom_date
    )
    letter, scheduled = letter_service.schedule_letter(
        db,
        user_id=profile.id,
        letter_content=data.letter_content,
        delivery_date=delivery_date,
        mode=data.mode,
        tone=data.tone,
        questions=data.questions,
    )
    return ScheduledLetterRead(
        letter=LetterRead.model_validate(letter),
        scheduled_email_id=scheduled.id,
        scheduled_for=scheduled.scheduled_for,
    )


@router.get("/letters/{letter_id}", response_model=LetterRead)
def get_letter(
    letter_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return letter_service.get_letter(db, user_id, letter_id)


@router.delete("/letters/{letter_id}", status_code=204)
def delete_letter(
    letter_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete one of the user's letters."""
    letter_service.delete_letter(db, user_id, letter_id)
