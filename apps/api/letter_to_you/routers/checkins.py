"""Check-ins router - weekly mood/energy check-ins with a short reflection."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from letter_to_you.core.deps import get_current_user_id, get_db
from letter_to_you.core.rate_limit import GENERATE_LIMIT, limiter
from letter_to_you.db.enums import CheckinRange
from letter_to_you.schemas.checkin import (
    CheckinCreate,
    CheckinRead,
    CheckinReflectionRequest,
    CheckinReflectionResponse,
    CheckinStatsRead,
    CurrentCheckinResponse,
)
from letter_to_you.services import checkin_service, letter_generation_service

router = APIRouter(tags=["checkins"])


@router.post("/checkins", response_model=CheckinRead, status_code=201)
@limiter.limit(GENERATE_LIMIT)
async def create_checkin(
    request: Request,
    data: CheckinCreate,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Record this week's check-in (409 if one already exists)."""
    return await checkin_service.create_checkin(db, user_id=user_id, **data.model_dump())


@router.get("/checkins", response_model=list[CheckinRead])
def list_checkins(
    range_: CheckinRange = Query(CheckinRange.THREE_MONTHS, alias="range"),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return checkin_service.list_checkins(db, user_id, range_)


@router.get("/checkins/stats", response_model=CheckinStatsRead | None)
def checkin_stats(
    range_: CheckinRange = Query(CheckinRange.THREE_MONTHS, alias="range"),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Average mood/energy and mood trend; null when there are no check-ins."""
    return checkin_service.calculate_stats(
        checkin_service.list_checkins(db, user_id, range_)
    )


@router.get("/checkins/current", response_model=CurrentCheckinResponse)
def current_checkin(
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    checkin = checkin_service.get_current_week_checkin(db, user_id)
    return CurrentCheckinResponse(
        completed=checkin is not None,
        checkin=CheckinRead.model_validate(checkin) if checkin else None,
    )


@router.post("/generate-checkin-reflection", response_model=CheckinReflectionResponse)
@limiter.limit(GENERATE_LIMIT)
async def generate_checkin_reflection(request: Request, data: CheckinReflectionRequest):
    reflection = await letter_generation_service.generate_checkin_reflection(
        **data.model_dump()
    )
    return CheckinReflectionResponse(reflection=reflection)
