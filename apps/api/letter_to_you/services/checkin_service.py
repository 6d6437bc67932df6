"""Weekly check-in service (one per ISO week) and history statistics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from letter_to_you.core.errors import ConfigurationError, ConflictError, GenerationError
from letter_to_you.db.enums import CheckinRange
from letter_to_you.db.models import Checkin
from letter_to_you.services import letter_generation_service
from letter_to_you.utils.dates import add_months, iso_week, now_utc

logger = logging.getLogger(__name__)

_RANGE_MONTHS = {
    CheckinRange.ONE_MONTH: 1,
    CheckinRange.THREE_MONTHS: 3,
    CheckinRange.SIX_MONTHS: 6,
}


def get_current_week_checkin(
    db: Session, user_id: UUID, now: datetime | None = None
) -> Checkin | None:
    year, week = iso_week(now or now_utc())
    return (
        db.query(Checkin)
        .filter(
            Checkin.user_id == user_id,
            Checkin.year == year,
            Checkin.week_number == week,
        )
        .first()
    )


async def create_checkin(
    db: Session,
    *,
    user_id: UUID,
    mood_rating: int,
    energy_level: int,
    wins: str | None = None,
    challenges: str | None = None,
    gratitude: str | None = None,
    focus_next_week: str | None = None,
    now: datetime | None = None,
) -> Checkin:
    """
    Record this week's check-in with a generated reflection.

    The reflection is best effort: a generation failure stores the check-in
    without one.

    Raises:
        ConflictError: a check-in already exists for this ISO week
    """
    now = now or now_utc()
    if get_current_week_checkin(db, user_id, now):
        raise ConflictError("You've already completed your check-in for this week")

    reflection: str | None = None
    try:
        reflection = await letter_generation_service.generate_checkin_reflection(
            mood_rating=mood_rating,
            energy_level=energy_level,
            wins=wins,
            challenges=challenges,
            gratitude=gratitude,
            focus_next_week=focus_next_week,
        )
    except (GenerationError, ConfigurationError) as exc:
        logger.warning("Check-in reflection unavailable: %s", exc.message)

    year, week = iso_week(now)
    checkin = Checkin(
        user_id=user_id,
        mood_rating=mood_rating,
        energy_level=energy_level,
        wins=wins,
        challenges=challenges,
        gratitude=gratitude,
        focus_next_week=focus_next_week,
        ai_reflection=reflection,
        week_number=week,
        year=year,
        created_at=now,
    )
    db.add(checkin)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("You've already completed your check-in for this week")
    db.refresh(checkin)
    return checkin


def list_checkins(
    db: Session,
    user_id: UUID,
    range_: CheckinRange = CheckinRange.THREE_MONTHS,
    now: datetime | None = None,
) -> list[Checkin]:
    """Check-ins in the window, newest first."""
    query = db.query(Checkin).filter(Checkin.user_id == user_id)
    months = _RANGE_MONTHS.get(range_)
    if months:
        start = add_months(now or now_utc(), -months)
        query = query.filter(Checkin.created_at >= start)
    return query.order_by(Checkin.created_at.desc()).all()


@dataclass
class CheckinStats:
    avg_mood: float
    avg_energy: float
    total_checkins: int
    mood_trend: str  # up | down | stable
    mood_change: float


def _mean(values: list[int]) -> float | None:
    return sum(values) / len(values) if values else None


def calculate_stats(checkins: list[Checkin]) -> CheckinStats | None:
    """
    Averages plus mood trend over newest-first check-ins.

    Trend compares the recent half with the older half (the middle entry of
    an odd count belongs to the older half).
    """
    if not checkins:
        return None

    moods = [c.mood_rating for c in checkins]
    avg_mood = _mean(moods)
    avg_energy = _mean([c.energy_level for c in checkins])

    midpoint = len(moods) // 2
    recent = _mean(moods[:midpoint])
    older = _mean(moods[midpoint:])
    trend = (recent if recent is not None else avg_mood) - (
        older if older is not None else avg_mood
    )

    return CheckinStats(
        avg_mood=round(avg_mood, 1),
        avg_energy=round(avg_energy, 1),
        total_checkins=len(checkins),
        mood_trend="up" if trend > 0 else "down" if trend < 0 else "stable",
        mood_change=round(abs(trend), 1),
    )
