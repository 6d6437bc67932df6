"""Pydantic schemas for weekly check-ins."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from letter_to_you.schemas.common import CamelModel

TEXT_MAX = 2000


class CheckinCreate(BaseModel):
    """Request to record this week's check-in."""

    mood_rating: int = Field(..., ge=1, le=10)
    energy_level: int = Field(..., ge=1, le=10)
    wins: str | None = Field(None, max_length=TEXT_MAX)
    challenges: str | None = Field(None, max_length=TEXT_MAX)
    gratitude: str | None = Field(None, max_length=TEXT_MAX)
    focus_next_week: str | None = Field(None, max_length=TEXT_MAX)


class CheckinRead(BaseModel):
    id: UUID
    user_id: UUID
    mood_rating: int
    energy_level: int
    wins: str | None = None
    challenges: str | None = None
    gratitude: str | None = None
    focus_next_week: str | None = None
    ai_reflection: str | None = None
    week_number: int
    year: int
    created_at: datetime

    model_config = {"from_attributes": True}


class CheckinStatsRead(BaseModel):
    avg_mood: float
    avg_energy: float
    total_checkins: int
    mood_trend: str
    mood_change: float

    model_config = {"from_attributes": True}


class CurrentCheckinResponse(BaseModel):
    completed: bool
    checkin: CheckinRead | None = None


class CheckinReflectionRequest(CamelModel):
    """Body for the standalone reflection endpoint (camelCase)."""

    mood_rating: int = Field(..., ge=1, le=10)
    energy_level: int = Field(..., ge=1, le=10)
    wins: str | None = None
    challenges: str | None = None
    gratitude: str | None = None
    focus_next_week: str | None = None


class CheckinReflectionResponse(CamelModel):
    reflection: str
