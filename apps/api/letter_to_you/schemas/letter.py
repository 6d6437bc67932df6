"""Pydantic schemas for letters."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from letter_to_you.db.enums import DeliveryOption
from letter_to_you.schemas.common import CamelModel


class GenerateLetterRequest(CamelModel):
    """Formatted transcript plus the mode and tone it was written in."""

    qa_pairs: str | None = None
    mode: str | None = None
    mode_name: str | None = None
    tone: str | None = None


class GenerateLetterResponse(CamelModel):
    letter: str


class ComparisonLetterInput(CamelModel):
    content: str = Field(..., min_length=1)
    mode: str = "general"
    date: datetime


class CompareLettersRequest(CamelModel):
    letter1: ComparisonLetterInput | None = None
    letter2: ComparisonLetterInput | None = None


class CompareLettersResponse(CamelModel):
    comparison: str


class SaveLetterRequest(CamelModel):
    user_id: str | None = None
    mode: str | None = None
    tone: str | None = None
    questions: list[dict[str, Any]] | None = None
    letter_content: str | None = None


class SavedLetterSummary(CamelModel):
    id: UUID
    mode: str
    tone: str
    created_at: datetime


class SaveLetterResponse(CamelModel):
    success: bool = True
    letter: SavedLetterSummary


class EmailLetterRequest(CamelModel):
    email: EmailStr | None = None
    letter_content: str | None = None
    mode: str | None = None


class EmailLetterResponse(CamelModel):
    success: bool = True
    message: str = "Letter sent to your email"


class LetterRead(BaseModel):
    """Letter response."""

    id: UUID
    user_id: UUID
    mode: str
    tone: str
    questions: list[dict[str, Any]] = []
    letter_content: str
    word_count: int
    delivery_status: str
    is_future_letter: bool
    delivery_date: datetime | None = None
    delivered_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ScheduleLetterRequest(BaseModel):
    """Save a letter for delivery at a later date."""

    letter_content: str = Field(..., min_length=1)
    delivery_option: DeliveryOption
    custom_date: date | None = None
    mode: str | None = None
    tone: str | None = None
    questions: list[dict[str, Any]] | None = None


class ScheduledLetterRead(BaseModel):
    letter: LetterRead
    scheduled_email_id: UUID
    scheduled_for: datetime
