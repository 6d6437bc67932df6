"""Pydantic schemas for the user's profile."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ProfileRead(BaseModel):
    id: UUID
    email: str | None = None
    display_name: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(None, max_length=100)
