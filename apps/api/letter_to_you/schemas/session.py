"""Pydantic schemas for the session backup hand-off."""

from letter_to_you.schemas.common import CamelModel


class StoreSessionRequest(CamelModel):
    user_id: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None


class RestoreSessionResponse(CamelModel):
    found: bool
    access_token: str | None = None
    refresh_token: str | None = None
