"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron (Netlify scheduled functions, GH Actions).
"""

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from letter_to_you.core.config import settings
from letter_to_you.core.deps import get_db
from letter_to_you.services import scheduled_delivery_service

router = APIRouter(tags=["internal"])


def verify_internal_secret(x_internal_secret: str | None = Header(None)):
    """Verify the internal secret header."""
    if not settings.INTERNAL_SECRET:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != settings.INTERNAL_SECRET:
        raise HTTPException(status_code=403, detail="Invalid internal secret")


class SweepResponse(BaseModel):
    message: str
    processed: int
    success: int
    failed: int
    errors: list[str] = []


@router.post(
    "/send-scheduled-emails",
    response_model=SweepResponse,
    dependencies=[Depends(verify_internal_secret)],
)
async def send_scheduled_emails(db: Session = Depends(get_db)):
    """
    Deliver future letters whose delivery date has passed.

    Each pending row moves to sent (letter delivered) or failed (letter
    failed) exactly once.
    """
    result = await scheduled_delivery_service.send_due_emails(db)
    return SweepResponse(
        message=result.message,
        processed=result.processed,
        success=result.success,
        failed=result.failed,
        errors=result.errors,
    )
