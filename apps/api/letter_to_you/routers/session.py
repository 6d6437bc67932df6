"""Session continuity router - back up credentials before checkout, restore after."""

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from letter_to_you.core.config import settings
from letter_to_you.core.deps import get_db, get_optional_user, resolve_user_id
from letter_to_you.core.encryption import is_encryption_configured
from letter_to_you.core.errors import ConfigurationError, PersistenceError, ValidationError
from letter_to_you.core.security import (
    RESTORE_TOKEN_COOKIE,
    AuthUser,
    clear_continuity_cookie,
    set_continuity_cookie,
)
from letter_to_you.schemas.common import SuccessResponse
from letter_to_you.schemas.session import RestoreSessionResponse, StoreSessionRequest
from letter_to_you.services import session_backup_service

router = APIRouter(tags=["session"])
logger = logging.getLogger(__name__)


@router.post("/store-session", response_model=SuccessResponse)
def store_session(
    request: Request,
    response: Response,
    data: StoreSessionRequest,
    user: AuthUser | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Back up the caller's credentials and hand back a single-use restore token.

    The token travels only in an HTTP-only cookie; the credentials are
    encrypted at rest and live for at most an hour.
    """
    if not data.access_token or not data.refresh_token:
        raise ValidationError("Missing required fields")
    if user is None and not data.user_id:
        raise ValidationError("Missing required fields")
    if not is_encryption_configured():
        raise ConfigurationError("Session backup not configured")

    user_id = resolve_user_id(request, data.user_id, user)
    try:
        restore_token = session_backup_service.store_backup(
            db,
            user_id=user_id,
            access_token=data.access_token,
            refresh_token=data.refresh_token,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to store session backup", exc_info=exc)
        raise PersistenceError("Failed to store session")

    set_continuity_cookie(
        response,
        RESTORE_TOKEN_COOKIE,
        restore_token,
        settings.SESSION_BACKUP_TTL_SECONDS,
    )
    return SuccessResponse()


@router.get(
    "/restore-session",
    response_model=RestoreSessionResponse,
    response_model_exclude_none=True,
)
def restore_session(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Exchange the restore cookie for the backed-up credentials, once.

    found=false is the normal answer when there is nothing to restore.
    """
    restore_token = request.cookies.get(RESTORE_TOKEN_COOKIE)
    if not restore_token:
        return RestoreSessionResponse(found=False)

    restored = session_backup_service.restore_backup(db, restore_token)
    clear_continuity_cookie(response, RESTORE_TOKEN_COOKIE)
    if restored is None:
        return RestoreSessionResponse(found=False)

    return RestoreSessionResponse(
        found=True,
        access_token=restored.access_token,
        refresh_token=restored.refresh_token,
    )
