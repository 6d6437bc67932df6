"""Session backups: single-use credential hand-off across the checkout redirect."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.orm import Session

from letter_to_you.core.config import settings
from letter_to_you.core.security import generate_restore_token
from letter_to_you.db.models import SessionBackup
from letter_to_you.utils.dates import as_utc, now_utc

logger = logging.getLogger(__name__)


@dataclass
class RestoredSession:
    user_id: UUID
    access_token: str
    refresh_token: str


def store_backup(
    db: Session,
    *,
    user_id: UUID,
    access_token: str,
    refresh_token: str,
) -> str:
    """
    Upsert the user's backup with a fresh restore token and return the token.

    One live backup per user: a second store replaces the first and its
    old token stops working.
    """
    restore_token = generate_restore_token()
    now = now_utc()
    expires_at = now + timedelta(seconds=settings.SESSION_BACKUP_TTL_SECONDS)

    backup = db.query(SessionBackup).filter(SessionBackup.user_id == user_id).first()
    if backup is None:
        backup = SessionBackup(user_id=user_id)
        db.add(backup)
    backup.restore_token = restore_token
    backup.access_token = access_token
    backup.refresh_token = refresh_token
    backup.created_at = now
    backup.expires_at = expires_at
    db.commit()

    logger.info("Session backup stored for user %s", user_id)
    return restore_token


def restore_backup(db: Session, restore_token: str | None) -> RestoredSession | None:
    """
    Exchange a restore token for its credentials, exactly once.

    The row is deleted before the credentials are returned. Unknown or
    expired tokens return None (expired rows are removed on the way).
    """
    if not restore_token:
        return None

    backup = (
        db.query(SessionBackup)
        .filter(SessionBackup.restore_token == restore_token)
        .first()
    )
    if backup is None:
        return None

    if as_utc(backup.expires_at) <= now_utc():
        user_id = backup.user_id
        db.delete(backup)
        db.commit()
        logger.info("Session backup for user %s expired", user_id)
        return None

    restored = RestoredSession(
        user_id=backup.user_id,
        access_token=backup.access_token,
        refresh_token=backup.refresh_token,
    )

    # Single use: only the caller whose delete removes the row gets credentials
    result = db.execute(
        delete(SessionBackup)
        .where(SessionBackup.id == backup.id, SessionBackup.restore_token == restore_token)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.expunge(backup)
    if result.rowcount != 1:
        return None

    logger.info("Session restored for user %s", restored.user_id)
    return restored


def purge_expired(db: Session) -> int:
    """Delete expired backups; returns the number removed."""
    result = db.execute(
        delete(SessionBackup)
        .where(SessionBackup.expires_at <= now_utc())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0
