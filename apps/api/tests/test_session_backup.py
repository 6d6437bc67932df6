"""Tests for the single-use session backup hand-off."""

import uuid
from datetime import timedelta

import pytest
from click.testing import CliRunner
from sqlalchemy import text

from letter_to_you.cli import cli
from letter_to_you.db.models import SessionBackup
from letter_to_you.services import session_backup_service
from letter_to_you.utils.dates import now_utc


def _store(db, user_id=None, access="access-abc", refresh="refresh-xyz"):
    return session_backup_service.store_backup(
        db,
        user_id=user_id or uuid.uuid4(),
        access_token=access,
        refresh_token=refresh,
    )


def test_restore_is_single_use(db):
    user_id = uuid.uuid4()
    token = _store(db, user_id)

    restored = session_backup_service.restore_backup(db, token)
    assert restored is not None
    assert restored.user_id == user_id
    assert restored.access_token == "access-abc"
    assert restored.refresh_token == "refresh-xyz"

    assert session_backup_service.restore_backup(db, token) is None
    assert db.query(SessionBackup).count() == 0


def test_tokens_are_encrypted_at_rest(db):
    _store(db, access="plain-access-token")

    raw = db.execute(text("SELECT access_token FROM session_backups")).scalar_one()
    assert "plain-access-token" not in raw


def test_second_store_replaces_first(db):
    user_id = uuid.uuid4()
    old_token = _store(db, user_id, access="old")
    new_token = _store(db, user_id, access="new")

    assert old_token != new_token
    assert session_backup_service.restore_backup(db, old_token) is None
    assert session_backup_service.restore_backup(db, new_token).access_token == "new"


def test_expired_backup_is_not_restored(db):
    token = _store(db)
    backup = db.query(SessionBackup).one()
    backup.expires_at = now_utc() - timedelta(seconds=1)
    db.commit()

    assert session_backup_service.restore_backup(db, token) is None
    assert db.query(SessionBackup).count() == 0


def test_unknown_or_empty_token(db):
    assert session_backup_service.restore_backup(db, None) is None
    assert session_backup_service.restore_backup(db, "f" * 64) is None


def test_purge_expired(db):
    _store(db)
    _store(db)
    live_token = _store(db)
    for backup in db.query(SessionBackup).all():
        if backup.restore_token != live_token:
            backup.expires_at = now_utc() - timedelta(minutes=5)
    db.commit()

    assert session_backup_service.purge_expired(db) == 2
    assert [b.restore_token for b in db.query(SessionBackup).all()] == [live_token]


def test_purge_command(db):
    _store(db)
    backup = db.query(SessionBackup).one()
    backup.expires_at = now_utc() - timedelta(minutes=5)
    db.commit()

    result = CliRunner().invoke(cli, ["purge-session-backups"])

    assert result.exit_code == 0
    assert "Removed 1 expired session backup(s)" in result.output


@pytest.mark.asyncio
async def test_store_then_restore_through_cookie(client):
    user_id = str(uuid.uuid4())
    res = await client.post(
        "/store-session",
        json={"userId": user_id, "accessToken": "at-1", "refreshToken": "rt-1"},
    )
    assert res.status_code == 200
    assert res.json() == {"success": True}
    assert "bl_restore" in client.cookies
    assert "HttpOnly" in res.headers["set-cookie"]

    res = await client.get("/restore-session")
    assert res.status_code == 200
    assert res.json() == {"found": True, "accessToken": "at-1", "refreshToken": "rt-1"}

    res = await client.get("/restore-session")
    assert res.json() == {"found": False}


@pytest.mark.asyncio
async def test_restore_without_cookie(client):
    res = await client.get("/restore-session")
    assert res.status_code == 200
    assert res.json() == {"found": False}


@pytest.mark.asyncio
async def test_store_session_requires_tokens(client):
    res = await client.post("/store-session", json={"userId": str(uuid.uuid4())})
    assert res.status_code == 400
    assert res.json()["error"] == "Missing required fields"

    res = await client.post(
        "/store-session", json={"accessToken": "a", "refreshToken": "r"}
    )
    assert res.status_code == 400
