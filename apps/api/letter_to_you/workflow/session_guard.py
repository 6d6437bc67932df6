"""Session continuity across the checkout redirect.

Two tiers: a cookie with the user id (enough to save the letter and consume
the purchase) and a server-held, single-use backup of the full credentials.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from letter_to_you.core.errors import LetterError
from letter_to_you.workflow.api_client import LetterApiClient
from letter_to_you.workflow.auth import AuthSession, SupabaseAuthClient

logger = logging.getLogger(__name__)


@dataclass
class RestoredTokens:
    access_token: str
    refresh_token: str


class SessionGuard:
    def __init__(self, api: LetterApiClient, auth: SupabaseAuthClient | None = None):
        self.api = api
        self.auth = auth

    async def preserve_identity(self, user_id: str | UUID) -> None:
        """Set the checkout user-id cookie. Failing here blocks checkout."""
        await self.api.set_checkout_cookie(user_id)

    async def preserve_session(self, session: AuthSession) -> bool:
        """Back up the credentials server-side; best effort."""
        try:
            await self.api.store_session(
                user_id=session.user.id,
                access_token=session.access_token,
                refresh_token=session.refresh_token,
            )
        except LetterError as exc:
            logger.warning("Session backup failed: %s", exc.message)
            return False
        return True

    async def restore_session(self) -> RestoredTokens | None:
        """
        Exchange the restore cookie for the backed-up credentials.

        Returns None when there is nothing to restore. Restored credentials
        are adopted by the auth client (when there is one) and by the API
        client for subsequent calls.
        """
        try:
            data = await self.api.restore_session()
        except LetterError as exc:
            logger.warning("Session restore failed: %s", exc.message)
            return None
        if not data or not data.get("found"):
            return None

        tokens = RestoredTokens(
            access_token=data["accessToken"], refresh_token=data["refreshToken"]
        )
        self.api.access_token = tokens.access_token
        if self.auth is not None:
            try:
                await self.auth.set_session(tokens.access_token, tokens.refresh_token)
            except LetterError as exc:
                logger.warning("Restored session rejected by auth: %s", exc.message)
        logger.info("Session restored after checkout")
        return tokens
