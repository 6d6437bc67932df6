"""Client-side auth: a single auth-state event stream plus a GoTrue REST client.

Consumers subscribe to ``AuthStateProvider`` and are told about every
change; nothing polls for the current user.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlencode

import httpx

from letter_to_you.core.errors import AuthError, ConfigurationError
from letter_to_you.core.security import AuthUser

logger = logging.getLogger(__name__)

SIGN_OUT_TIMEOUT_SECONDS = 3.0
OAUTH_PROVIDERS = frozenset({"google"})


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


@dataclass
class AuthSession:
    access_token: str
    refresh_token: str
    user: AuthUser


AuthListener = Callable[[AuthEvent, "AuthSession | None"], None]


class AuthStateProvider:
    """Holds the current session and fans every change out to subscribers."""

    def __init__(self) -> None:
        self._session: AuthSession | None = None
        self._listeners: list[AuthListener] = []

    @property
    def session(self) -> AuthSession | None:
        return self._session

    @property
    def user(self) -> AuthUser | None:
        return self._session.user if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register a listener; it immediately receives INITIAL_SESSION.

        Returns the matching unsubscribe function.
        """
        self._listeners.append(listener)
        listener(AuthEvent.INITIAL_SESSION, self._session)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self._session)
            except Exception:
                logger.exception("Auth listener failed on %s", event.value)

    def set_session(self, session: AuthSession, event: AuthEvent = AuthEvent.SIGNED_IN) -> None:
        self._session = session
        self._emit(event)

    def clear(self) -> None:
        """Drop local credentials unconditionally."""
        had_session = self._session is not None
        self._session = None
        if had_session:
            self._emit(AuthEvent.SIGNED_OUT)


class SupabaseAuthClient:
    """Minimal GoTrue (Supabase auth) REST client feeding an AuthStateProvider."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        state: AuthStateProvider | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sign_out_timeout: float = SIGN_OUT_TIMEOUT_SECONDS,
    ):
        if not url or not anon_key:
            raise ConfigurationError("Auth is not configured")
        self.base_url = url.rstrip("/")
        self.anon_key = anon_key
        self.state = state or AuthStateProvider()
        self.sign_out_timeout = sign_out_timeout
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/auth/v1",
            headers={"apikey": anon_key},
            transport=transport,
            timeout=15.0,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload, **kwargs)
        except httpx.HTTPError as exc:
            raise AuthError("Could not reach the sign-in service", details=type(exc).__name__)
        return self._parse(response)

    @staticmethod
    def _parse(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}
        if response.status_code >= 400:
            message = (
                data.get("error_description")
                or data.get("msg")
                or data.get("message")
                or "Authentication failed"
            )
            raise AuthError(message)
        return data

    def _session_from(self, data: dict[str, Any]) -> AuthSession:
        user = data.get("user") or {}
        metadata = user.get("user_metadata") or {}
        return AuthSession(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            user=AuthUser(
                id=str(user["id"]),
                email=user.get("email"),
                display_name=metadata.get("display_name"),
            ),
        )

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._post(
            "/token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        session = self._session_from(data)
        self.state.set_session(session)
        return session

    async def sign_up(
        self, email: str, password: str, display_name: str | None = None
    ) -> AuthSession | None:
        """
        Create an account.

        Returns the session when the project signs users in straight away,
        or None when email confirmation is required first.
        """
        payload: dict[str, Any] = {"email": email, "password": password}
        if display_name:
            payload["data"] = {"display_name": display_name}
        data = await self._post("/signup", payload)
        if "access_token" not in data:
            return None
        session = self._session_from(data)
        self.state.set_session(session)
        return session

    async def sign_in_with_magic_link(self, email: str, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._post("/otp", {"email": email, "create_user": True}, params=params)

    def sign_in_with_oauth(self, provider: str, redirect_to: str | None = None) -> str:
        """URL to send the user to for provider sign-in."""
        if provider not in OAUTH_PROVIDERS:
            raise AuthError(f"Unsupported sign-in provider: {provider}")
        query = {"provider": provider}
        if redirect_to:
            query["redirect_to"] = redirect_to
        return f"{self.base_url}/auth/v1/authorize?{urlencode(query)}"

    async def reset_password(self, email: str, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._post("/recover", {"email": email}, params=params)

    async def set_session(self, access_token: str, refresh_token: str) -> AuthSession:
        """Adopt externally obtained credentials (e.g. a restored backup)."""
        try:
            response = await self._client.get(
                "/user", headers={"Authorization": f"Bearer {access_token}"}
            )
        except httpx.HTTPError as exc:
            raise AuthError("Could not reach the sign-in service", details=type(exc).__name__)
        user = self._parse(response)
        session = self._session_from(
            {"access_token": access_token, "refresh_token": refresh_token, "user": user}
        )
        self.state.set_session(session)
        return session

    async def refresh_session(self) -> AuthSession:
        current = self.state.session
        if current is None:
            raise AuthError("Not authenticated")
        data = await self._post(
            "/token",
            {"refresh_token": current.refresh_token},
            params={"grant_type": "refresh_token"},
        )
        session = self._session_from(data)
        self.state.set_session(session, AuthEvent.TOKEN_REFRESHED)
        return session

    def get_session(self) -> AuthSession | None:
        return self.state.session

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        return self.state.subscribe(listener)

    async def _remote_sign_out(self, access_token: str) -> None:
        response = await self._client.post(
            "/logout", headers={"Authorization": f"Bearer {access_token}"}
        )
        self._parse(response)

    async def sign_out(self) -> None:
        """
        Sign out remotely with a bounded wait, then always clear local state.

        A slow or failing auth service never leaves the user signed in.
        """
        session = self.state.session
        if session is not None:
            try:
                await asyncio.wait_for(
                    self._remote_sign_out(session.access_token),
                    timeout=self.sign_out_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Remote sign-out timed out; clearing local session")
            except (AuthError, httpx.HTTPError) as exc:
                logger.warning("Remote sign-out failed (%s); clearing local session", type(exc).__name__)
        self.state.clear()
