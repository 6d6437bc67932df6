"""Async HTTP client for the letters API.

Keeps a cookie jar between calls so the continuity cookies (checkout user id,
restore token) behave the way they do in a browser.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

import httpx

from letter_to_you.core.errors import (
    AuthError,
    ConflictError,
    GenerationError,
    LetterError,
    NotFoundError,
    PaymentVerificationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0

_ERRORS_BY_STATUS: dict[int, type[LetterError]] = {
    400: ValidationError,
    401: AuthError,
    402: PaymentVerificationError,
    404: NotFoundError,
    409: ConflictError,
}


def error_from_response(
    response: httpx.Response, fallback: type[LetterError] = LetterError
) -> LetterError:
    """Turn an error response into the matching LetterError."""
    try:
        data = response.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}
    error_cls = _ERRORS_BY_STATUS.get(response.status_code, fallback)
    return error_cls(data.get("error") or None, details=data.get("details"))


class LetterApiClient:
    """Thin async wrapper over the HTTP surface, one method per endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.access_token = access_token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "LetterApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def _headers(self) -> dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        error_cls: type[LetterError] = LetterError,
    ) -> Any:
        try:
            response = await self._client.request(
                method, path, json=json, params=params, headers=self._headers()
            )
        except httpx.HTTPError as exc:
            logger.warning("Request to %s failed: %s", path, type(exc).__name__)
            raise error_cls(details=type(exc).__name__)

        if response.status_code >= 400:
            raise error_from_response(response, error_cls)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning("Unreadable response from %s (%s)", path, response.status_code)
            raise error_cls(details="Malformed response body")

    # -- catalog -----------------------------------------------------------

    async def list_modes(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/modes")

    async def get_mode_questions(self, mode_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/modes/{mode_id}/questions")

    async def crisis_resources(self) -> dict[str, Any]:
        return await self._request("GET", "/crisis-resources")

    # -- generation --------------------------------------------------------

    async def generate_letter(
        self, *, qa_pairs: str, mode: str, mode_name: str, tone: str
    ) -> str:
        data = await self._request(
            "POST",
            "/generate-letter",
            json={"qaPairs": qa_pairs, "mode": mode, "modeName": mode_name, "tone": tone},
            error_cls=GenerationError,
        )
        letter = data.get("letter") if isinstance(data, dict) else None
        if not letter:
            raise GenerationError("No letter content received")
        return letter

    async def compare_letters(
        self, letter1: dict[str, Any], letter2: dict[str, Any]
    ) -> str:
        data = await self._request(
            "POST",
            "/compare-letters",
            json={"letter1": letter1, "letter2": letter2},
            error_cls=GenerationError,
        )
        comparison = data.get("comparison") if isinstance(data, dict) else None
        if not comparison:
            raise GenerationError("No comparison received")
        return comparison

    # -- letters -----------------------------------------------------------

    async def save_letter(
        self,
        *,
        user_id: str | UUID,
        letter_content: str,
        mode: str,
        tone: str,
        questions: list[dict[str, Any]],
    ) -> dict[str, Any]:
        data = await self._request(
            "POST",
            "/save-letter",
            json={
                "userId": str(user_id),
                "letterContent": letter_content,
                "mode": mode,
                "tone": tone,
                "questions": questions,
            },
        )
        return data["letter"]

    async def list_letters(self, sort: str = "newest") -> list[dict[str, Any]]:
        return await self._request("GET", "/letters", params={"sort": sort})

    async def delete_letter(self, letter_id: str | UUID) -> None:
        await self._request("DELETE", f"/letters/{letter_id}")

    # -- checkout ----------------------------------------------------------

    async def set_checkout_cookie(self, user_id: str | UUID) -> None:
        await self._request("POST", "/set-checkout-cookie", json={"userId": str(user_id)})

    async def create_checkout_session(
        self, *, user_id: str | UUID, mode: str, mode_name: str
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/create-checkout-session",
            json={"userId": str(user_id), "mode": mode, "modeName": mode_name},
        )

    async def verify_purchase(
        self, *, user_id: str | UUID, session_id: str | None = None
    ) -> dict[str, Any]:
        params = {"userId": str(user_id)}
        if session_id:
            params["sessionId"] = session_id
        return await self._request("GET", "/verify-purchase", params=params)

    async def mark_purchase_used(
        self,
        *,
        purchase_id: str | UUID,
        user_id: str | UUID,
        letter_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/mark-purchase-used",
            json={
                "purchaseId": str(purchase_id),
                "userId": str(user_id),
                "letterId": str(letter_id) if letter_id else None,
            },
        )

    # -- session continuity ------------------------------------------------

    async def store_session(
        self, *, user_id: str | UUID, access_token: str, refresh_token: str
    ) -> None:
        await self._request(
            "POST",
            "/store-session",
            json={
                "userId": str(user_id),
                "accessToken": access_token,
                "refreshToken": refresh_token,
            },
        )

    async def restore_session(self) -> dict[str, Any]:
        return await self._request("GET", "/restore-session")
