"""Error taxonomy and the JSON error shape shared by every endpoint.

All handlers answer with ``{"error": <message>}`` plus an optional
``"details"`` field. Status codes:

- 400 ValidationError (missing/malformed request fields)
- 401 AuthError
- 402 PaymentVerificationError
- 404 NotFoundError
- 405 method mismatch (raised by the router itself)
- 409 ConflictError
- 500 GenerationError / PersistenceError / ConfigurationError
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class LetterError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(LetterError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(LetterError):
    """Not signed in, or the session expired. Never silently proceeds."""

    status_code = 401
    default_message = "Not authenticated"


class PaymentVerificationError(LetterError):
    """Checkout completed but no matching purchase could be found."""

    status_code = 402
    default_message = "We couldn't verify your payment"

    def __init__(
        self,
        message: str | None = None,
        details: Any = None,
        support_email: str | None = None,
    ):
        super().__init__(message, details)
        self.support_email = support_email

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.support_email:
            payload["support"] = self.support_email
        return payload


class NotFoundError(LetterError):
    status_code = 404
    default_message = "Not found"


class ConflictError(LetterError):
    status_code = 409
    default_message = "Already exists"


class GenerationError(LetterError):
    """Text-generation collaborator failed. Always recoverable by retry."""

    status_code = 500
    default_message = "Failed to generate letter"


class PersistenceError(LetterError):
    """Data store write failed."""

    status_code = 500
    default_message = "Failed to save"


class ConfigurationError(LetterError):
    """A collaborator is not configured (missing key/secret)."""

    status_code = 500
    default_message = "Service not configured"


class SafetyInterrupt(Exception):
    """Crisis signal detected in the user's answers.

    Deliberately not a LetterError: it is a redirect, not a failure, and must
    never be caught by handlers written for ordinary errors.
    """

    def __init__(self, message: str = "Crisis signal detected"):
        super().__init__(message)


def _format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append(
            {
                "field": ".".join(loc),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
        )
    return details


async def letter_error_handler(request: Request, exc: LetterError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed: %s %s -> %s",
            request.method,
            request.url.path,
            exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = _format_validation_errors(exc)
    missing = [d["field"] for d in details if d["type"] == "missing"]
    message = (
        f"Missing required field: {', '.join(missing)}"
        if missing
        else "Invalid request body"
    )
    return JSONResponse(status_code=400, content={"error": message, "details": details})


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 405:
        message = "Method not allowed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error shape on the app."""
    app.add_exception_handler(LetterError, letter_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
