"""Resend Email Service.

Sends letters via the Resend API with idempotency keys and retry logic.
"""

from __future__ import annotations

import html as html_module
import logging

import httpx

from letter_to_you.core.config import settings
from letter_to_you.services.http_service import DEFAULT_RETRY_STATUSES, request_with_retries

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_MAX_ATTEMPTS = 3
RESEND_RETRY_BASE_DELAY = 0.5
RESEND_RETRY_MAX_DELAY = 4.0
RESEND_TIMEOUT_SECONDS = 20.0

FUTURE_LETTER_SUBJECT = "A Letter From Your Past Self 💌"
LETTER_SUBJECT = "Your Letter to You"


def is_configured() -> bool:
    return bool(settings.RESEND_API_KEY)


def _paragraphs(letter_content: str) -> str:
    return "".join(
        f'<p style="margin-bottom: 16px; line-height: 1.6;">{html_module.escape(p)}</p>'
        for p in letter_content.split("\n\n")
        if p.strip()
    )


def format_future_letter_html(name: str, letter_content: str, written_on: str) -> str:
    """Simple HTML body for a delivered future letter."""
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Georgia, serif; max-width: 600px; margin: 0 auto; padding: 40px 20px;">
  <h1 style="font-size: 24px; font-weight: normal;">A Letter From Your Past Self</h1>
  <p style="font-size: 14px;">Written on {html_module.escape(written_on)}</p>
  <p>Dear {html_module.escape(name)},</p>
  {_paragraphs(letter_content)}
  <p style="font-size: 14px;">Delivered with care by Letter to You</p>
</body>
</html>"""


def format_future_letter_text(name: str, letter_content: str, written_on: str) -> str:
    return (
        "A LETTER FROM YOUR PAST SELF\n"
        f"Written on {written_on}\n\n"
        "---\n\n"
        f"Dear {name},\n\n"
        f"{letter_content}\n\n"
        "---\n\n"
        "Delivered with care by Letter to You"
    )


def format_letter_html(letter_content: str) -> str:
    """HTML body for a letter emailed right after it was written."""
    return f"""<div style="max-width: 600px; margin: 0 auto; font-family: Georgia, serif; padding: 40px;">
  <h1 style="font-size: 24px; margin-bottom: 24px;">A letter to you, from you</h1>
  {_paragraphs(letter_content)}
  <p style="margin-top: 32px; font-style: italic;">Sincerely,<br/>me</p>
</div>"""


async def send_email(
    *,
    to_email: str,
    subject: str,
    html: str,
    text: str,
    idempotency_key: str | None = None,
) -> tuple[bool, str | None, str | None]:
    """
    Send one email via Resend.

    Returns:
        (success, error_message, message_id)
    """
    if not settings.RESEND_API_KEY:
        return False, "Email delivery not configured", None

    payload: dict[str, object] = {
        "from": settings.EMAIL_FROM,
        "to": [to_email],
        "subject": subject,
        "html": html,
        "text": text,
    }
    if settings.SUPPORT_EMAIL:
        payload["reply_to"] = settings.SUPPORT_EMAIL

    headers = {
        "Authorization": f"Bearer {settings.RESEND_API_KEY}",
        "Content-Type": "application/json",
    }
    if idempotency_key:
        headers["Idempotency-Key"] = idempotency_key

    try:
        async with httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS) as client:

            async def request_fn() -> httpx.Response:
                return await client.post(RESEND_SEND_URL, headers=headers, json=payload)

            response = await request_with_retries(
                request_fn,
                max_attempts=RESEND_MAX_ATTEMPTS,
                base_delay=RESEND_RETRY_BASE_DELAY,
                max_delay=RESEND_RETRY_MAX_DELAY,
                retry_statuses=DEFAULT_RETRY_STATUSES,
            )
    except httpx.TimeoutException:
        return False, "Connection timeout", None
    except httpx.HTTPError as e:
        logger.warning("Resend connection error: %s", e.__class__.__name__)
        return False, f"Connection error: {e.__class__.__name__}", None

    if 200 <= response.status_code < 300:
        data = response.json()
        return True, None, data.get("id")

    if response.status_code == 409:
        # Idempotency conflict = already sent
        logger.info("Resend reported duplicate send for key %s", idempotency_key)
        return True, None, None

    error_detail = None
    try:
        data = response.json()
        if isinstance(data, dict):
            error_detail = data.get("message") or data.get("error")
    except ValueError:
        pass

    error_msg = f"Resend API error: {response.status_code}"
    if error_detail:
        error_msg = f"{error_msg} ({error_detail})"
    return False, error_msg, None


async def send_letter_now(
    *, to_email: str, letter_content: str
) -> tuple[bool, str | None]:
    """Email a freshly written letter to the given address."""
    success, error, _message_id = await send_email(
        to_email=to_email,
        subject=LETTER_SUBJECT,
        html=format_letter_html(letter_content),
        text=letter_content,
    )
    if success:
        logger.info("Letter emailed (%d characters)", len(letter_content))
    return success, error
