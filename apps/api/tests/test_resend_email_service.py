"""Tests for Resend email sending."""

import httpx
import pytest

from letter_to_you.services import resend_email_service


@pytest.fixture
def resend_response(monkeypatch):
    """Answer every Resend call with the configured response (or exception)."""

    class Reply:
        value: httpx.Response | Exception = httpx.Response(200, json={"id": "em_1"})
        calls = 0

    async def fake_request(request_fn, **kwargs):
        Reply.calls += 1
        if isinstance(Reply.value, Exception):
            raise Reply.value
        return Reply.value

    monkeypatch.setattr(resend_email_service, "request_with_retries", fake_request)
    return Reply


async def _send(**overrides):
    kwargs = dict(
        to_email="me@example.com",
        subject="Hi",
        html="<p>Hi</p>",
        text="Hi",
        idempotency_key="scheduled-email/1",
    )
    kwargs.update(overrides)
    return await resend_email_service.send_email(**kwargs)


@pytest.mark.asyncio
async def test_success_returns_message_id(resend_response):
    assert await _send() == (True, None, "em_1")


@pytest.mark.asyncio
async def test_idempotency_conflict_counts_as_sent(resend_response):
    resend_response.value = httpx.Response(409, json={"message": "duplicate"})
    assert await _send() == (True, None, None)


@pytest.mark.asyncio
async def test_api_error_includes_detail(resend_response):
    resend_response.value = httpx.Response(422, json={"message": "Invalid `to` field"})
    assert await _send() == (False, "Resend API error: 422 (Invalid `to` field)", None)


@pytest.mark.asyncio
async def test_timeout(resend_response):
    resend_response.value = httpx.ReadTimeout("slow")
    assert await _send() == (False, "Connection timeout", None)


@pytest.mark.asyncio
async def test_unconfigured_does_not_call_out(resend_response, monkeypatch):
    monkeypatch.setattr(resend_email_service.settings, "RESEND_API_KEY", "")
    assert await _send() == (False, "Email delivery not configured", None)
    assert resend_response.calls == 0


def test_future_letter_html_escapes_content():
    html = resend_email_service.format_future_letter_html(
        "<Alex>", "First <b>para</b>\n\nSecond", "March 4, 2025"
    )
    assert "Dear &lt;Alex&gt;," in html
    assert "First &lt;b&gt;para&lt;/b&gt;" in html
    assert html.count("<p style=\"margin-bottom") == 2
