"""Tests for structured logging helpers."""

from letter_to_you.core.structured_logging import build_log_context


def test_build_log_context_includes_only_provided_fields():
    context = build_log_context(
        user_id="user-1",
        mode="career",
        request_id="req-1",
        route="/generate-letter",
        method="POST",
    )

    assert context == {
        "user_id": "user-1",
        "mode": "career",
        "request_id": "req-1",
        "route": "/generate-letter",
        "method": "POST",
    }


def test_build_log_context_ignores_empty_fields():
    context = build_log_context(
        user_id="",
        mode=None,
        request_id="req-1",
    )

    assert context == {"request_id": "req-1"}
