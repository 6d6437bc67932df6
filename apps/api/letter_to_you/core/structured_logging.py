"""Structured logging helpers (PII-safe).

Never put letter text, answers, emails or credentials into a log context.
"""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    mode: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if mode:
        context["mode"] = mode
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
