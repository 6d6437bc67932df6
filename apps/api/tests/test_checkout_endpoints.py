"""Tests for Stripe checkout creation, the checkout cookie and the webhook."""

import hashlib
import hmac
import json
import time
import uuid
from types import SimpleNamespace

import pytest
import stripe

from letter_to_you.core.config import settings
from letter_to_you.db.models import Purchase


@pytest.fixture
def stripe_sessions(monkeypatch):
    """Capture Session.create calls instead of reaching Stripe."""
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="cs_test_abc", url="https://checkout.stripe.test/cs_test_abc")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    return calls


def _signed(payload: dict, secret: str | None = None) -> tuple[bytes, str]:
    body = json.dumps(payload).encode()
    timestamp = int(time.time())
    signed = f"{timestamp}.{body.decode()}".encode()
    signature = hmac.new(
        (secret or settings.STRIPE_WEBHOOK_SECRET).encode(), signed, hashlib.sha256
    ).hexdigest()
    return body, f"t={timestamp},v1={signature}"


def _completed_event(user_id: str, session_id: str = "cs_paid_1", **metadata) -> dict:
    return {
        "id": f"evt_{uuid.uuid4().hex[:12]}",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "amount_total": 500,
                "currency": "nzd",
                "payment_intent": "pi_123",
                "metadata": {"userId": user_id, "letterMode": "career", "modeName": "Career & Work", **metadata},
            }
        },
    }


@pytest.mark.asyncio
async def test_create_checkout_session_for_paid_mode(authed_client, test_user, stripe_sessions):
    res = await authed_client.post("/create-checkout-session", json={"mode": "career"})

    assert res.status_code == 200
    assert res.json() == {
        "sessionId": "cs_test_abc",
        "url": "https://checkout.stripe.test/cs_test_abc",
    }
    (call,) = stripe_sessions
    assert call["metadata"]["userId"] == str(test_user.id)
    assert call["metadata"]["letterMode"] == "career"
    assert call["mode"] == "payment"
    assert "session_id={CHECKOUT_SESSION_ID}" in call["success_url"]
    assert "/write/career" in call["success_url"]


@pytest.mark.asyncio
async def test_create_checkout_session_requires_user(client, stripe_sessions):
    res = await client.post("/create-checkout-session", json={"mode": "career"})
    assert res.status_code == 400
    assert res.json()["error"] == "User must be logged in to purchase"
    assert stripe_sessions == []


@pytest.mark.asyncio
async def test_create_checkout_session_rejects_free_and_unknown_modes(authed_client, stripe_sessions):
    free = await authed_client.post("/create-checkout-session", json={"mode": "quick"})
    unknown = await authed_client.post("/create-checkout-session", json={"mode": "nope"})
    missing = await authed_client.post("/create-checkout-session", json={})

    assert free.status_code == 400
    assert free.json()["error"] == "This mode does not require payment"
    assert unknown.status_code == 400
    assert missing.json()["error"] == "Letter mode is required"
    assert stripe_sessions == []


@pytest.mark.asyncio
async def test_create_checkout_session_stripe_failure(authed_client, monkeypatch):
    def failing_create(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", failing_create)
    res = await authed_client.post("/create-checkout-session", json={"mode": "career"})

    assert res.status_code == 500
    assert res.json()["error"] == "Failed to create checkout session"


@pytest.mark.asyncio
async def test_set_checkout_cookie(client):
    user_id = str(uuid.uuid4())
    res = await client.post("/set-checkout-cookie", json={"userId": user_id})

    assert res.status_code == 200
    assert res.json() == {"success": True}
    header = res.headers["set-cookie"]
    assert header.startswith(f"bl_uid={user_id}")
    assert "HttpOnly" in header
    assert "samesite=lax" in header.lower()
    assert "Max-Age=3600" in header


@pytest.mark.asyncio
async def test_set_checkout_cookie_requires_user_id(client):
    res = await client.post("/set-checkout-cookie", json={})
    assert res.status_code == 400
    assert res.json()["error"] == "userId is required"


@pytest.mark.asyncio
async def test_webhook_records_purchase_once(client, db):
    user_id = str(uuid.uuid4())
    body, signature = _signed(_completed_event(user_id))

    for _ in range(2):
        res = await client.post(
            "/stripe-webhook", content=body, headers={"stripe-signature": signature}
        )
        assert res.status_code == 200
        assert res.json() == {"received": True}

    purchases = db.query(Purchase).all()
    assert len(purchases) == 1
    assert purchases[0].stripe_session_id == "cs_paid_1"
    assert purchases[0].amount == 500
    assert purchases[0].currency == "NZD"
    assert purchases[0].stripe_payment_intent == "pi_123"
    assert purchases[0].used is False


@pytest.mark.asyncio
async def test_webhook_rejects_bad_signature(client, db):
    body, signature = _signed(_completed_event(str(uuid.uuid4())), secret="whsec_wrong")

    res = await client.post(
        "/stripe-webhook", content=body, headers={"stripe-signature": signature}
    )

    assert res.status_code == 400
    assert db.query(Purchase).count() == 0


@pytest.mark.asyncio
async def test_webhook_requires_signature_header(client):
    res = await client.post("/stripe-webhook", content=b"{}")
    assert res.status_code == 400
    assert res.json()["error"] == "No signature"


@pytest.mark.asyncio
async def test_webhook_rejects_missing_metadata(client, db):
    event = _completed_event(str(uuid.uuid4()))
    event["data"]["object"]["metadata"] = {"letterMode": "career"}
    body, signature = _signed(event)

    res = await client.post(
        "/stripe-webhook", content=body, headers={"stripe-signature": signature}
    )

    assert res.status_code == 400
    assert res.json()["error"] == "Missing metadata"
    assert db.query(Purchase).count() == 0


@pytest.mark.asyncio
async def test_webhook_acknowledges_other_events(client, db):
    body, signature = _signed(
        {"id": "evt_x", "type": "checkout.session.expired", "data": {"object": {"id": "cs_gone"}}}
    )
    res = await client.post(
        "/stripe-webhook", content=body, headers={"stripe-signature": signature}
    )
    assert res.status_code == 200
    assert db.query(Purchase).count() == 0
