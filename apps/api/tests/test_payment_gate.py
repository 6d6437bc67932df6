"""Tests for the paid-mode gate and session continuity around checkout."""

import uuid
from types import SimpleNamespace

import pytest
import stripe

from letter_to_you.core.errors import ConflictError, NotFoundError, PaymentVerificationError
from letter_to_you.core.security import AuthUser
from letter_to_you.services import purchase_service
from letter_to_you.workflow.auth import AuthSession
from letter_to_you.workflow.payment_gate import GateState, PaymentGate
from letter_to_you.workflow.session_guard import SessionGuard


@pytest.fixture
def stripe_checkout(monkeypatch):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="cs_gate", url="https://checkout.stripe.test/cs_gate")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    return calls


class Sleeper:
    """Records requested delays; optionally runs a hook on each sleep."""

    def __init__(self, on_sleep=None):
        self.delays = []
        self.on_sleep = on_sleep

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.on_sleep:
            self.on_sleep(len(self.delays))


def _gate(api, user_id, mode_id="career", **kwargs):
    kwargs.setdefault("verify_delay", 0.25)
    return PaymentGate(api, SessionGuard(api), user_id=user_id, mode_id=mode_id, **kwargs)


@pytest.mark.asyncio
async def test_free_mode_is_granted_without_calls(api, stripe_checkout):
    gate = _gate(api, uuid.uuid4(), mode_id="quick")

    decision = await gate.request_access()

    assert decision.granted is True
    assert gate.state == GateState.VERIFIED
    assert stripe_checkout == []


def test_unknown_mode():
    with pytest.raises(NotFoundError):
        PaymentGate(None, None, user_id="u", mode_id="nope")


@pytest.mark.asyncio
async def test_existing_purchase_for_this_mode_is_reused(api, db, stripe_checkout):
    user_id = uuid.uuid4()
    purchase_service.record_purchase(db, user_id=user_id, letter_mode="relationships", stripe_session_id="cs_r")
    career, _ = purchase_service.record_purchase(db, user_id=user_id, letter_mode="career", stripe_session_id="cs_c")
    gate = _gate(api, user_id)

    decision = await gate.request_access()

    assert decision.granted is True
    assert gate.purchase_id == str(career.id)
    assert stripe_checkout == []


@pytest.mark.asyncio
async def test_purchase_for_other_mode_does_not_unlock(api, db, stripe_checkout):
    user_id = uuid.uuid4()
    purchase_service.record_purchase(db, user_id=user_id, letter_mode="relationships", stripe_session_id="cs_r")
    gate = _gate(api, user_id)
    session = AuthSession("at-1", "rt-1", AuthUser(id=str(user_id)))

    decision = await gate.request_access(session)

    assert decision.granted is False
    assert decision.checkout_url == "https://checkout.stripe.test/cs_gate"
    assert gate.state == GateState.CHECKOUT_PENDING
    assert gate.payment_loading is False
    assert stripe_checkout[0]["metadata"]["letterMode"] == "career"
    assert api.cookies.get("bl_uid") == str(user_id)
    assert "bl_restore" in api.cookies


@pytest.mark.asyncio
async def test_concurrent_checkout_start_is_rejected(api):
    gate = _gate(api, uuid.uuid4())
    gate.payment_loading = True

    with pytest.raises(ConflictError):
        await gate.request_access()


@pytest.mark.asyncio
async def test_verify_return_waits_for_late_webhook(api, db):
    user_id = uuid.uuid4()

    def webhook_lands(attempt):
        if attempt == 2:
            purchase_service.record_purchase(
                db, user_id=user_id, letter_mode="career", stripe_session_id="cs_late"
            )

    sleeper = Sleeper(on_sleep=webhook_lands)
    gate = _gate(api, user_id, verify_attempts=5, sleep=sleeper)

    purchase = await gate.verify_return("cs_late")

    assert purchase["letterMode"] == "career"
    assert gate.state == GateState.VERIFIED
    assert sleeper.delays == [0.25, 0.25]


@pytest.mark.asyncio
async def test_verify_return_gives_up_after_bounded_attempts(api):
    sleeper = Sleeper()
    gate = _gate(api, uuid.uuid4(), verify_attempts=3, sleep=sleeper)

    with pytest.raises(PaymentVerificationError) as exc_info:
        await gate.verify_return("cs_never")

    assert len(sleeper.delays) == 2
    assert gate.state == GateState.UNAUTHORIZED
    assert exc_info.value.to_payload()["support"] == "support@lettertoyou.app"


@pytest.mark.asyncio
async def test_verify_return_rejects_purchase_for_other_mode(api, db):
    user_id = uuid.uuid4()
    purchase_service.record_purchase(db, user_id=user_id, letter_mode="grief", stripe_session_id="cs_grief")
    sleeper = Sleeper()
    gate = _gate(api, user_id, verify_attempts=5, sleep=sleeper)

    with pytest.raises(PaymentVerificationError):
        await gate.verify_return("cs_grief")
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_handle_return_restores_session_first(api, db, stripe_checkout, mint_token):
    user_id = uuid.uuid4()
    access_token = mint_token(user_id)
    gate = _gate(api, user_id)
    await gate.request_access(AuthSession(access_token, "rt-restored", AuthUser(id=str(user_id))))
    purchase_service.record_purchase(db, user_id=user_id, letter_mode="career", stripe_session_id="cs_gate")

    purchase = await gate.handle_return("cs_gate")

    assert api.access_token == access_token
    assert purchase["letterMode"] == "career"
    gate.mark_consumed()
    assert gate.state == GateState.CONSUMED


@pytest.mark.asyncio
async def test_restore_is_single_use(api):
    guard = SessionGuard(api)
    user_id = str(uuid.uuid4())
    assert await guard.preserve_session(AuthSession("at", "rt", AuthUser(id=user_id))) is True

    first = await guard.restore_session()
    second = await guard.restore_session()

    assert (first.access_token, first.refresh_token) == ("at", "rt")
    assert second is None
