"""Tests for purchase recording, verification and exactly-once consumption."""

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from letter_to_you.db.base import Base
from letter_to_you.db.models import Purchase
from letter_to_you.services import purchase_service


def _record(db, user_id, session_id="cs_test_1", mode="career"):
    purchase, _created = purchase_service.record_purchase(
        db,
        user_id=user_id,
        letter_mode=mode,
        mode_name="Career & Work",
        stripe_session_id=session_id,
        amount=500,
        currency="nzd",
    )
    return purchase


def test_record_purchase_is_idempotent_per_checkout(db):
    user_id = uuid.uuid4()
    first, created = purchase_service.record_purchase(
        db, user_id=user_id, letter_mode="career", stripe_session_id="cs_dup"
    )
    second, created_again = purchase_service.record_purchase(
        db, user_id=user_id, letter_mode="career", stripe_session_id="cs_dup"
    )

    assert created is True
    assert created_again is False
    assert first.id == second.id
    assert db.query(Purchase).count() == 1
    assert first.currency == "NZD"
    assert first.mode_name == "career"


def test_mark_used_succeeds_exactly_once(db):
    user_id = uuid.uuid4()
    purchase = _record(db, user_id)
    letter_id = uuid.uuid4()

    used = purchase_service.mark_used(
        db, purchase_id=purchase.id, user_id=user_id, letter_id=letter_id
    )
    again = purchase_service.mark_used(db, purchase_id=purchase.id, user_id=user_id)

    assert used is not None
    assert used.used is True
    assert used.used_at is not None
    assert used.letter_id == letter_id
    assert again is None


def test_concurrent_mark_used_has_exactly_one_winner(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'purchases.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    Sessions = sessionmaker(bind=engine, autoflush=False)
    user_id = uuid.uuid4()
    with Sessions() as setup:
        purchase_id = _record(setup, user_id, session_id="cs_race").id

    workers = 4
    barrier = threading.Barrier(workers)

    def consume(_):
        with Sessions() as session:
            barrier.wait()
            used = purchase_service.mark_used(
                session, purchase_id=purchase_id, user_id=user_id, letter_id=uuid.uuid4()
            )
            return used is not None

    try:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(consume, range(workers)))
    finally:
        engine.dispose()

    assert outcomes.count(True) == 1


def test_mark_used_requires_ownership(db):
    purchase = _record(db, uuid.uuid4())

    assert purchase_service.mark_used(db, purchase_id=purchase.id, user_id=uuid.uuid4()) is None
    db.refresh(purchase)
    assert purchase.used is False


def test_unused_lookups_skip_consumed_purchases(db):
    user_id = uuid.uuid4()
    first = _record(db, user_id, "cs_a")
    _record(db, user_id, "cs_b", mode="relationships")
    purchase_service.mark_used(db, purchase_id=first.id, user_id=user_id)

    assert purchase_service.find_unused_purchase(db, user_id=user_id, stripe_session_id="cs_a") is None
    remaining = purchase_service.list_unused_purchases(db, user_id)
    assert [p.stripe_session_id for p in remaining] == ["cs_b"]
    assert purchase_service.list_unused_purchases(db, user_id, letter_mode="career") == []


@pytest.mark.asyncio
async def test_verify_purchase_by_session(client, db):
    user_id = uuid.uuid4()
    _record(db, user_id, "cs_verify")

    res = await client.get(
        "/verify-purchase", params={"userId": str(user_id), "sessionId": "cs_verify"}
    )
    assert res.status_code == 200
    body = res.json()
    assert body["valid"] is True
    assert body["purchase"]["letterMode"] == "career"
    assert "purchases" not in body

    res = await client.post(
        "/verify-purchase", json={"userId": str(user_id), "sessionId": "cs_other"}
    )
    assert res.json() == {"valid": False, "message": "Purchase not found or already used"}


@pytest.mark.asyncio
async def test_verify_purchase_without_session_lists_unused(client, db):
    user_id = uuid.uuid4()
    _record(db, user_id, "cs_1")
    _record(db, user_id, "cs_2", mode="relationships")

    res = await client.get("/verify-purchase", params={"userId": str(user_id)})
    assert res.status_code == 200
    modes = sorted(p["letterMode"] for p in res.json()["purchases"])
    assert modes == ["career", "relationships"]


@pytest.mark.asyncio
async def test_verify_purchase_requires_user(client):
    res = await client.get("/verify-purchase")
    assert res.status_code == 400
    assert res.json()["error"] == "Missing required field: userId"


@pytest.mark.asyncio
async def test_mark_purchase_used_second_call_conflicts(client, db):
    user_id = uuid.uuid4()
    purchase = _record(db, user_id)
    body = {"purchaseId": str(purchase.id), "userId": str(user_id)}

    first = await client.post("/mark-purchase-used", json=body)
    second = await client.post("/mark-purchase-used", json=body)

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["purchase"]["id"] == str(purchase.id)
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_mark_purchase_used_falls_back_to_checkout_cookie(client, db):
    user_id = uuid.uuid4()
    purchase = _record(db, user_id)

    cookie = await client.post("/set-checkout-cookie", json={"userId": str(user_id)})
    assert cookie.status_code == 200

    res = await client.post("/mark-purchase-used", json={"purchaseId": str(purchase.id)})
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_mark_purchase_used_rejects_token_mismatch(authed_client, db):
    purchase = _record(db, uuid.uuid4())
    res = await authed_client.post(
        "/mark-purchase-used",
        json={"purchaseId": str(purchase.id), "userId": str(uuid.uuid4())},
    )
    assert res.status_code == 401


def _paid_session(session_id, user_id, mode="career", payment_status="paid"):
    return {
        "id": session_id,
        "payment_status": payment_status,
        "amount_total": 500,
        "currency": "nzd",
        "payment_intent": "pi_early",
        "metadata": {"userId": str(user_id), "letterMode": mode, "modeName": "Career & Meaning"},
    }


@pytest.mark.asyncio
async def test_verify_records_paid_checkout_before_webhook(client, db, stripe_lookup):
    user_id = uuid.uuid4()
    stripe_lookup["cs_early"] = _paid_session("cs_early", user_id)

    res = await client.get(
        "/verify-purchase", params={"userId": str(user_id), "sessionId": "cs_early"}
    )

    assert res.json()["valid"] is True
    assert res.json()["purchase"]["letterMode"] == "career"
    purchase = purchase_service.get_by_session_id(db, "cs_early")
    assert purchase.stripe_payment_intent == "pi_early"

    # The webhook arriving afterwards does not create a second row
    again, created = purchase_service.record_purchase(
        db, user_id=user_id, letter_mode="career", stripe_session_id="cs_early"
    )
    assert created is False
    assert again.id == purchase.id


@pytest.mark.asyncio
async def test_verify_ignores_unpaid_or_foreign_checkouts(client, db, stripe_lookup):
    user_id = uuid.uuid4()
    stripe_lookup["cs_unpaid"] = _paid_session("cs_unpaid", user_id, payment_status="unpaid")
    stripe_lookup["cs_foreign"] = _paid_session("cs_foreign", uuid.uuid4())

    for session_id in ("cs_unpaid", "cs_foreign"):
        res = await client.get(
            "/verify-purchase", params={"userId": str(user_id), "sessionId": session_id}
        )
        assert res.json()["valid"] is False

    assert db.query(Purchase).count() == 0


@pytest.mark.asyncio
async def test_verify_does_not_revive_consumed_purchase(client, db, stripe_lookup):
    user_id = uuid.uuid4()
    purchase = _record(db, user_id, "cs_spent")
    purchase_service.mark_used(db, purchase_id=purchase.id, user_id=user_id)
    stripe_lookup["cs_spent"] = _paid_session("cs_spent", user_id)

    res = await client.get(
        "/verify-purchase", params={"userId": str(user_id), "sessionId": "cs_spent"}
    )

    assert res.json() == {"valid": False, "message": "Purchase not found or already used"}
