"""Tests for the mode catalog and crisis resources endpoints."""

import pytest

from letter_to_you.services import question_bank


@pytest.mark.asyncio
async def test_list_modes(client):
    res = await client.get("/modes")

    assert res.status_code == 200
    modes = {m["id"]: m for m in res.json()}
    assert set(modes) == {m.id for m in question_bank.all_modes()}
    assert modes["quick"]["paid"] is False
    assert modes["career"]["paid"] is True
    assert modes["quick"]["question_count"] == 5
    assert modes["general"]["question_count"] <= question_bank.MAX_GENERAL_QUESTIONS


@pytest.mark.asyncio
async def test_mode_questions_in_order(client):
    res = await client.get("/modes/breakup/questions")

    assert res.status_code == 200
    body = res.json()
    assert body["mode"]["kind"] == "life_event"
    assert [q["id"] for q in body["questions"]] == [
        q.id for q in question_bank.select_questions("breakup")
    ]


@pytest.mark.asyncio
async def test_quick_questions_carry_options(client):
    res = await client.get("/modes/quick/questions")
    assert all(len(q["options"]) == 4 for q in res.json()["questions"])


@pytest.mark.asyncio
async def test_unknown_mode(client):
    res = await client.get("/modes/nope/questions")
    assert res.status_code == 404
    assert res.json() == {"error": "Mode not found"}


@pytest.mark.asyncio
async def test_crisis_resources(client):
    res = await client.get("/crisis-resources")

    assert res.status_code == 200
    body = res.json()
    assert body["title"] == "You deserve real support right now"
    assert any(r.get("phone") == "988" for r in body["resources"])
