"""Tests for the interview state machine."""

import asyncio

import httpx
import pytest

from letter_to_you.core.errors import GenerationError, SafetyInterrupt
from letter_to_you.services import question_bank
from letter_to_you.workflow.api_client import LetterApiClient
from letter_to_you.workflow.interview import (
    InterviewError,
    InterviewSession,
    InterviewState,
)
from letter_to_you.workflow.orchestrator import LetterOrchestrator


class RecordingSubmitter:
    def __init__(self, result="LETTER", error=None):
        self.result = result
        self.error = error
        self.submissions = []

    async def __call__(self, submission):
        self.submissions.append(submission)
        if self.error is not None:
            raise self.error
        return self.result


async def _walk_to_last(session):
    while not session.is_last:
        await session.next()


def test_unknown_mode_is_rejected():
    with pytest.raises(InterviewError):
        InterviewSession("nope", RecordingSubmitter())


def test_default_tone_depends_on_mode():
    assert InterviewSession("quick", RecordingSubmitter()).tone == "warm"
    assert InterviewSession("general", RecordingSubmitter()).tone == "you-decide"


@pytest.mark.asyncio
async def test_full_walk_submits_once_with_answers_in_order():
    submit = RecordingSubmitter()
    session = InterviewSession("general", submit)

    session.answer("The real reason")
    await _walk_to_last(session)
    session.set_tone("direct")
    state = await session.next()

    assert state == InterviewState.DONE
    assert session.result == "LETTER"
    (submission,) = submit.submissions
    assert submission.mode_id == "general"
    assert submission.mode_name == "General Reflection"
    assert submission.tone == "direct"
    assert [p.question_id for p in submission.pairs] == [q.id for q in session.questions]
    assert submission.pairs[0].answer == "The real reason"
    assert submission.pairs[1].answer_text == "[skipped]"


@pytest.mark.asyncio
async def test_quick_answers_use_question_options():
    session = InterviewSession("quick", RecordingSubmitter())
    option = session.current_question.options[0]

    session.quick_answer(option)
    assert session.answers[session.current_question.id] == option

    with pytest.raises(InterviewError):
        session.quick_answer("something else")


def test_regular_questions_offer_skip_options():
    session = InterviewSession("general", RecordingSubmitter())
    session.quick_answer(question_bank.SKIP_OPTIONS[0])
    assert session.answers[session.current_question.id] == "I'm not sure yet"


@pytest.mark.asyncio
async def test_follow_up_only_counts_when_open():
    submit = RecordingSubmitter()
    session = InterviewSession("general", submit)
    assert session.current_question.follow_up

    assert session.toggle_follow_up() is True
    session.answer_follow_up("Deeper answer")
    assert session.toggle_follow_up() is False

    await _walk_to_last(session)
    await session.submit()

    assert submit.submissions[0].pairs[0].follow_up_text is None


@pytest.mark.asyncio
async def test_crisis_answer_redirects_on_next_and_never_submits():
    submit = RecordingSubmitter()
    session = InterviewSession("general", submit)

    session.answer("Some days I want to die")
    state = await session.next()

    assert state == InterviewState.CRISIS_REDIRECT
    assert session.index == 0
    assert submit.submissions == []
    with pytest.raises(InterviewError):
        await session.next()


@pytest.mark.asyncio
async def test_crisis_in_follow_up_blocks_submit():
    submit = RecordingSubmitter()
    session = InterviewSession("quick", submit)
    await _walk_to_last(session)
    session.follow_up_answers[session.questions[0].id] = "I could hurt myself"

    assert await session.submit() == InterviewState.CRISIS_REDIRECT
    assert submit.submissions == []


@pytest.mark.asyncio
async def test_generation_failure_returns_to_last_question_with_answers():
    submit = RecordingSubmitter(error=GenerationError("Failed to generate letter"))
    session = InterviewSession("quick", submit)
    session.answer("kept")
    await _walk_to_last(session)

    state = await session.next()

    assert state == InterviewState.BROWSING
    assert session.is_last
    assert session.error == "Something went wrong: Failed to generate letter. Please try again."
    assert session.answers[session.questions[0].id] == "kept"

    submit.error = None
    assert await session.next() == InterviewState.DONE
    assert session.error is None
    assert len(submit.submissions) == 2


@pytest.mark.asyncio
async def test_safety_interrupt_from_submitter_redirects():
    session = InterviewSession("quick", RecordingSubmitter(error=SafetyInterrupt()))
    await _walk_to_last(session)
    assert await session.submit() == InterviewState.CRISIS_REDIRECT


@pytest.mark.asyncio
async def test_no_second_submission_while_submitting():
    gate = asyncio.Event()
    calls = []

    async def slow_submit(submission):
        calls.append(submission)
        await gate.wait()
        return "LETTER"

    session = InterviewSession("quick", slow_submit)
    await _walk_to_last(session)

    first = asyncio.create_task(session.next())
    await asyncio.sleep(0)
    assert session.state == InterviewState.SUBMITTING
    assert session.can_submit is False
    with pytest.raises(InterviewError, match="already being written"):
        await session.next()
    with pytest.raises(InterviewError):
        session.answer("edit while submitting")

    gate.set()
    assert await first == InterviewState.DONE
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_result_discarded_after_close():
    gate = asyncio.Event()

    async def slow_submit(submission):
        await gate.wait()
        return "LETTER"

    session = InterviewSession("quick", slow_submit)
    await _walk_to_last(session)
    task = asyncio.create_task(session.submit())
    await asyncio.sleep(0)

    session.close()
    gate.set()
    await task

    assert session.result is None
    assert session.state != InterviewState.DONE


def test_navigation_bounds_and_tone_rules():
    session = InterviewSession("general", RecordingSubmitter())

    session.prev()
    assert session.index == 0
    with pytest.raises(InterviewError):
        session.jump(len(session.questions))
    with pytest.raises(InterviewError):
        session.set_tone("direct")

    session.jump(len(session.questions) - 1)
    with pytest.raises(InterviewError):
        session.set_tone("sarcastic")
    session.set_tone("motivating")
    assert session.tone == "motivating"


@pytest.mark.asyncio
async def test_reset_clears_everything():
    session = InterviewSession("quick", RecordingSubmitter())
    session.answer("x")
    await session.next()

    session.reset()

    assert session.index == 0
    assert session.answers == {}
    assert session.state == InterviewState.BROWSING


@pytest.mark.asyncio
async def test_skip_is_recorded_apart_from_a_cleared_answer():
    submit = RecordingSubmitter()
    session = InterviewSession("general", submit)

    session.answer("draft I changed my mind about")
    await session.skip()
    session.answer("")
    await _walk_to_last(session)
    await session.next()

    first, second = submit.submissions[0].pairs[:2]
    assert first.answer is None
    assert first.answer_text == "[skipped]"
    assert second.answer == ""
    assert second.answer_text == ""
    assert session.pairs()[2].answer_text == "[skipped]"


@pytest.mark.asyncio
async def test_answering_after_skip_clears_the_skip():
    session = InterviewSession("general", RecordingSubmitter())
    await session.skip()
    session.prev()
    session.answer("Actually, this")

    assert session.pairs()[0].answer == "Actually, this"


@pytest.mark.asyncio
async def test_unexpected_submitter_error_returns_to_last_question():
    submit = RecordingSubmitter(error=RuntimeError("boom"))
    session = InterviewSession("general", submit)
    session.answer("Kept")
    await _walk_to_last(session)

    assert await session.next() == InterviewState.BROWSING
    assert session.is_last
    assert session.can_submit
    assert "Please try again" in session.error
    assert session.answers[session.questions[0].id] == "Kept"

    submit.error = None
    assert await session.next() == InterviewState.DONE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        httpx.Response(200, text="<html>bad gateway page</html>"),
        httpx.Response(200, json=["not", "a", "letter"]),
    ],
)
async def test_malformed_generation_reply_keeps_the_interview_retryable(reply):
    def handler(request: httpx.Request) -> httpx.Response:
        return reply

    async with LetterApiClient("http://test", transport=httpx.MockTransport(handler)) as api:
        session = InterviewSession("quick", LetterOrchestrator(api).generate)
        while True:
            session.quick_answer(session.current_question.options[0])
            if session.is_last:
                break
            await session.next()

        state = await session.next()

    assert state == InterviewState.BROWSING
    assert session.is_last
    assert session.can_submit
    assert session.error.startswith("Something went wrong")
    assert len(session.answers) == len(session.questions)
