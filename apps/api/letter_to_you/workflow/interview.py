"""Interview state machine.

One session per mode visit. The session owns the answers and the page index;
letter generation is delegated to a ``submit`` callable (normally
``LetterOrchestrator.generate``) that is called at most once per submission.

States::

    browsing(index) --next/skip at last--> submitting --ok--> done
                                               |
                                               +--error--> browsing(last) + error
    any forward step with a crisis signal --> crisis-redirect
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from letter_to_you.core.errors import LetterError, SafetyInterrupt
from letter_to_you.db.enums import Tone
from letter_to_you.services import question_bank, safety
from letter_to_you.services.question_bank import Question
from letter_to_you.services.transcript import QAPair

logger = logging.getLogger(__name__)


class InterviewState(str, Enum):
    BROWSING = "browsing"
    SUBMITTING = "submitting"
    DONE = "done"
    CRISIS_REDIRECT = "crisis-redirect"


class InterviewError(LetterError):
    """Invalid interview action (unknown mode, out-of-range jump, ...)."""

    status_code = 400
    default_message = "Invalid interview action"


@dataclass(frozen=True)
class InterviewSubmission:
    """Everything the generator needs, captured at submit time."""

    mode_id: str
    mode_name: str
    tone: str
    pairs: tuple[QAPair, ...]


Submitter = Callable[[InterviewSubmission], Awaitable[Any]]


class InterviewSession:
    def __init__(self, mode_id: str, submit: Submitter, *, tone: str | None = None):
        questions = question_bank.select_questions(mode_id)
        if not questions:
            raise InterviewError(f"Unknown mode: {mode_id}")

        self.mode_id = mode_id
        self.mode_name = question_bank.mode_name(mode_id)
        self.questions: tuple[Question, ...] = tuple(questions)
        self._submit = submit
        self._default_tone = tone or (
            Tone.WARM.value if mode_id == question_bank.QUICK_MODE_ID else Tone.YOU_DECIDE.value
        )
        self._mounted = True
        self.reset()

    # -- state ---------------------------------------------------------------

    def reset(self) -> None:
        """Start over: clear answers, go back to the first question."""
        self.answers: dict[str, str] = {}
        self.skipped: set[str] = set()
        self.follow_up_open: dict[str, bool] = {}
        self.follow_up_answers: dict[str, str] = {}
        self.index = 0
        self.tone = self._default_tone
        self.state = InterviewState.BROWSING
        self.error: str | None = None
        self.result: Any = None

    def close(self) -> None:
        """The view went away; any generation still in flight is discarded."""
        self._mounted = False

    @property
    def current_question(self) -> Question:
        return self.questions[self.index]

    @property
    def is_last(self) -> bool:
        return self.index == len(self.questions) - 1

    @property
    def can_submit(self) -> bool:
        return self.state == InterviewState.BROWSING

    def _require_browsing(self) -> None:
        if self.state == InterviewState.SUBMITTING:
            raise InterviewError("Your letter is already being written")
        if self.state != InterviewState.BROWSING:
            raise InterviewError(f"Interview is {self.state.value}")

    # -- editing -------------------------------------------------------------

    def answer(self, text: str) -> None:
        self._require_browsing()
        self._record_answer(self.current_question.id, text)

    def answer_follow_up(self, text: str) -> None:
        self._require_browsing()
        self.follow_up_answers[self.current_question.id] = text

    def toggle_follow_up(self) -> bool:
        """Open/close the current question's follow-up; returns the new state."""
        self._require_browsing()
        question = self.current_question
        if not question.follow_up:
            raise InterviewError("This question has no follow-up")
        is_open = not self.follow_up_open.get(question.id, False)
        self.follow_up_open[question.id] = is_open
        return is_open

    def quick_answer(self, option: str) -> None:
        """Answer with one of the question's pre-written options."""
        self._require_browsing()
        question = self.current_question
        allowed = question.options or question_bank.SKIP_OPTIONS
        if option not in allowed:
            raise InterviewError("Unknown answer option")
        self._record_answer(question.id, option)

    def _record_answer(self, question_id: str, text: str) -> None:
        self.answers[question_id] = text
        self.skipped.discard(question_id)

    def set_tone(self, tone: str) -> None:
        self._require_browsing()
        if not self.is_last:
            raise InterviewError("Tone is chosen on the last question")
        if not Tone.has_value(tone):
            raise InterviewError(f"Unknown tone: {tone}")
        self.tone = tone

    # -- navigation ----------------------------------------------------------

    def prev(self) -> None:
        self._require_browsing()
        if self.index > 0:
            self.index -= 1

    def jump(self, index: int) -> None:
        self._require_browsing()
        if not 0 <= index < len(self.questions):
            raise InterviewError("No such question")
        self.index = index

    def has_crisis_signal(self) -> bool:
        return safety.scan_answers(self.answers.values(), self.follow_up_answers.values())

    async def next(self) -> InterviewState:
        """
        Move forward. At the last question this submits the interview.

        Every forward step is safety-scanned; a hit ends in crisis-redirect
        and nothing is submitted.
        """
        self._require_browsing()
        if self.is_last:
            return await self.submit()
        if self.has_crisis_signal():
            return self._redirect()
        self.index += 1
        return self.state

    async def skip(self) -> InterviewState:
        """
        Decline the current question and move on.

        A skipped question reaches the transcript as ``[skipped]``, never as
        an empty answer. Any text typed before skipping is dropped.
        """
        self._require_browsing()
        question_id = self.current_question.id
        self.answers.pop(question_id, None)
        self.skipped.add(question_id)
        return await self.next()

    def pairs(self) -> tuple[QAPair, ...]:
        return tuple(
            QAPair(
                question_id=q.id,
                prompt=q.prompt,
                answer=None if q.id in self.skipped else self.answers.get(q.id),
                follow_up=q.follow_up,
                follow_up_open=self.follow_up_open.get(q.id, False),
                follow_up_answer=self.follow_up_answers.get(q.id),
            )
            for q in self.questions
        )

    async def submit(self) -> InterviewState:
        self._require_browsing()
        if self.has_crisis_signal():
            return self._redirect()

        self.state = InterviewState.SUBMITTING
        self.error = None
        submission = InterviewSubmission(
            mode_id=self.mode_id,
            mode_name=self.mode_name,
            tone=self.tone,
            pairs=self.pairs(),
        )
        try:
            result = await self._submit(submission)
        except SafetyInterrupt:
            if self._mounted:
                self._redirect()
            return self.state
        except LetterError as exc:
            return self._generation_failed(exc.message)
        except Exception:
            logger.exception("Letter generation failed unexpectedly for mode %s", self.mode_id)
            return self._generation_failed("your letter could not be written")

        if not self._mounted:
            logger.info("Discarding letter for a closed interview")
            return self.state
        self.result = result
        self.state = InterviewState.DONE
        return self.state

    def _generation_failed(self, message: str) -> InterviewState:
        """Back to the last question with answers intact so the user can retry."""
        if not self._mounted:
            logger.info("Discarding generation error for a closed interview")
            return self.state
        self.state = InterviewState.BROWSING
        self.index = len(self.questions) - 1
        self.error = f"Something went wrong: {message}. Please try again."
        return self.state

    def _redirect(self) -> InterviewState:
        logger.info("Interview for mode %s redirected to crisis resources", self.mode_id)
        self.state = InterviewState.CRISIS_REDIRECT
        return self.state
