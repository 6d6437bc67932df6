"""Letter generation orchestrator.

Turns an interview submission into a letter with exactly one generation
call, then runs the nice-to-have side effects (save the letter, consume the
purchase) as background tasks. Their outcome is reported separately and
never changes the letter that was already returned.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from letter_to_you.core.errors import GenerationError, LetterError, SafetyInterrupt
from letter_to_you.services import safety
from letter_to_you.services.transcript import format_transcript, to_payload
from letter_to_you.workflow.api_client import LetterApiClient
from letter_to_you.workflow.interview import InterviewSubmission

logger = logging.getLogger(__name__)

SAVE_FAILED_NOTICE = (
    "Your letter was written but we couldn't save it to your account. "
    "Copy or email it so you don't lose it."
)


@dataclass
class SideEffectReport:
    saved_letter_id: str | None = None
    save_error: str | None = None
    purchase_consumed: bool = False
    purchase_error: str | None = None

    @property
    def notice(self) -> str | None:
        return SAVE_FAILED_NOTICE if self.save_error else None


@dataclass
class GeneratedLetter:
    content: str
    mode_id: str
    mode_name: str
    tone: str
    questions: list[dict[str, Any]]
    side_effects: asyncio.Task | None = field(default=None, repr=False)


class LetterOrchestrator:
    def __init__(
        self,
        api: LetterApiClient,
        *,
        user_id: str | UUID | None = None,
        purchase_id: str | UUID | None = None,
    ):
        self.api = api
        self.user_id = str(user_id) if user_id else None
        self.purchase_id = str(purchase_id) if purchase_id else None
        self.generating = False
        self._tasks: set[asyncio.Task] = set()

    async def generate(self, submission: InterviewSubmission) -> GeneratedLetter:
        """
        Generate the letter for a submitted interview.

        Raises:
            SafetyInterrupt: the answers contain a crisis signal
            GenerationError: generation failed (answers are untouched)
        """
        if self.generating:
            raise GenerationError("Your letter is already being written")

        pairs = list(submission.pairs)
        if safety.scan_answers(
            (p.answer for p in pairs), (p.follow_up_answer for p in pairs)
        ):
            raise SafetyInterrupt()

        transcript = format_transcript(pairs)
        self.generating = True
        try:
            content = await self.api.generate_letter(
                qa_pairs=transcript,
                mode=submission.mode_id,
                mode_name=submission.mode_name,
                tone=submission.tone,
            )
        finally:
            self.generating = False

        letter = GeneratedLetter(
            content=content,
            mode_id=submission.mode_id,
            mode_name=submission.mode_name,
            tone=submission.tone,
            questions=to_payload(pairs),
        )
        if self.user_id:
            letter.side_effects = self._spawn(self._persist(letter))
        return letter

    def _spawn(self, coro: Coroutine[Any, Any, SideEffectReport]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _persist(self, letter: GeneratedLetter) -> SideEffectReport:
        report = SideEffectReport()
        try:
            saved = await self.api.save_letter(
                user_id=self.user_id,
                letter_content=letter.content,
                mode=letter.mode_id,
                tone=letter.tone,
                questions=letter.questions,
            )
            report.saved_letter_id = str(saved["id"])
        except LetterError as exc:
            logger.warning("Letter could not be saved: %s", exc.message)
            report.save_error = exc.message

        if self.purchase_id:
            try:
                await self.api.mark_purchase_used(
                    purchase_id=self.purchase_id,
                    user_id=self.user_id,
                    letter_id=report.saved_letter_id,
                )
                report.purchase_consumed = True
            except LetterError as exc:
                # Another tab consumed it first, or the network dropped.
                logger.info("Purchase %s not marked used: %s", self.purchase_id, exc.message)
                report.purchase_error = exc.message
        return report

    async def drain(self) -> list[SideEffectReport]:
        """Wait for outstanding side effects (used on shutdown and in tests)."""
        if not self._tasks:
            return []
        return list(await asyncio.gather(*list(self._tasks)))
