"""Interview transcript formatting.

The transcript is the complete payload for letter generation:

    Q1: <prompt>
    A1: <answer or [skipped]>

    Follow-up: <follow-up prompt>
    Answer: <follow-up answer>

with question blocks joined by a ``---`` separator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

SKIPPED = "[skipped]"
BLOCK_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class QAPair:
    """One question in session order; ``answer is None`` means it was skipped."""

    question_id: str
    prompt: str
    answer: str | None = None
    follow_up: str | None = None
    follow_up_open: bool = False
    follow_up_answer: str | None = None

    @property
    def answer_text(self) -> str:
        if self.answer is None:
            return SKIPPED
        return self.answer.strip()

    @property
    def follow_up_text(self) -> str | None:
        """Follow-up answer, only when the follow-up was opened and answered."""
        if not (self.follow_up and self.follow_up_open):
            return None
        text = (self.follow_up_answer or "").strip()
        return text or None


def format_block(number: int, pair: QAPair) -> str:
    block = f"Q{number}: {pair.prompt}\nA{number}: {pair.answer_text}"
    follow_up_answer = pair.follow_up_text
    if follow_up_answer:
        block += f"\n\nFollow-up: {pair.follow_up}\nAnswer: {follow_up_answer}"
    return block


def format_transcript(pairs: list[QAPair]) -> str:
    """Render the ordered Q/A pairs as one transcript string."""
    return BLOCK_SEPARATOR.join(
        format_block(number, pair) for number, pair in enumerate(pairs, start=1)
    )


def to_payload(pairs: list[QAPair]) -> list[dict[str, Any]]:
    """Serializable Q/A payload stored alongside a saved letter."""
    payload = []
    for pair in pairs:
        item: dict[str, Any] = {
            "id": pair.question_id,
            "question": pair.prompt,
            "answer": pair.answer_text,
        }
        follow_up_answer = pair.follow_up_text
        if follow_up_answer:
            item["followUp"] = pair.follow_up
            item["followUpAnswer"] = follow_up_answer
        payload.append(item)
    return payload
