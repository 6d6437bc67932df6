"""Catalog router - modes, their questions and crisis resources."""

from fastapi import APIRouter

from letter_to_you.core.errors import NotFoundError
from letter_to_you.schemas.catalog import (
    CrisisResourcesRead,
    ModeQuestionsRead,
    ModeRead,
    QuestionRead,
)
from letter_to_you.services import question_bank
from letter_to_you.services.question_bank import Mode, Question
from letter_to_you.services.safety import CRISIS_RESOURCES

router = APIRouter(tags=["catalog"])


def _mode_read(mode: Mode) -> ModeRead:
    return ModeRead(
        id=mode.id,
        name=mode.name,
        description=mode.description,
        kind=mode.kind.value,
        icon=mode.icon,
        paid=mode.paid,
        question_count=len(question_bank.select_questions(mode.id)),
    )


def _question_read(question: Question) -> QuestionRead:
    return QuestionRead(
        id=question.id,
        section=question.section,
        section_name=question.section_name,
        prompt=question.prompt,
        follow_up=question.follow_up,
        tags=list(question.tags),
        core=question.core,
        options=list(question.options),
    )


@router.get("/modes", response_model=list[ModeRead])
def list_modes():
    return [_mode_read(mode) for mode in question_bank.all_modes()]


@router.get("/modes/{mode_id}/questions", response_model=ModeQuestionsRead)
def mode_questions(mode_id: str):
    """Ordered interview questions for a mode."""
    mode = question_bank.get_mode(mode_id)
    if mode is None:
        raise NotFoundError("Mode not found")
    return ModeQuestionsRead(
        mode=_mode_read(mode),
        questions=[_question_read(q) for q in question_bank.select_questions(mode_id)],
    )


@router.get("/crisis-resources", response_model=CrisisResourcesRead)
def crisis_resources():
    return CRISIS_RESOURCES
