"""Pydantic schemas for the mode and question catalog."""

from pydantic import BaseModel


class ModeRead(BaseModel):
    id: str
    name: str
    description: str
    kind: str
    icon: str
    paid: bool
    question_count: int


class QuestionRead(BaseModel):
    id: str
    section: str
    section_name: str
    prompt: str
    follow_up: str | None = None
    tags: list[str] = []
    core: bool = False
    options: list[str] = []


class ModeQuestionsRead(BaseModel):
    mode: ModeRead
    questions: list[QuestionRead]


class CrisisResource(BaseModel):
    name: str
    description: str
    url: str | None = None
    phone: str | None = None


class CrisisResourcesRead(BaseModel):
    title: str
    message: str
    resources: list[CrisisResource]
