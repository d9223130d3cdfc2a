from __future__ import annotations

from pydantic import BaseModel, Field

from app.schemas.quiz import QuestionCorrection


class RevisionOption(BaseModel):
    id: str
    content: str


class RevisionQuestion(BaseModel):
    id: str
    content: str
    type: str
    quiz_title: str | None = None
    theme_title: str | None = None
    options: list[RevisionOption]


class RevisionQuizResponse(BaseModel):
    id: str
    title: str
    description: str
    difficulty: str
    time_limit_minutes: int
    passing_score: int
    is_revision_quiz: bool = True
    questions: list[RevisionQuestion]


class RevisionSubmitRequest(BaseModel):
    answers: dict[str, list[str]] = Field(default_factory=dict)


class RevisionQuestionResult(QuestionCorrection):
    user_answers: list[str]
    is_correct: bool


class RevisionSubmitResponse(BaseModel):
    score: int
    correct_count: int
    total_questions: int
    passed: bool
    results: list[RevisionQuestionResult]
