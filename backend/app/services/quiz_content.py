from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.quiz import Option, Question, Quiz
from app.models.theme import Theme


@dataclass
class LoadedQuestion:
    question: Question
    options: list[Option] = field(default_factory=list)
    quiz_title: str | None = None
    theme_title: str | None = None

    @property
    def id(self) -> str:
        return str(self.question.id)

    @property
    def correct_option_ids(self) -> frozenset[str]:
        return frozenset(str(o.id) for o in self.options if o.is_correct)

    def public(self) -> dict[str, Any]:
        """Question as shown while answering: no correctness, no explanations."""
        return {
            "id": self.id,
            "content": self.question.content,
            "type": self.question.type.value,
            "quiz_title": self.quiz_title,
            "theme_title": self.theme_title,
            "options": [{"id": str(o.id), "content": o.content} for o in self.options],
        }

    def correction(self, selected: Iterable[str] | None = None) -> dict[str, Any]:
        chosen = set(selected) if selected is not None else set()
        return {
            "id": self.id,
            "content": self.question.content,
            "type": self.question.type.value,
            "quiz_title": self.quiz_title,
            "theme_title": self.theme_title,
            "options": [
                {
                    "id": str(o.id),
                    "content": o.content,
                    "is_correct": bool(o.is_correct),
                    "explanation": o.explanation,
                    "was_selected": str(o.id) in chosen,
                }
                for o in self.options
            ],
        }


def load_questions(
    db: Session,
    *,
    quiz_id: uuid.UUID | None = None,
    question_ids: list[uuid.UUID] | None = None,
) -> list[LoadedQuestion]:
    """Batch-load questions with their options and quiz/theme titles."""
    stmt = (
        select(Question, Quiz.title, Theme.title)
        .join(Quiz, Quiz.id == Question.quiz_id)
        .outerjoin(Theme, Theme.id == Quiz.theme_id)
    )
    if quiz_id is not None:
        stmt = stmt.where(Question.quiz_id == quiz_id)
    if question_ids is not None:
        if not question_ids:
            return []
        stmt = stmt.where(Question.id.in_(question_ids))
    stmt = stmt.order_by(Question.quiz_id, Question.order, Question.id)

    rows = db.execute(stmt).all()
    loaded = [LoadedQuestion(question=q, quiz_title=qt, theme_title=tt) for q, qt, tt in rows]
    if not loaded:
        return []

    by_id = {lq.question.id: lq for lq in loaded}
    options = db.scalars(
        select(Option).where(Option.question_id.in_(list(by_id.keys()))).order_by(Option.question_id, Option.id)
    ).all()
    for o in options:
        by_id[o.question_id].options.append(o)

    return loaded


def answer_key(questions: Iterable[LoadedQuestion]) -> dict[str, frozenset[str]]:
    return {lq.id: lq.correct_option_ids for lq in questions}
