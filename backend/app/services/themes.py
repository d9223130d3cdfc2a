from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.models.attempt import QuizAttempt
from app.models.quiz import Quiz
from app.models.theme import Theme

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThemeCompletion:
    theme_id: str
    theme_name: str
    completed: bool
    total_quizzes: int
    passed_quiz_ids: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def get_theme_completion(db: Session, *, theme_id: uuid.UUID, user_id: uuid.UUID) -> ThemeCompletion:
    """Decide whether ``user_id`` has passed every active quiz of a theme.

    A quiz counts as passed when the user's best attempt reaches its passing
    score. Recomputed on every call; nothing is stored.
    """
    theme = db.scalar(select(Theme).where(Theme.id == theme_id))
    if theme is None:
        raise NotFound("theme not found", theme_id=str(theme_id))

    quizzes = db.execute(
        select(Quiz.id, Quiz.passing_score).where(Quiz.theme_id == theme.id, Quiz.is_active == True)  # noqa: E712
    ).all()
    quiz_ids = [qid for qid, _ in quizzes]

    best_scores: dict[uuid.UUID, int] = {}
    if quiz_ids:
        best_scores = dict(
            db.execute(
                select(QuizAttempt.quiz_id, func.max(QuizAttempt.score))
                .where(QuizAttempt.user_id == user_id, QuizAttempt.quiz_id.in_(quiz_ids))
                .group_by(QuizAttempt.quiz_id)
            ).all()
        )

    passed = [
        str(qid)
        for qid, passing_score in quizzes
        if best_scores.get(qid) is not None and int(best_scores[qid]) >= int(passing_score)
    ]
    completed = bool(quizzes) and len(passed) == len(quizzes)

    if completed:
        log.info("theme completed theme_id=%s user_id=%s quizzes=%d", theme.id, user_id, len(quizzes))

    return ThemeCompletion(
        theme_id=str(theme.id),
        theme_name=theme.title or "",
        completed=completed,
        total_quizzes=len(quizzes),
        passed_quiz_ids=passed,
    )
