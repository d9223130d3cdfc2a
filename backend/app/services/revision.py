from __future__ import annotations

import logging
import random
import time
import uuid
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidState, NotFound
from app.models.quiz import Difficulty, Question
from app.services.grading import grade, normalize_answers
from app.services.quiz_content import answer_key, load_questions

log = logging.getLogger(__name__)


class RevisionService:
    """Random practice quizzes drawn from every question on the platform.

    Nothing here is persisted: no attempt rows, no stars, no ledger effects.
    """

    def __init__(self, db: Session, rng: random.Random | None = None):
        self.db = db
        self.rng = rng or random.Random()

    def get_random_revision_quiz(self) -> dict[str, Any]:
        wanted = int(settings.revision_question_count)
        pool = list(self.db.scalars(select(Question.id).order_by(Question.id)))
        if len(pool) < wanted:
            raise InvalidState(
                "not enough questions to build a revision quiz",
                available=len(pool),
                required=wanted,
            )

        self.rng.shuffle(pool)
        picked = pool[:wanted]

        loaded = {lq.question.id: lq for lq in load_questions(self.db, question_ids=picked)}
        questions = [loaded[qid] for qid in picked if qid in loaded]

        return {
            "id": f"revision-{int(time.time() * 1000)}",
            "title": "Revision quiz",
            "description": f"Random revision quiz - {wanted} mixed questions",
            "difficulty": Difficulty.MEDIUM.value,
            "time_limit_minutes": int(settings.revision_time_limit_minutes),
            "passing_score": int(settings.revision_passing_score),
            "is_revision_quiz": True,
            "questions": [lq.public() for lq in questions],
        }

    def submit_revision_quiz(self, user_id: uuid.UUID, answers: Mapping[Any, Any] | None) -> dict[str, Any]:
        selected = normalize_answers(answers)

        question_ids: list[uuid.UUID] = []
        for qid in selected:
            try:
                question_ids.append(uuid.UUID(qid))
            except ValueError:
                continue

        questions = load_questions(self.db, question_ids=question_ids)
        if not questions:
            raise NotFound("questions not found", submitted=len(selected))

        result = grade(answer_key(questions), selected)
        passing = int(settings.revision_passing_score)

        results = []
        for lq in questions:
            chosen = sorted(selected.get(lq.id, frozenset()))
            item = lq.correction(chosen)
            item["user_answers"] = chosen
            item["is_correct"] = result.per_question[lq.id]
            results.append(item)

        log.info(
            "revision graded user_id=%s questions=%d score=%d", user_id, result.total_questions, result.score
        )

        return {
            "score": result.score,
            "correct_count": result.correct_count,
            "total_questions": result.total_questions,
            "passed": result.score >= passing,
            "results": results,
        }
