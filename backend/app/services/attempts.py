from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import EngineError, Forbidden, InsufficientFunds, InvalidState, NotFound, StorageUnavailable
from app.core.locks import attempt_lock_key, keyed_lock
from app.models.attempt import ExtraAttemptPurchase, QuizAttempt
from app.models.quiz import Question, Quiz
from app.models.theme import Theme
from app.models.user import User
from app.services.access import AccessState, evaluate_access
from app.services.attempt_ledger import AttemptLedger, build_ledger
from app.services.grading import grade, normalize_answers
from app.services.quiz_content import answer_key, load_questions
from app.services.rewards import calculate_stars
from app.services.themes import get_theme_completion

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionDecision:
    replay: bool


@dataclass(frozen=True)
class PurchaseDecision:
    cost: int


def evaluate_submission(*, access: AccessState, ledger: AttemptLedger) -> SubmissionDecision:
    """Eligibility of a new attempt, given the star gate and the current ledger."""
    if access.required_stars > 0 and not access.is_unlocked:
        raise Forbidden(
            f"this quiz requires {access.required_stars} stars, you have {access.user_stars}",
            required_stars=access.required_stars,
            user_stars=access.user_stars,
            stars_needed=access.stars_needed,
        )

    if not (ledger.has_passed or ledger.can_retry):
        raise InvalidState(
            "no attempts left for this quiz; buy an extra attempt or view the correction",
            remaining_attempts=ledger.remaining_attempts,
            failed_attempts=ledger.failed_attempts,
            total_allowed=ledger.total_allowed,
            extra_attempt_cost=ledger.extra_attempt_cost,
            can_purchase_extra_attempt=ledger.can_purchase_extra_attempt,
            can_view_correction=ledger.can_view_correction,
        )

    return SubmissionDecision(replay=ledger.has_passed)


def evaluate_purchase(*, ledger: AttemptLedger, star_balance: int, cost: int) -> PurchaseDecision:
    """Eligibility of an extra-attempt purchase."""
    if ledger.has_passed:
        raise InvalidState("quiz already passed, no extra attempt needed", has_passed=True)

    if not ledger.can_purchase_extra_attempt:
        raise InvalidState(
            f"{ledger.remaining_attempts} attempt(s) still available, use them first",
            remaining_attempts=ledger.remaining_attempts,
            failed_attempts=ledger.failed_attempts,
            total_allowed=ledger.total_allowed,
        )

    if int(star_balance) < int(cost):
        raise InsufficientFunds(
            f"not enough stars: cost {cost}, you have {star_balance}",
            cost=int(cost),
            user_stars=int(star_balance),
            stars_needed=int(cost) - int(star_balance),
        )

    return PurchaseDecision(cost=int(cost))


def _attempt_row(a: QuizAttempt) -> dict[str, Any]:
    return {
        "id": str(a.id),
        "score": int(a.score),
        "stars_earned": int(a.stars_earned or 0),
        "completed_at": a.completed_at.isoformat() if a.completed_at else None,
    }


class AttemptService:
    def __init__(self, db: Session):
        self.db = db

    # -- loading -----------------------------------------------------------

    def _get_quiz(self, quiz_id: uuid.UUID, *, active_only: bool = False) -> Quiz:
        quiz = self.db.scalar(select(Quiz).where(Quiz.id == quiz_id))
        if quiz is None or (active_only and not quiz.is_active):
            raise NotFound("quiz not found", quiz_id=str(quiz_id))
        return quiz

    def _get_user(self, user_id: uuid.UUID, *, for_update: bool = False) -> User:
        stmt = select(User).where(User.id == user_id).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        user = self.db.scalar(stmt)
        if user is None:
            raise NotFound("user not found", user_id=str(user_id))
        return user

    def _history(self, user_id: uuid.UUID, quiz_id: uuid.UUID) -> tuple[list[QuizAttempt], int]:
        attempts = list(
            self.db.scalars(
                select(QuizAttempt)
                .where(QuizAttempt.user_id == user_id, QuizAttempt.quiz_id == quiz_id)
                .order_by(QuizAttempt.completed_at.desc(), QuizAttempt.id)
            )
        )
        extras = self.db.scalar(
            select(func.count(ExtraAttemptPurchase.id)).where(
                ExtraAttemptPurchase.user_id == user_id,
                ExtraAttemptPurchase.quiz_id == quiz_id,
            )
        )
        return attempts, int(extras or 0)

    def _ledger(self, user_id: uuid.UUID, quiz: Quiz) -> tuple[AttemptLedger, list[QuizAttempt]]:
        attempts, extras = self._history(user_id, quiz.id)
        return build_ledger([a.score for a in attempts], extras, quiz.passing_score), attempts

    def _storage_failure(self, e: SQLAlchemyError) -> StorageUnavailable:
        self.db.rollback()
        log.warning("transaction rolled back: %s", e.__class__.__name__)
        return StorageUnavailable("could not record the operation, please retry")

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._storage_failure(e) from e

    # -- read side ---------------------------------------------------------

    def get_attempt_status(self, user_id: uuid.UUID, quiz_id: uuid.UUID) -> dict[str, Any]:
        quiz = self._get_quiz(quiz_id)
        ledger, attempts = self._ledger(user_id, quiz)
        return {
            "quiz_id": str(quiz.id),
            "passing_score": int(quiz.passing_score),
            **ledger.as_dict(),
            "attempts": [_attempt_row(a) for a in attempts],
        }

    def check_quiz_access(self, user_id: uuid.UUID, quiz_id: uuid.UUID) -> AccessState:
        quiz = self._get_quiz(quiz_id)
        user = self._get_user(user_id)
        return evaluate_access(quiz.required_stars, user.star_balance)

    def get_quizzes_with_user_status(self, user_id: uuid.UUID) -> list[dict[str, Any]]:
        user = self._get_user(user_id)

        rows = self.db.execute(
            select(Quiz, Theme)
            .join(Theme, Theme.id == Quiz.theme_id)
            .where(Quiz.is_active == True)  # noqa: E712
            .order_by(Theme.position, Quiz.display_order, Quiz.created_at)
        ).all()
        if not rows:
            return []

        quiz_ids = [q.id for q, _ in rows]

        scores_by_quiz: dict[uuid.UUID, list[int]] = {}
        for qid, score in self.db.execute(
            select(QuizAttempt.quiz_id, QuizAttempt.score).where(
                QuizAttempt.user_id == user.id, QuizAttempt.quiz_id.in_(quiz_ids)
            )
        ).all():
            scores_by_quiz.setdefault(qid, []).append(int(score))

        extras_by_quiz = dict(
            self.db.execute(
                select(ExtraAttemptPurchase.quiz_id, func.count(ExtraAttemptPurchase.id))
                .where(ExtraAttemptPurchase.user_id == user.id, ExtraAttemptPurchase.quiz_id.in_(quiz_ids))
                .group_by(ExtraAttemptPurchase.quiz_id)
            ).all()
        )

        question_counts = dict(
            self.db.execute(
                select(Question.quiz_id, func.count(Question.id))
                .where(Question.quiz_id.in_(quiz_ids))
                .group_by(Question.quiz_id)
            ).all()
        )

        out = []
        for quiz, theme in rows:
            ledger = build_ledger(
                scores_by_quiz.get(quiz.id, []),
                int(extras_by_quiz.get(quiz.id, 0) or 0),
                quiz.passing_score,
            )
            access = evaluate_access(quiz.required_stars, user.star_balance)
            out.append(
                {
                    "id": str(quiz.id),
                    "title": quiz.title,
                    "description": quiz.description,
                    "difficulty": quiz.difficulty.value,
                    "passing_score": int(quiz.passing_score),
                    "time_limit_minutes": quiz.time_limit_minutes,
                    "required_stars": int(quiz.required_stars or 0),
                    "is_free": bool(quiz.is_free),
                    "question_count": int(question_counts.get(quiz.id, 0) or 0),
                    "theme": {"id": str(theme.id), "title": theme.title},
                    "user_status": {**ledger.as_dict(), **access.as_dict()},
                }
            )
        return out

    def get_user_attempts(self, user_id: uuid.UUID) -> list[dict[str, Any]]:
        rows = self.db.execute(
            select(QuizAttempt, Quiz, Theme.title)
            .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
            .outerjoin(Theme, Theme.id == Quiz.theme_id)
            .where(QuizAttempt.user_id == user_id)
            .order_by(QuizAttempt.completed_at.desc(), QuizAttempt.id)
        ).all()
        return [
            {
                **_attempt_row(a),
                "quiz": {
                    "id": str(q.id),
                    "title": q.title,
                    "passing_score": int(q.passing_score),
                    "difficulty": q.difficulty.value,
                    "theme_title": theme_title,
                },
                "passed": int(a.score) >= int(q.passing_score),
            }
            for a, q, theme_title in rows
        ]

    def get_quiz_correction(self, user_id: uuid.UUID, quiz_id: uuid.UUID) -> dict[str, Any]:
        quiz = self._get_quiz(quiz_id)
        ledger, _ = self._ledger(user_id, quiz)
        if not ledger.can_view_correction:
            raise Forbidden(
                "the correction opens after passing or after using the base attempts",
                failed_attempts=ledger.failed_attempts,
                required_failed_attempts=int(settings.correction_min_failed_attempts),
                has_passed=ledger.has_passed,
            )

        theme = self.db.scalar(select(Theme).where(Theme.id == quiz.theme_id))
        questions = load_questions(self.db, quiz_id=quiz.id)
        return {
            "id": str(quiz.id),
            "title": quiz.title,
            "passing_score": int(quiz.passing_score),
            "difficulty": quiz.difficulty.value,
            "theme": {"id": str(theme.id), "title": theme.title} if theme else None,
            "questions": [lq.correction() for lq in questions],
        }

    # -- workflows ---------------------------------------------------------

    def _commit_attempt(self, *, user_id: uuid.UUID, quiz_id: uuid.UUID, score: int, stars: int) -> QuizAttempt:
        attempt = QuizAttempt(quiz_id=quiz_id, user_id=user_id, score=int(score), stars_earned=int(stars))
        self.db.add(attempt)
        if stars:
            self.db.execute(
                update(User).where(User.id == user_id).values(star_balance=User.star_balance + int(stars))
            )
        self._commit()
        return attempt

    def _commit_purchase(self, *, user_id: uuid.UUID, quiz_id: uuid.UUID, cost: int) -> ExtraAttemptPurchase:
        debited = self.db.execute(
            update(User)
            .where(User.id == user_id, User.star_balance >= int(cost))
            .values(star_balance=User.star_balance - int(cost))
        )
        if debited.rowcount != 1:
            self.db.rollback()
            balance = self.db.scalar(select(User.star_balance).where(User.id == user_id))
            raise InsufficientFunds(
                f"not enough stars: cost {cost}, you have {balance}",
                cost=int(cost),
                user_stars=int(balance or 0),
            )

        purchase = ExtraAttemptPurchase(quiz_id=quiz_id, user_id=user_id, stars_cost=int(cost))
        self.db.add(purchase)
        self._commit()
        return purchase

    def submit_attempt(
        self,
        user_id: uuid.UUID,
        quiz_id: uuid.UUID,
        answers: Mapping[Any, Any] | None,
    ) -> dict[str, Any]:
        quiz = self._get_quiz(quiz_id, active_only=True)
        selected = normalize_answers(answers)

        with keyed_lock(attempt_lock_key(user_id, quiz.id), timeout=settings.submit_lock_timeout_seconds):
            try:
                user = self._get_user(user_id, for_update=True)
                ledger, _ = self._ledger(user.id, quiz)
                decision = evaluate_submission(
                    access=evaluate_access(quiz.required_stars, user.star_balance),
                    ledger=ledger,
                )

                questions = load_questions(self.db, quiz_id=quiz.id)
                if not questions:
                    raise InvalidState("quiz has no questions", quiz_id=str(quiz.id))

                result = grade(answer_key(questions), selected)
                stars = calculate_stars(result.score, quiz.passing_score, quiz.difficulty, replay=decision.replay)
                attempt = self._commit_attempt(user_id=user.id, quiz_id=quiz.id, score=result.score, stars=stars)
            except EngineError as e:
                self.db.rollback()
                if not isinstance(e, StorageUnavailable):
                    log.info("attempt rejected user_id=%s quiz_id=%s reason=%s", user_id, quiz_id, e.error_code)
                raise
            except SQLAlchemyError as e:
                raise self._storage_failure(e) from e

        passed = result.score >= int(quiz.passing_score)
        total_stars = self.db.scalar(select(User.star_balance).where(User.id == user_id))
        new_ledger, _ = self._ledger(user_id, quiz)

        log.info(
            "attempt recorded user_id=%s quiz_id=%s score=%d passed=%s stars=%d replay=%s",
            user_id,
            quiz.id,
            result.score,
            passed,
            stars,
            decision.replay,
        )

        theme_completed = False
        theme_name = None
        if passed and not decision.replay and quiz.theme_id is not None:
            completion = get_theme_completion(self.db, theme_id=quiz.theme_id, user_id=user_id)
            theme_completed = completion.completed
            theme_name = completion.theme_name

        return {
            "attempt_id": str(attempt.id),
            "quiz_id": str(quiz.id),
            "score": result.score,
            "passed": passed,
            "passing_score": int(quiz.passing_score),
            "correct_count": result.correct_count,
            "total_questions": result.total_questions,
            "stars_earned": stars,
            "total_stars": int(total_stars or 0),
            "remaining_attempts": new_ledger.remaining_attempts,
            "can_view_correction": new_ledger.can_view_correction,
            "has_passed": new_ledger.has_passed,
            "theme_completed": theme_completed,
            "theme_name": theme_name,
        }

    def purchase_extra_attempt(self, user_id: uuid.UUID, quiz_id: uuid.UUID) -> dict[str, Any]:
        quiz = self._get_quiz(quiz_id, active_only=True)
        cost = int(settings.extra_attempt_cost)

        with keyed_lock(attempt_lock_key(user_id, quiz.id), timeout=settings.submit_lock_timeout_seconds):
            try:
                user = self._get_user(user_id, for_update=True)
                ledger, _ = self._ledger(user.id, quiz)
                decision = evaluate_purchase(ledger=ledger, star_balance=user.star_balance, cost=cost)
                self._commit_purchase(user_id=user.id, quiz_id=quiz.id, cost=decision.cost)
            except EngineError as e:
                self.db.rollback()
                if not isinstance(e, StorageUnavailable):
                    log.info("purchase rejected user_id=%s quiz_id=%s reason=%s", user_id, quiz_id, e.error_code)
                raise
            except SQLAlchemyError as e:
                raise self._storage_failure(e) from e

        remaining_stars = self.db.scalar(select(User.star_balance).where(User.id == user_id))
        new_ledger, _ = self._ledger(user_id, quiz)

        log.info("extra attempt purchased user_id=%s quiz_id=%s cost=%d", user_id, quiz.id, cost)

        return {
            "success": True,
            "message": f"extra attempt purchased for {cost} stars",
            "stars_cost": cost,
            "remaining_stars": int(remaining_stars or 0),
            "remaining_attempts": new_ledger.remaining_attempts,
            "total_extra_attempts_purchased": new_ledger.extra_attempts_purchased,
        }
