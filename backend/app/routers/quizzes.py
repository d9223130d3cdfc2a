from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.errors import ValidationFailed
from app.core.rate_limit import rate_limit
from app.core.security import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.quiz import (
    AttemptStatusResponse,
    PurchaseAttemptResponse,
    QuizAccessResponse,
    QuizCorrectionResponse,
    QuizSubmitRequest,
    QuizSubmitResponse,
    QuizWithStatus,
    UserAttempt,
)
from app.schemas.revision import RevisionQuizResponse, RevisionSubmitRequest, RevisionSubmitResponse
from app.services.attempts import AttemptService
from app.services.revision import RevisionService

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


def _quiz_uuid(quiz_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(quiz_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="invalid quiz id") from e


def _answers_map(body: QuizSubmitRequest) -> dict[str, list[str]]:
    answers: dict[str, list[str]] = {}
    for a in body.answers:
        if a.question_id in answers:
            raise ValidationFailed("question answered more than once", question_id=a.question_id)
        answers[a.question_id] = list(a.selected_option_ids)
    return answers


@router.get("/with-status", response_model=list[QuizWithStatus])
def quizzes_with_status(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return AttemptService(db).get_quizzes_with_user_status(user.id)


@router.get("/attempts/me", response_model=list[UserAttempt])
def my_attempts(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return AttemptService(db).get_user_attempts(user.id)


@router.get("/revision/random", response_model=RevisionQuizResponse)
def random_revision_quiz(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    _: object = rate_limit(key_prefix="revision_random", limit=30, window_seconds=60),
):
    return RevisionService(db).get_random_revision_quiz()


@router.post("/revision/submit", response_model=RevisionSubmitResponse)
def submit_revision_quiz(
    body: RevisionSubmitRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    _: object = rate_limit(key_prefix="revision_submit", limit=20, window_seconds=60),
):
    return RevisionService(db).submit_revision_quiz(user.id, body.answers)


@router.post("/{quiz_id}/submit", response_model=QuizSubmitResponse)
def submit_quiz(
    quiz_id: str,
    body: QuizSubmitRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    _: object = rate_limit(key_prefix="quiz_submit", limit=20, window_seconds=60),
):
    return AttemptService(db).submit_attempt(user.id, _quiz_uuid(quiz_id), _answers_map(body))


@router.get("/{quiz_id}/attempts", response_model=AttemptStatusResponse)
def attempt_status(quiz_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return AttemptService(db).get_attempt_status(user.id, _quiz_uuid(quiz_id))


@router.post("/{quiz_id}/purchase-attempt", response_model=PurchaseAttemptResponse)
def purchase_attempt(
    quiz_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    _: object = rate_limit(key_prefix="purchase_attempt", limit=10, window_seconds=60),
):
    return AttemptService(db).purchase_extra_attempt(user.id, _quiz_uuid(quiz_id))


@router.get("/{quiz_id}/access", response_model=QuizAccessResponse)
def quiz_access(quiz_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return AttemptService(db).check_quiz_access(user.id, _quiz_uuid(quiz_id)).as_dict()


@router.get("/{quiz_id}/correction", response_model=QuizCorrectionResponse)
def quiz_correction(quiz_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return AttemptService(db).get_quiz_correction(user.id, _quiz_uuid(quiz_id))
