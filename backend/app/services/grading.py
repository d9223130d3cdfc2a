from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from app.core.errors import ValidationFailed


@dataclass(frozen=True)
class GradeResult:
    score: int
    correct_count: int
    total_questions: int
    per_question: dict[str, bool] = field(default_factory=dict)


def _as_id(value: Any) -> str:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, str):
        value = value.strip()
        try:
            return str(uuid.UUID(value))
        except ValueError:
            return value
    raise ValidationFailed("option and question ids must be strings", got=type(value).__name__)


def normalize_answers(raw: Mapping[Any, Any] | None) -> dict[str, frozenset[str]]:
    """Turn a question_id -> option ids payload into comparable sets.

    A bare string is rejected instead of being read as a sequence of characters.
    """
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValidationFailed("answers must map question ids to option ids")

    out: dict[str, frozenset[str]] = {}
    for qid, selected in raw.items():
        if selected is None:
            selected = ()
        if isinstance(selected, (str, bytes)) or not isinstance(selected, Iterable):
            raise ValidationFailed("selected options must be a list of ids", question_id=str(qid))
        out[_as_id(qid)] = frozenset(_as_id(o) for o in selected)
    return out


def percent(correct: int, total: int) -> int:
    # round(100 * correct / total), halves rounded up, in integer arithmetic.
    return (200 * int(correct) + int(total)) // (2 * int(total))


def grade(answer_key: Mapping[str, Iterable[str]], answers: Mapping[str, frozenset[str]]) -> GradeResult:
    """Score a submission against ``answer_key`` (question id -> correct option ids).

    A question counts only when the chosen set equals the correct set exactly.
    Unknown question ids in ``answers`` are ignored; missing ones are wrong.
    """
    total = len(answer_key)
    if total <= 0:
        raise ValueError("cannot grade a quiz without questions")

    per_question: dict[str, bool] = {}
    correct = 0
    for qid, correct_ids in answer_key.items():
        key = str(qid)
        expected = frozenset(str(o) for o in correct_ids)
        ok = key in answers and answers[key] == expected
        per_question[key] = ok
        if ok:
            correct += 1

    return GradeResult(
        score=percent(correct, total),
        correct_count=correct,
        total_questions=total,
        per_question=per_question,
    )
