from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable

from app.core.config import settings


@dataclass(frozen=True)
class AttemptLedger:
    """Attempt figures for one (user, quiz) pair, derived from its full history."""

    total_attempts: int
    failed_attempts: int
    passed_attempts: int
    has_passed: bool
    extra_attempts_purchased: int
    total_allowed: int
    remaining_attempts: int
    is_completed: bool
    can_retry: bool
    can_view_correction: bool
    can_purchase_extra_attempt: bool
    best_score: int | None
    extra_attempt_cost: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_ledger(
    scores: Iterable[int],
    extra_attempts_purchased: int,
    passing_score: int,
    *,
    base_attempts: int | None = None,
    unlimited_sentinel: int | None = None,
    correction_min_failed: int | None = None,
    extra_attempt_cost: int | None = None,
) -> AttemptLedger:
    """Project attempt scores and purchase count into an :class:`AttemptLedger`.

    Pure: the same history always yields the same ledger. Only failed attempts
    count against the allowance; once any attempt passes, replays are unlimited.
    """
    base = int(settings.base_attempts if base_attempts is None else base_attempts)
    sentinel = int(settings.unlimited_attempts_sentinel if unlimited_sentinel is None else unlimited_sentinel)
    correction_min = int(
        settings.correction_min_failed_attempts if correction_min_failed is None else correction_min_failed
    )
    cost = int(settings.extra_attempt_cost if extra_attempt_cost is None else extra_attempt_cost)

    all_scores = [int(s) for s in scores]
    failed = sum(1 for s in all_scores if s < passing_score)
    passed = len(all_scores) - failed
    has_passed = passed > 0

    extras = max(0, int(extra_attempts_purchased or 0))
    total_allowed = base + extras
    remaining = sentinel if has_passed else max(0, total_allowed - failed)

    is_completed = has_passed or failed >= total_allowed
    can_retry = has_passed or (not is_completed and remaining > 0)
    can_view_correction = has_passed or failed >= correction_min

    return AttemptLedger(
        total_attempts=len(all_scores),
        failed_attempts=failed,
        passed_attempts=passed,
        has_passed=has_passed,
        extra_attempts_purchased=extras,
        total_allowed=total_allowed,
        remaining_attempts=remaining,
        is_completed=is_completed,
        can_retry=can_retry,
        can_view_correction=can_view_correction,
        can_purchase_extra_attempt=is_completed and not has_passed,
        best_score=max(all_scores) if all_scores else None,
        extra_attempt_cost=cost,
    )
