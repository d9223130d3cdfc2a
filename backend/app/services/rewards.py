from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from app.models.quiz import Difficulty


PARTICIPATION_STARS = 1
BASE_PASS_STARS = 5
BONUS_STEP_POINTS = 10

DIFFICULTY_MULTIPLIERS: dict[Difficulty, Decimal] = {
    Difficulty.EASY: Decimal("1"),
    Difficulty.MEDIUM: Decimal("1.5"),
    Difficulty.HARD: Decimal("2"),
}


def _multiplier(difficulty: Difficulty | str) -> Decimal:
    return DIFFICULTY_MULTIPLIERS[Difficulty(difficulty)]


def calculate_stars(score: int, passing_score: int, difficulty: Difficulty | str, *, replay: bool) -> int:
    """Stars earned by one graded attempt.

    Replays earn nothing, a failed attempt earns the participation star, and a
    pass earns 5 plus one star per full 10 points above the threshold, scaled
    by difficulty and rounded half up.
    """
    if replay:
        return 0

    if int(score) < int(passing_score):
        return PARTICIPATION_STARS

    bonus = (int(score) - int(passing_score)) // BONUS_STEP_POINTS
    stars = Decimal(BASE_PASS_STARS + bonus) * _multiplier(difficulty)
    return int(stars.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
