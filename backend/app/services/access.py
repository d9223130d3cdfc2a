from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class AccessState:
    is_unlocked: bool
    required_stars: int
    user_stars: int
    stars_needed: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def evaluate_access(required_stars: int, star_balance: int) -> AccessState:
    required = max(0, int(required_stars or 0))
    balance = int(star_balance or 0)
    return AccessState(
        is_unlocked=balance >= required,
        required_stars=required,
        user_stars=balance,
        stars_needed=max(0, required - balance),
    )
