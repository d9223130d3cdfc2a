from __future__ import annotations

from pydantic import BaseModel


class ThemeCompletionResponse(BaseModel):
    theme_id: str
    theme_name: str
    completed: bool
    total_quizzes: int
    passed_quiz_ids: list[str]
