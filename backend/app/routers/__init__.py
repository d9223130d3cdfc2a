from app.routers import health, quizzes, themes

__all__ = [
    "health",
    "quizzes",
    "themes",
]
