from app.models.user import User
from app.models.theme import Theme
from app.models.quiz import Difficulty, Option, Question, QuestionType, Quiz
from app.models.attempt import ExtraAttemptPurchase, QuizAttempt

__all__ = [
    "User",
    "Theme",
    "Quiz",
    "Question",
    "QuestionType",
    "Option",
    "Difficulty",
    "QuizAttempt",
    "ExtraAttemptPurchase",
]
