from __future__ import annotations

from pydantic import BaseModel, Field


class QuizSubmitAnswer(BaseModel):
    question_id: str
    selected_option_ids: list[str] = Field(default_factory=list)


class QuizSubmitRequest(BaseModel):
    answers: list[QuizSubmitAnswer]


class QuizSubmitResponse(BaseModel):
    attempt_id: str
    quiz_id: str
    score: int
    passed: bool
    passing_score: int
    correct_count: int
    total_questions: int
    stars_earned: int
    total_stars: int
    remaining_attempts: int
    can_view_correction: bool
    has_passed: bool
    theme_completed: bool
    theme_name: str | None = None


class AttemptRecord(BaseModel):
    id: str
    score: int
    stars_earned: int
    completed_at: str | None


class AttemptLedgerFields(BaseModel):
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


class AttemptStatusResponse(AttemptLedgerFields):
    quiz_id: str
    passing_score: int
    attempts: list[AttemptRecord]


class PurchaseAttemptResponse(BaseModel):
    success: bool
    message: str
    stars_cost: int
    remaining_stars: int
    remaining_attempts: int
    total_extra_attempts_purchased: int


class QuizAccessResponse(BaseModel):
    is_unlocked: bool
    required_stars: int
    user_stars: int
    stars_needed: int


class ThemeRef(BaseModel):
    id: str
    title: str


class QuizUserStatus(AttemptLedgerFields, QuizAccessResponse):
    pass


class QuizWithStatus(BaseModel):
    id: str
    title: str
    description: str | None
    difficulty: str
    passing_score: int
    time_limit_minutes: int | None
    required_stars: int
    is_free: bool
    question_count: int
    theme: ThemeRef
    user_status: QuizUserStatus


class AttemptQuizRef(BaseModel):
    id: str
    title: str
    passing_score: int
    difficulty: str
    theme_title: str | None


class UserAttempt(AttemptRecord):
    passed: bool
    quiz: AttemptQuizRef


class OptionCorrection(BaseModel):
    id: str
    content: str
    is_correct: bool
    explanation: str | None
    was_selected: bool = False


class QuestionCorrection(BaseModel):
    id: str
    content: str
    type: str
    quiz_title: str | None = None
    theme_title: str | None = None
    options: list[OptionCorrection]


class QuizCorrectionResponse(BaseModel):
    id: str
    title: str
    passing_score: int
    difficulty: str
    theme: ThemeRef | None
    questions: list[QuestionCorrection]
