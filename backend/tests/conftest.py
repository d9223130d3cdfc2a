import sys
from dataclasses import dataclass, field
from pathlib import Path
import uuid
import time

import pytest
from fastapi.testclient import TestClient

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.db.base import Base
from app.db import session as session_module
from app.main import create_app

# Import models so that they are registered in Base.metadata before create_all.
from app.models.user import User
from app.models.theme import Theme
from app.models.quiz import Difficulty, Option, Question, QuestionType, Quiz
from app.models.attempt import ExtraAttemptPurchase, QuizAttempt


class _MemoryRedis:
    def __init__(self):
        self._data: dict[str, tuple[str, float | None]] = {}

    def ping(self):
        return True

    def _now(self) -> float:
        return time.time()

    def _get_entry(self, key: str):
        v = self._data.get(key)
        if not v:
            return None
        value, exp = v
        if exp is not None and exp <= self._now():
            self._data.pop(key, None)
            return None
        return value, exp

    def get(self, key: str):
        entry = self._get_entry(key)
        return entry[0] if entry else None

    def incr(self, key: str):
        cur = self.get(key)
        n = int(cur or 0) + 1
        _, exp = self._data.get(key, ("", None))
        self._data[key] = (str(n), exp)
        return n

    def expire(self, key: str, seconds: int):
        entry = self._get_entry(key)
        if not entry:
            return False
        value, _ = entry
        self._data[key] = (value, self._now() + int(seconds))
        return True

    def ttl(self, key: str):
        entry = self._get_entry(key)
        if not entry:
            return -2
        _, exp = entry
        if exp is None:
            return -1
        return max(0, int(exp - self._now()))


# Configure test DB (SQLite in-memory) at import time so all tests importing
# app.db.session.SessionLocal will get the patched version.
_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
Base.metadata.create_all(bind=_engine)
session_module.engine = _engine
session_module.SessionLocal = session_module.sessionmaker(autocommit=False, autoflush=False, bind=_engine)


# Stub Redis at import time (rate limiting + readiness).
_mem_redis = _MemoryRedis()
import app.core.redis_client as redis_client_module

redis_client_module.get_redis = lambda: _mem_redis

import app.core.rate_limit as rate_limit_module
rate_limit_module.get_redis = lambda: _mem_redis

import app.routers.health as health_router_module
health_router_module.get_redis = lambda: _mem_redis


@dataclass
class SeededQuiz:
    quiz: Quiz
    correct: dict[str, list[str]] = field(default_factory=dict)
    wrong: dict[str, list[str]] = field(default_factory=dict)

    @property
    def id(self) -> uuid.UUID:
        return self.quiz.id

    def answers(self, n_correct: int) -> dict[str, list[str]]:
        """First ``n_correct`` questions answered right, the rest wrong."""
        out = {}
        for i, qid in enumerate(self.correct):
            out[qid] = list(self.correct[qid] if i < n_correct else self.wrong[qid])
        return out

    def all_correct(self) -> dict[str, list[str]]:
        return self.answers(len(self.correct))

    def all_wrong(self) -> dict[str, list[str]]:
        return self.answers(0)


class Factory:
    def __init__(self, db):
        self.db = db

    def user(self, *, stars: int = 0, name: str | None = None) -> User:
        u = User(name=name or f"user_{uuid.uuid4().hex[:8]}", star_balance=int(stars))
        self.db.add(u)
        self.db.commit()
        return u

    def theme(self, *, title: str | None = None, position: int = 0) -> Theme:
        t = Theme(title=title or f"Theme {uuid.uuid4().hex[:6]}", position=position)
        self.db.add(t)
        self.db.commit()
        return t

    def quiz(
        self,
        theme: Theme | None = None,
        *,
        questions: int = 1,
        passing_score: int = 70,
        difficulty: Difficulty = Difficulty.EASY,
        required_stars: int = 0,
        is_active: bool = True,
        multi: bool = False,
        display_order: int = 0,
        title: str | None = None,
    ) -> SeededQuiz:
        theme = theme or self.theme()
        q = Quiz(
            theme_id=theme.id,
            title=title or f"Quiz {uuid.uuid4().hex[:6]}",
            passing_score=passing_score,
            difficulty=difficulty,
            required_stars=required_stars,
            is_active=is_active,
            display_order=display_order,
            time_limit_minutes=10,
        )
        self.db.add(q)
        self.db.flush()

        seeded = SeededQuiz(quiz=q)
        for i in range(questions):
            question = Question(
                quiz_id=q.id,
                type=QuestionType.MULTI_CHOICE if multi else QuestionType.SINGLE_CHOICE,
                content=f"Question {i + 1}",
                order=i,
            )
            self.db.add(question)
            self.db.flush()

            right = [Option(question_id=question.id, content="right", is_correct=True, explanation="because")]
            if multi:
                right.append(Option(question_id=question.id, content="also right", is_correct=True))
            bad = Option(question_id=question.id, content="wrong", is_correct=False)
            self.db.add_all([*right, bad])
            self.db.flush()

            seeded.correct[str(question.id)] = [str(o.id) for o in right]
            seeded.wrong[str(question.id)] = [str(bad.id)]

        self.db.commit()
        return seeded

    def attempt(self, user: User, quiz: SeededQuiz, *, score: int, stars: int = 0) -> QuizAttempt:
        a = QuizAttempt(user_id=user.id, quiz_id=quiz.id, score=score, stars_earned=stars)
        self.db.add(a)
        self.db.commit()
        return a

    def purchase(self, user: User, quiz: SeededQuiz, *, cost: int = 10) -> ExtraAttemptPurchase:
        p = ExtraAttemptPurchase(user_id=user.id, quiz_id=quiz.id, stars_cost=cost)
        self.db.add(p)
        self.db.commit()
        return p

    def balance(self, user: User) -> int:
        self.db.expire_all()
        return int(self.db.get(User, user.id).star_balance)


@pytest.fixture(scope="session")
def client():
    app = create_app()

    # Ensure app dependencies use our session factory.
    def _get_db_override():
        db = session_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[session_module.get_db] = _get_db_override
    return TestClient(app)


@pytest.fixture()
def db():
    with session_module.SessionLocal() as session:
        yield session


@pytest.fixture()
def factory(db):
    return Factory(db)


def make_token(user_id) -> str:
    return jwt.encode(
        {"sub": str(user_id), "iss": settings.jwt_issuer},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture()
def headers_for():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user.id)}"}

    return _headers
