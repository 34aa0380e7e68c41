"""
Pytest configuration and fixtures for Voice Quiz API tests.
"""
import sys
import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings are read at import time
os.environ.setdefault("AUTH_SECRET", "test-secret")
os.environ.setdefault("ENV", "development")
os.environ.setdefault("RATE_LIMIT_MAX_REQUESTS", "1000")

from sqlalchemy.exc import OperationalError

from models.quiz import Quiz, Question
from models.score import ScoreRecord
from core.security import issue_token

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


class InMemoryQuizService:
    """Stands in for QuizService with plain in-memory storage."""

    def __init__(self):
        self.quizzes = {}
        self.questions = {}
        self.scores = []
        self.fail_on_save = False
        self.lookups = 0

    def add_quiz(self, **kwargs) -> Quiz:
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("title", "Sample quiz")
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("created_at", datetime.now(timezone.utc))
        quiz = Quiz(**kwargs)
        self.quizzes[quiz.id] = quiz
        return quiz

    def add_question(self, quiz: Quiz, correct_answer: int, points: int = 1, options=None, **kwargs) -> Question:
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("question_text", "Which option is right?")
        kwargs.setdefault("explanation", None)
        kwargs.setdefault("position", len([q for q in self.questions.values() if q.quiz_id == quiz.id]))
        question = Question(
            quiz_id=quiz.id,
            options=options if options is not None else ["A", "B", "C", "D"],
            correct_answer=correct_answer,
            points=points,
            **kwargs,
        )
        self.questions[question.id] = question
        return question

    async def list_active_quizzes(self):
        active = [q for q in self.quizzes.values() if q.is_active]
        active.sort(key=lambda q: q.created_at, reverse=True)
        return [(q, len([x for x in self.questions.values() if x.quiz_id == q.id])) for q in active]

    async def get_active_quiz(self, quiz_id):
        quiz = self.quizzes.get(quiz_id)
        if quiz is None or not quiz.is_active:
            return None
        return quiz

    async def get_quiz_questions(self, quiz_id):
        questions = [q for q in self.questions.values() if q.quiz_id == quiz_id]
        return sorted(questions, key=lambda q: q.position)

    async def get_question(self, quiz_id, question_id):
        self.lookups += 1
        question = self.questions.get(question_id)
        if question is None or question.quiz_id != quiz_id:
            return None
        return question

    async def get_questions_by_ids(self, quiz_id, question_ids):
        self.lookups += 1
        ids = set(question_ids)
        return {
            q.id: q for q in self.questions.values()
            if q.id in ids and q.quiz_id == quiz_id
        }

    async def save_score(self, user_id, quiz_id, score, total_questions, time_taken_seconds, answers):
        if self.fail_on_save:
            raise OperationalError("INSERT INTO user_scores", {}, Exception("connection lost"))
        record = ScoreRecord(
            id=uuid.uuid4(),
            user_id=user_id,
            quiz_id=quiz_id,
            score=score,
            total_questions=total_questions,
            time_taken_seconds=time_taken_seconds,
            answers=answers,
            completed_at=datetime.now(timezone.utc) + timedelta(microseconds=len(self.scores)),
        )
        record.quiz = self.quizzes.get(quiz_id)
        self.scores.append(record)
        return record

    async def get_user_scores(self, user_id, limit=10):
        mine = [s for s in self.scores if s.user_id == user_id]
        mine.sort(key=lambda s: s.completed_at, reverse=True)
        return mine[:limit]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def store():
    return InMemoryQuizService()


@pytest.fixture
def three_question_quiz(store):
    """Quiz with three questions worth 1, 1 and 2 points."""
    quiz = store.add_quiz(title="Solar system", difficulty="easy", time_limit_seconds=300)
    q1 = store.add_question(quiz, correct_answer=1, points=1, explanation="Mars is the red planet.")
    q2 = store.add_question(quiz, correct_answer=0, points=1, explanation="Jupiter is the largest.")
    q3 = store.add_question(quiz, correct_answer=2, points=2, options=["1", "2", "8"], explanation="There are 8 planets.")
    return quiz, [q1, q2, q3]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def auth_headers(user_id):
    return {"Authorization": f"Bearer {issue_token(user_id)}"}


@pytest.fixture
def client(store):
    from fastapi.testclient import TestClient
    from api.main import app, get_quiz_service

    app.dependency_overrides[get_quiz_service] = lambda: store
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
