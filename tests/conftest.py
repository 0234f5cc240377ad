from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.core.db import get_session
from app.core.llm import LLMResult, get_provider
from app.core.settings import settings
from app.main import app
from app.models.db_models import Assessment, Question, User, ROLE_ADMIN, ROLE_CANDIDATE

ADMIN_ID = "admin-1"
CANDIDATE_ID = "cand-1"
OTHER_ID = "cand-2"


class FakeProvider:
    """In-memory LLMProvider; tests set the *_result attributes they care about."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.text_result = LLMResult(
            data={
                "score": 80,
                "feedback": "Solid answer",
                "strengths": ["clear"],
                "improvements": ["add an example"],
                "relevance": 8,
                "clarity": 7,
                "depth": 6,
            },
            model_name="fake",
        )
        self.voice_result = LLMResult(
            data={"score": 60, "feedback": "Good delivery", "communication": 6,
                  "confidence": 7, "clarity": 6, "content": 5},
            model_name="fake",
        )
        self.feedback_result = LLMResult(data={"text": "Well done overall."}, model_name="fake")
        self.transcribe_result = LLMResult(data={"text": "hello world"}, model_name="fake-whisper")
        self.mcq_generation = LLMResult(data={"questions": [
            {"question": "2 + 2?", "options": ["3", "4", "5", "6"], "correctAnswer": "B", "explanation": "math"},
            {"question": "Capital of France?", "options": ["Paris", "Rome", "Oslo", "Bern"], "correctAnswer": "A"},
        ]})
        self.text_generation = LLMResult(data={"questions": ["Explain recursion."]})
        self.voice_generation = LLMResult(data={"questions": ["Describe a project you led."]})

    def evaluate_text(self, question: str, answer: str, rubric: Optional[str] = None) -> LLMResult:
        self.calls.append(("evaluate_text", question, answer, rubric))
        return self.text_result

    def evaluate_voice(self, question: str, transcription: str, rubric: Optional[str] = None) -> LLMResult:
        self.calls.append(("evaluate_voice", question, transcription, rubric))
        return self.voice_result

    def generate_mcq_questions(self, topic: str, difficulty: str, count: int) -> LLMResult:
        self.calls.append(("generate_mcq_questions", topic, difficulty, count))
        return self.mcq_generation

    def generate_text_questions(self, topic: str, difficulty: str, count: int) -> LLMResult:
        self.calls.append(("generate_text_questions", topic, difficulty, count))
        return self.text_generation

    def generate_voice_questions(self, topic: str, difficulty: str, count: int) -> LLMResult:
        self.calls.append(("generate_voice_questions", topic, difficulty, count))
        return self.voice_generation

    def final_feedback(self, mcq_score: float, text_score: float, voice_score: float, title: str) -> LLMResult:
        self.calls.append(("final_feedback", mcq_score, text_score, voice_score, title))
        return self.feedback_result

    def transcribe(self, audio: bytes, filename: str) -> LLMResult:
        self.calls.append(("transcribe", len(audio), filename))
        return self.transcribe_result

    def called(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    yield eng
    SQLModel.metadata.drop_all(eng)


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        session.add(User(id=ADMIN_ID, role=ROLE_ADMIN))
        session.add(User(id=CANDIDATE_ID, role=ROLE_CANDIDATE))
        session.add(User(id=OTHER_ID, role=ROLE_CANDIDATE))
        session.commit()
        yield session


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(engine, db, provider):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_provider] = lambda: provider
    # no `with`: skip the lifespan so init_db never touches the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user_id: str) -> Dict[str, str]:
    return {"x-api-key": settings.API_KEY, "x-user-id": user_id}


@pytest.fixture
def make_assessment(db):
    """
    make_assessment([("mcq", 1), ("text", 5)]) -> (assessment, [questions])
    mcq questions get options A-D with "A" correct.
    """
    def _make(spec: List[tuple], title: str = "Python", has_voice: bool = True, duration: int = 30):
        a = Assessment(title=title, category="Programming", difficulty="beginner",
                       duration=duration, has_voice=has_voice)
        db.add(a)
        db.flush()
        questions = []
        for i, item in enumerate(spec, start=1):
            qtype, points = item[0], item[1]
            extra: Dict[str, Any] = {}
            if qtype == "mcq":
                extra = {"options": ["one", "two", "three", "four"], "correct_answer": "A"}
            q = Question(assessment_id=a.id, type=qtype, question=f"Q{i}", points=points, order=i, **extra)
            db.add(q)
            questions.append(q)
        a.total_questions = len(questions)
        db.add(a)
        db.commit()
        db.refresh(a)
        for q in questions:
            db.refresh(q)
        return a, questions

    return _make
