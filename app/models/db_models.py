# app/models/db_models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from sqlalchemy import CheckConstraint, Column, DateTime, JSON, Index, UniqueConstraint, text
from sqlmodel import SQLModel, Field

QTYPE_MCQ = "mcq"
QTYPE_TEXT = "text"
QTYPE_VOICE = "voice"
QUESTION_TYPES = (QTYPE_MCQ, QTYPE_TEXT, QTYPE_VOICE)

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_PAUSED = "paused"
SESSION_STATUSES = (STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_PAUSED)

ROLE_CANDIDATE = "candidate"
ROLE_ADMIN = "admin"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _in(column: str, values) -> str:
    return "{} IN ({})".format(column, ",".join("'%s'" % v for v in values))


def _ts(nullable: bool = False) -> Column:
    # each field needs its own Column instance
    return Column(DateTime(timezone=True), nullable=nullable)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True)
    email: Optional[str] = Field(default=None, index=True)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = Field(default=ROLE_CANDIDATE)  # candidate | admin
    created_at: datetime = Field(default_factory=utcnow, sa_column=_ts())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=_ts())


class Assessment(SQLModel, table=True):
    __tablename__ = "assessments"
    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_assessments_duration"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255)
    description: Optional[str] = None
    category: str = Field(max_length=100)
    difficulty: str = Field(max_length=20)  # beginner | intermediate | advanced
    duration: int  # minutes
    total_questions: int = 0
    has_voice: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_column=_ts())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=_ts())


class Question(SQLModel, table=True):
    __tablename__ = "questions"
    __table_args__ = (
        CheckConstraint(_in("type", QUESTION_TYPES), name="ck_questions_type"),
        CheckConstraint("points > 0", name="ck_questions_points"),
        UniqueConstraint("assessment_id", "order", name="uq_questions_assessment_order"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    assessment_id: int = Field(foreign_key="assessments.id", index=True, ondelete="CASCADE")
    type: str = Field(max_length=20)  # mcq | text | voice
    question: str
    options: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    correct_answer: Optional[str] = None  # option letter for mcq
    explanation: Optional[str] = None
    rubric: Optional[str] = None
    points: int = 1
    order: int
    created_at: datetime = Field(default_factory=utcnow, sa_column=_ts())

    def option_letters(self) -> List[str]:
        return [chr(ord("A") + i) for i in range(len(self.options or []))]


class AssessmentSession(SQLModel, table=True):
    __tablename__ = "assessment_sessions"
    __table_args__ = (
        # one in_progress session per (user, assessment)
        Index(
            "uq_sessions_user_assessment_active",
            "user_id",
            "assessment_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
        CheckConstraint(_in("status", SESSION_STATUSES), name="ck_sessions_status"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    assessment_id: int = Field(foreign_key="assessments.id", index=True)
    status: str = Field(default=STATUS_IN_PROGRESS, max_length=20)
    started_at: datetime = Field(default_factory=utcnow, sa_column=_ts())
    completed_at: Optional[datetime] = Field(default=None, sa_column=_ts(nullable=True))
    current_question_index: int = 0
    time_remaining: Optional[int] = None  # seconds

    # percentages 0..100, null until completion
    mcq_score: Optional[float] = None
    text_score: Optional[float] = None
    voice_score: Optional[float] = None
    total_score: Optional[float] = None
    feedback: Optional[str] = None


class Response(SQLModel, table=True):
    __tablename__ = "responses"
    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_responses_session_question"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key="assessment_sessions.id", index=True, ondelete="CASCADE")
    question_id: int = Field(foreign_key="questions.id")
    answer: Optional[str] = None
    audio_url: Optional[str] = None
    transcription: Optional[str] = None
    score: float = 0.0
    evaluation: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    answered_at: datetime = Field(default_factory=utcnow, sa_column=_ts())
