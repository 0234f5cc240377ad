from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.evaluation import parse_evaluation


class BaseModelConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=(), from_attributes=True)


# ============================== Assessments ==============================

class AssessmentCreate(BaseModelConfig):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(min_length=1, max_length=100)
    difficulty: Literal["beginner", "intermediate", "advanced"]
    duration: int = Field(gt=0, description="minutes")
    has_voice: bool = False
    is_active: bool = True


class AssessmentOut(BaseModelConfig):
    id: int
    title: str
    description: Optional[str] = None
    category: str
    difficulty: str
    duration: int
    total_questions: int
    has_voice: bool
    is_active: bool
    created_at: datetime


class QuestionOut(BaseModelConfig):
    id: int
    assessment_id: int
    type: str
    question: str
    options: Optional[List[str]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    rubric: Optional[str] = None
    points: int
    order: int


class GenerateQuestionsRequest(BaseModelConfig):
    mcq_count: int = Field(20, ge=0, le=50)
    text_count: int = Field(5, ge=0, le=20)
    voice_count: int = Field(3, ge=0, le=20)


class GenerateQuestionsOut(BaseModelConfig):
    message: str
    questions: int
    total_questions: int


# ============================== Sessions ==============================

class SessionCreate(BaseModelConfig):
    assessment_id: int


class SessionUpdate(BaseModelConfig):
    current_question_index: Optional[int] = Field(None, ge=0)
    time_remaining: Optional[int] = Field(None, ge=0)
    status: Optional[Literal["in_progress", "paused"]] = None


class SessionOut(BaseModelConfig):
    id: int
    user_id: str
    assessment_id: int
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    current_question_index: int
    time_remaining: Optional[int] = None
    mcq_score: Optional[float] = None
    text_score: Optional[float] = None
    voice_score: Optional[float] = None
    total_score: Optional[float] = None
    feedback: Optional[str] = None


class AssessmentSummary(BaseModelConfig):
    id: int
    title: str
    category: str
    difficulty: str


class SessionHistoryItem(SessionOut):
    assessment: Optional[AssessmentSummary] = None


# ============================== Responses ==============================

class ResponseCreate(BaseModelConfig):
    session_id: int
    question_id: int
    answer: Optional[str] = None
    transcription: Optional[str] = None
    audio_url: Optional[str] = None


class ResponseOut(BaseModelConfig):
    id: int
    session_id: int
    question_id: int
    answer: Optional[str] = None
    audio_url: Optional[str] = None
    transcription: Optional[str] = None
    score: float
    evaluation: Dict[str, Any]
    answered_at: datetime

    @field_validator("evaluation", mode="before")
    @classmethod
    def _typed_evaluation(cls, v):
        # stored JSON is read back through the typed evaluation model
        if not v:
            return {}
        return parse_evaluation(v).model_dump(mode="json", exclude_none=True)


class TranscriptionOut(BaseModelConfig):
    transcription: str


# ============================== Users / stats ==============================

class UserOut(BaseModelConfig):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str


class UserStatsOut(BaseModelConfig):
    tests_completed: int
    average_score: float
    total_time: int
    skill_level: str


class AdminStatsOut(BaseModelConfig):
    active_tests: int
    completed_today: int
    total_users: int
