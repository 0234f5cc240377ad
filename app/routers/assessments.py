# app/routers/assessments.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.db import get_session
from app.core.llm import LLMProvider, get_provider
from app.core.questions import (
    create_assessment,
    generate_questions,
    get_assessment,
    list_active_assessments,
    list_questions,
)
from app.core.security import get_current_user, require_admin
from app.models.db_models import User, ROLE_ADMIN
from app.models.schemas import (
    AssessmentCreate,
    AssessmentOut,
    GenerateQuestionsOut,
    GenerateQuestionsRequest,
    QuestionOut,
)

router = APIRouter(prefix="/assessments", tags=["assessments"])


@router.get("", response_model=List[AssessmentOut])
def assessments_index(session: Session = Depends(get_session)):
    return list_active_assessments(session)


@router.get("/{assessment_id}", response_model=AssessmentOut)
def assessment_detail(assessment_id: int, session: Session = Depends(get_session)):
    return get_assessment(session, assessment_id)


@router.post("", response_model=AssessmentOut)
def assessment_create(
    payload: AssessmentCreate,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    return create_assessment(session, payload.model_dump())


@router.get("/{assessment_id}/questions", response_model=List[QuestionOut])
def assessment_questions(
    assessment_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Ordered question bank. Answer keys are only shown to admins."""
    get_assessment(session, assessment_id)
    out = [QuestionOut.model_validate(q) for q in list_questions(session, assessment_id)]
    if user.role != ROLE_ADMIN:
        for q in out:
            q.correct_answer = None
            q.explanation = None
    return out


@router.post("/{assessment_id}/generate-questions", response_model=GenerateQuestionsOut)
def assessment_generate_questions(
    assessment_id: int,
    payload: GenerateQuestionsRequest = GenerateQuestionsRequest(),
    session: Session = Depends(get_session),
    provider: LLMProvider = Depends(get_provider),
    _admin: User = Depends(require_admin),
):
    created = generate_questions(
        session,
        provider,
        assessment_id,
        mcq_count=payload.mcq_count,
        text_count=payload.text_count,
        voice_count=payload.voice_count,
    )
    assessment = get_assessment(session, assessment_id)
    return GenerateQuestionsOut(
        message="Questions generated successfully",
        questions=len(created),
        total_questions=assessment.total_questions,
    )
