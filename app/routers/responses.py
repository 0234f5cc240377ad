# app/routers/responses.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.db import get_session
from app.core.grading import AnswerPayload
from app.core.llm import LLMProvider, get_provider
from app.core.security import get_current_user
from app.core.sessions import submit_response
from app.models.db_models import User
from app.models.schemas import ResponseCreate, ResponseOut

router = APIRouter(prefix="/responses", tags=["responses"])


@router.post("", response_model=ResponseOut)
def response_submit(
    payload: ResponseCreate,
    session: Session = Depends(get_session),
    provider: LLMProvider = Depends(get_provider),
    user: User = Depends(get_current_user),
):
    """Grades one answer synchronously and stores it."""
    return submit_response(
        session,
        provider,
        user,
        payload.session_id,
        payload.question_id,
        AnswerPayload(
            answer=payload.answer,
            transcription=payload.transcription,
            audio_url=payload.audio_url,
        ),
    )
