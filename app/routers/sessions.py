# app/routers/sessions.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core import sessions as svc
from app.core.db import get_session
from app.core.llm import LLMProvider, get_provider
from app.core.security import get_current_user
from app.models.db_models import User
from app.models.schemas import ResponseOut, SessionCreate, SessionOut, SessionUpdate

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=SessionOut)
def session_start(
    payload: SessionCreate,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Returns the running session for this assessment if there is one."""
    return svc.start_session(session, user, payload.assessment_id)


@router.get("/{session_id}", response_model=SessionOut)
def session_detail(
    session_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return svc.get_owned_session(session, session_id, user)


@router.patch("/{session_id}", response_model=SessionOut)
def session_update(
    session_id: int,
    payload: SessionUpdate,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return svc.update_session(session, session_id, user, payload.model_dump(exclude_unset=True))


@router.get("/{session_id}/responses", response_model=List[ResponseOut])
def session_responses(
    session_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return svc.list_responses(session, session_id, user)


@router.post("/{session_id}/complete", response_model=SessionOut)
def session_complete(
    session_id: int,
    session: Session = Depends(get_session),
    provider: LLMProvider = Depends(get_provider),
    user: User = Depends(get_current_user),
):
    return svc.complete_session(session, provider, user, session_id)
