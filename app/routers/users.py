# app/routers/users.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.db import get_session
from app.core.security import get_current_user
from app.core.stats import user_sessions, user_stats
from app.models.db_models import User
from app.models.schemas import AssessmentSummary, SessionHistoryItem, UserOut, UserStatsOut

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.get("/me/stats", response_model=UserStatsOut)
def my_stats(session: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return user_stats(session, user.id)


@router.get("/me/sessions", response_model=List[SessionHistoryItem])
def my_sessions(session: Session = Depends(get_session), user: User = Depends(get_current_user)):
    out = []
    for sess, assessment in user_sessions(session, user.id):
        item = SessionHistoryItem.model_validate(sess)
        if assessment is not None:
            item.assessment = AssessmentSummary.model_validate(assessment)
        out.append(item)
    return out
