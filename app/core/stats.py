# app/core/stats.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from app.core.scoring import skill_level
from app.models.db_models import Assessment, AssessmentSession, User, STATUS_COMPLETED, STATUS_IN_PROGRESS, utcnow


def user_sessions(session: Session, user_id: str) -> List[Tuple[AssessmentSession, Optional[Assessment]]]:
    stmt = (
        select(AssessmentSession, Assessment)
        .join(Assessment, AssessmentSession.assessment_id == Assessment.id, isouter=True)
        .where(AssessmentSession.user_id == user_id)
        .order_by(AssessmentSession.started_at.desc(), AssessmentSession.id.desc())
    )
    return [(s, a) for s, a in session.exec(stmt).all()]


def user_stats(session: Session, user_id: str) -> Dict[str, Any]:
    rows = session.exec(
        select(AssessmentSession, Assessment)
        .join(Assessment, AssessmentSession.assessment_id == Assessment.id)
        .where(
            AssessmentSession.user_id == user_id,
            AssessmentSession.status == STATUS_COMPLETED,
        )
    ).all()

    scores = [s.total_score for s, _ in rows if s.total_score is not None]
    average = sum(scores) / len(scores) if scores else 0.0

    total_time = 0
    for s, a in rows:
        budget = a.duration * 60
        remaining = s.time_remaining if s.time_remaining is not None else 0
        total_time += max(0, budget - remaining)

    return {
        "tests_completed": len(rows),
        "average_score": average,
        "total_time": total_time,  # seconds
        "skill_level": skill_level(average),
    }


def day_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """UTC day containing `now`; naive values are taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def admin_stats(session: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    start, end = day_bounds(now or utcnow())

    active = session.exec(
        select(func.count()).select_from(AssessmentSession)
        .where(AssessmentSession.status == STATUS_IN_PROGRESS)
    ).one()
    completed_today = session.exec(
        select(func.count()).select_from(AssessmentSession)
        .where(
            AssessmentSession.status == STATUS_COMPLETED,
            AssessmentSession.completed_at >= start,
            AssessmentSession.completed_at < end,
        )
    ).one()
    total_users = session.exec(select(func.count()).select_from(User)).one()

    return {
        "active_tests": int(active or 0),
        "completed_today": int(completed_today or 0),
        "total_users": int(total_users or 0),
    }
