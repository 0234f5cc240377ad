# app/core/sessions.py
"""
Session lifecycle: start (or reuse), progress updates, answer submission and
completion. Every external call happens before the rows are written, and each
operation commits once, so a failure leaves the session as it was.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ProviderError, SubmissionError
from app.core.feedback import synthesize_feedback
from app.core.grading import AnswerPayload, evaluation_dict, grade
from app.core.llm import LLMProvider
from app.core.questions import get_assessment
from app.core.scoring import SessionScores, aggregate
from app.core.settings import settings
from app.models.db_models import (
    AssessmentSession,
    Question,
    Response,
    User,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PAUSED,
    utcnow,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("current_question_index", "time_remaining", "status")


def find_active_session(session: Session, user_id: str, assessment_id: int) -> Optional[AssessmentSession]:
    stmt = select(AssessmentSession).where(
        AssessmentSession.user_id == user_id,
        AssessmentSession.assessment_id == assessment_id,
        AssessmentSession.status == STATUS_IN_PROGRESS,
    )
    return session.exec(stmt).first()


def get_owned_session(session: Session, session_id: int, user: User) -> AssessmentSession:
    sess = session.get(AssessmentSession, session_id)
    if sess is None:
        raise NotFoundError("Session not found")
    if sess.user_id != user.id:
        raise ForbiddenError("Access denied")
    return sess


def start_session(session: Session, user: User, assessment_id: int) -> AssessmentSession:
    """Returns the caller's in_progress session for the assessment, creating one if needed."""
    assessment = get_assessment(session, assessment_id)

    existing = find_active_session(session, user.id, assessment_id)
    if existing is not None:
        return existing

    sess = AssessmentSession(
        user_id=user.id,
        assessment_id=assessment_id,
        time_remaining=assessment.duration * 60,
        current_question_index=0,
    )
    session.add(sess)
    try:
        session.commit()
    except IntegrityError:
        # lost the race against a concurrent start: hand back the winner
        session.rollback()
        existing = find_active_session(session, user.id, assessment_id)
        if existing is None:
            raise
        return existing

    session.refresh(sess)
    logger.info("[sessions] started id=%s user=%s assessment=%s", sess.id, user.id, assessment_id)
    return sess


def update_session(session: Session, session_id: int, user: User, changes: Dict[str, Any]) -> AssessmentSession:
    sess = get_owned_session(session, session_id, user)
    if sess.status == STATUS_COMPLETED:
        raise ConflictError("Completed sessions cannot be modified")

    for key in UPDATABLE_FIELDS:
        if key in changes and changes[key] is not None:
            setattr(sess, key, changes[key])
    if sess.status not in (STATUS_IN_PROGRESS, STATUS_PAUSED):
        session.rollback()
        raise SubmissionError(f"status '{sess.status}' cannot be set directly")

    session.add(sess)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Another session for this assessment is already in progress")
    session.refresh(sess)
    return sess


def list_responses(session: Session, session_id: int, user: User) -> List[Response]:
    get_owned_session(session, session_id, user)
    stmt = (
        select(Response)
        .where(Response.session_id == session_id)
        .order_by(Response.answered_at, Response.id)
    )
    return list(session.exec(stmt).all())


def submit_response(
    session: Session,
    provider: LLMProvider,
    user: User,
    session_id: int,
    question_id: int,
    payload: AnswerPayload,
) -> Response:
    sess = get_owned_session(session, session_id, user)
    if sess.status != STATUS_IN_PROGRESS:
        raise SubmissionError(f"Session is {sess.status}, not accepting answers")

    question = session.get(Question, question_id)
    if question is None:
        raise NotFoundError("Question not found")
    if question.assessment_id != sess.assessment_id:
        raise SubmissionError("Question does not belong to this assessment")

    already = session.exec(
        select(Response.id).where(Response.session_id == sess.id, Response.question_id == question.id)
    ).first()
    if already is not None:
        raise ConflictError("Question already answered in this session")

    result = grade(question, payload, provider)
    if result.provider_error and not settings.GRADING_FAIL_SOFT:
        raise ProviderError(f"Failed to evaluate answer: {result.provider_error}")

    response = Response(
        session_id=sess.id,
        question_id=question.id,
        answer=payload.answer,
        audio_url=payload.audio_url,
        transcription=payload.transcription,
        score=result.score,
        evaluation=evaluation_dict(result.evaluation),
    )
    sess.current_question_index = max(sess.current_question_index or 0, question.order)
    session.add(response)
    session.add(sess)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Question already answered in this session")

    session.refresh(response)
    logger.info(
        "[responses] session=%s question=%s type=%s score=%.2f/%d",
        sess.id, question.id, question.type, response.score, question.points,
    )
    return response


def session_pairs(session: Session, session_id: int) -> List[Tuple[Response, Question]]:
    stmt = (
        select(Response, Question)
        .join(Question, Response.question_id == Question.id)
        .where(Response.session_id == session_id)
    )
    return [(r, q) for r, q in session.exec(stmt).all()]


def compute_scores(session: Session, session_id: int) -> SessionScores:
    return aggregate(session_pairs(session, session_id))


def complete_session(session: Session, provider: LLMProvider, user: User, session_id: int) -> AssessmentSession:
    sess = get_owned_session(session, session_id, user)
    if sess.status == STATUS_COMPLETED:
        return sess

    scores = compute_scores(session, sess.id)
    assessment = get_assessment(session, sess.assessment_id)
    feedback = synthesize_feedback(provider, scores, assessment.title)

    sess.status = STATUS_COMPLETED
    sess.completed_at = utcnow()
    sess.mcq_score = scores.mcq
    sess.text_score = scores.text
    sess.voice_score = scores.voice
    sess.total_score = scores.composite
    sess.feedback = feedback
    session.add(sess)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(sess)
    logger.info(
        "[sessions] completed id=%s mcq=%.1f text=%.1f voice=%.1f total=%.1f",
        sess.id, scores.mcq, scores.text, scores.voice, scores.composite,
    )
    return sess
