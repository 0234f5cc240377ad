# app/core/questions.py
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from app.core.errors import NotFoundError, ProviderError
from app.core.llm import LLMProvider, LLMResult
from app.models.db_models import Assessment, Question, QTYPE_MCQ, QTYPE_TEXT, QTYPE_VOICE, utcnow

logger = logging.getLogger(__name__)

MCQ_POINTS = 1
OPEN_POINTS = 5  # text and voice


# ---------------- Assessments ----------------

def get_assessment(session: Session, assessment_id: int) -> Assessment:
    assessment = session.get(Assessment, assessment_id)
    if assessment is None:
        raise NotFoundError("Assessment not found")
    return assessment


def list_active_assessments(session: Session) -> List[Assessment]:
    stmt = (
        select(Assessment)
        .where(Assessment.is_active == True)  # noqa: E712
        .order_by(Assessment.created_at.desc(), Assessment.id.desc())
    )
    return list(session.exec(stmt).all())


def create_assessment(session: Session, data: Dict[str, Any]) -> Assessment:
    assessment = Assessment(**data)
    session.add(assessment)
    session.commit()
    session.refresh(assessment)
    logger.info("[assessments] created id=%s title=%r", assessment.id, assessment.title)
    return assessment


def list_questions(session: Session, assessment_id: int) -> List[Question]:
    stmt = select(Question).where(Question.assessment_id == assessment_id).order_by(Question.order)
    return list(session.exec(stmt).all())


# ---------------- Generated payload cleanup ----------------

def _letter_for(correct: Any, options: List[str]) -> Optional[str]:
    """Accepts "A", "b", "C)", or the option text itself."""
    letters = [chr(ord("A") + i) for i in range(len(options))]
    if not isinstance(correct, str) or not correct.strip():
        return None
    raw = correct.strip()
    m = re.match(r"^([A-Za-z])(?:[).:\s]|$)", raw)
    if m and m.group(1).upper() in letters:
        return m.group(1).upper()
    for letter, opt in zip(letters, options):
        if raw.lower() == opt.strip().lower():
            return letter
    return None


def clean_mcq_item(item: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(item, dict):
        return None
    text = item.get("question")
    options = item.get("options")
    if not isinstance(text, str) or not text.strip():
        return None
    if not isinstance(options, list) or len(options) < 2:
        return None
    options = [str(o).strip() for o in options]
    if any(not o for o in options):
        return None
    letter = _letter_for(item.get("correctAnswer") or item.get("correct_answer"), options)
    if letter is None:
        return None
    explanation = item.get("explanation")
    return {
        "question": text.strip(),
        "options": options,
        "correct_answer": letter,
        "explanation": explanation.strip() if isinstance(explanation, str) and explanation.strip() else None,
    }


def clean_prompt_list(result: LLMResult) -> List[str]:
    out: List[str] = []
    for q in (result.data or {}).get("questions") or []:
        if isinstance(q, dict):
            q = q.get("question")
        if isinstance(q, str) and q.strip():
            out.append(q.strip())
    return out


def _require(result: LLMResult, what: str) -> LLMResult:
    if not result.ok:
        raise ProviderError(f"Failed to generate {what} questions: {result.error}")
    return result


# ---------------- Generation ----------------

def generate_questions(
    session: Session,
    provider: LLMProvider,
    assessment_id: int,
    mcq_count: int = 20,
    text_count: int = 5,
    voice_count: int = 3,
) -> List[Question]:
    """
    Generates and stores a question bank for the assessment in one commit.
    Voice questions only when the assessment has voice enabled.
    """
    assessment = get_assessment(session, assessment_id)
    topic, difficulty = assessment.title, assessment.difficulty

    mcq_items: List[Dict[str, Any]] = []
    if mcq_count > 0:
        res = _require(provider.generate_mcq_questions(topic, difficulty, mcq_count), "MCQ")
        raw = res.data.get("questions") or []
        mcq_items = [c for c in (clean_mcq_item(i) for i in raw) if c]
        if len(mcq_items) < len(raw):
            logger.warning("[questions] dropped %d malformed MCQ items", len(raw) - len(mcq_items))

    text_prompts: List[str] = []
    if text_count > 0:
        text_prompts = clean_prompt_list(_require(provider.generate_text_questions(topic, difficulty, text_count), "subjective"))

    voice_prompts: List[str] = []
    if assessment.has_voice and voice_count > 0:
        voice_prompts = clean_prompt_list(_require(provider.generate_voice_questions(topic, difficulty, voice_count), "voice"))

    last = session.exec(
        select(func.max(Question.order)).where(Question.assessment_id == assessment_id)
    ).one()
    order = (last or 0) + 1

    created: List[Question] = []
    for item in mcq_items:
        created.append(Question(assessment_id=assessment_id, type=QTYPE_MCQ, points=MCQ_POINTS, order=order, **item))
        order += 1
    for prompt in text_prompts:
        created.append(Question(assessment_id=assessment_id, type=QTYPE_TEXT, question=prompt, points=OPEN_POINTS, order=order))
        order += 1
    for prompt in voice_prompts:
        created.append(Question(assessment_id=assessment_id, type=QTYPE_VOICE, question=prompt, points=OPEN_POINTS, order=order))
        order += 1

    try:
        session.add_all(created)
        session.flush()
        total = session.exec(
            select(func.count()).select_from(Question).where(Question.assessment_id == assessment_id)
        ).one()
        assessment.total_questions = int(total)
        assessment.updated_at = utcnow()
        session.add(assessment)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "[questions] assessment=%s generated mcq=%d text=%d voice=%d",
        assessment_id, len(mcq_items), len(text_prompts), len(voice_prompts),
    )
    for q in created:
        session.refresh(q)
    return created
