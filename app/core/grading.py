# app/core/grading.py
"""
Grading dispatcher: one submitted answer -> score in [0, question.points] plus
a typed evaluation.

mcq is an exact letter match. text and voice go to the LLM provider; whatever
comes back is parsed defensively (missing numbers -> 0, then clamped), so a
half-broken evaluator payload still yields a valid, low score.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.core.errors import SubmissionError
from app.core.llm import LLMProvider, LLMResult
from app.models.db_models import Question, QTYPE_MCQ, QTYPE_TEXT, QTYPE_VOICE
from app.models.evaluation import (
    DEFAULT_FEEDBACK,
    Evaluation,
    McqEvaluation,
    TextEvaluation,
    VoiceEvaluation,
)

logger = logging.getLogger(__name__)

TEXT_CRITERIA = ("relevance", "clarity", "depth")
VOICE_CRITERIA = ("communication", "confidence", "clarity", "content")


@dataclass
class AnswerPayload:
    answer: Optional[str] = None
    transcription: Optional[str] = None
    audio_url: Optional[str] = None


@dataclass
class GradeResult:
    score: float
    evaluation: Evaluation
    # set when the external evaluator failed and defaults were applied
    provider_error: Optional[str] = None


# ---------------- Helpers ----------------

def _safe_num(x: Any, default: float = 0.0) -> float:
    """Evaluator number -> float; out-of-range values survive for clamp(), NaN and junk give `default`."""
    if isinstance(x, bool):
        return default
    if isinstance(x, int):
        try:
            return float(x)
        except OverflowError:
            return math.inf if x > 0 else -math.inf
    if isinstance(x, float):
        return default if math.isnan(x) else x
    if isinstance(x, str):
        try:
            v = float(x.strip())
        except ValueError:
            m = re.search(r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?", x)
            if not m:
                return default
            v = float(m.group())
        return default if math.isnan(v) else v
    return default


def clamp(x: Any, lo: float, hi: float) -> float:
    return max(lo, min(hi, _safe_num(x, 0.0)))


def _str_list(x: Any) -> List[str]:
    if not isinstance(x, list):
        return []
    return [str(v).strip() for v in x if v is not None and str(v).strip()]


def _feedback_text(x: Any) -> str:
    v = (x or "").strip() if isinstance(x, str) else ""
    return v or DEFAULT_FEEDBACK


def scale_to_points(overall_0_100: float, points: int) -> float:
    return points * (clamp(overall_0_100, 0.0, 100.0) / 100.0)


def normalize_text_evaluation(result: LLMResult) -> TextEvaluation:
    d = result.data or {}
    crit = {k: clamp(d.get(k), 0.0, 10.0) for k in TEXT_CRITERIA}
    return TextEvaluation(
        score=clamp(d.get("score"), 0.0, 100.0),
        feedback=_feedback_text(d.get("feedback")),
        strengths=_str_list(d.get("strengths")),
        improvements=_str_list(d.get("improvements")),
        model_name=result.model_name,
        error=result.error,
        **crit,
    )


def normalize_voice_evaluation(result: LLMResult) -> VoiceEvaluation:
    d = result.data or {}
    crit = {k: clamp(d.get(k), 0.0, 10.0) for k in VOICE_CRITERIA}
    return VoiceEvaluation(
        score=clamp(d.get("score"), 0.0, 100.0),
        feedback=_feedback_text(d.get("feedback")),
        model_name=result.model_name,
        error=result.error,
        **crit,
    )


# ---------------- Validation ----------------

def validate_answer(question: Question, payload: AnswerPayload) -> None:
    """Reject malformed submissions before any grading happens."""
    if question.type == QTYPE_MCQ:
        letter = (payload.answer or "").strip()
        if not letter:
            raise SubmissionError("multiple-choice answer requires a selected option")
        if question.options and letter not in question.option_letters():
            raise SubmissionError(f"'{letter}' is not one of the options")
    elif question.type == QTYPE_TEXT:
        if not (payload.answer or "").strip():
            raise SubmissionError("free-text answer must not be empty")
    elif question.type == QTYPE_VOICE:
        if not (payload.transcription or "").strip():
            raise SubmissionError("voice answer requires a transcription")
    else:
        raise SubmissionError(f"unsupported question type '{question.type}'")


# ---------------- Dispatch ----------------

def grade_mcq(question: Question, selected: str) -> GradeResult:
    correct = selected == question.correct_answer
    return GradeResult(
        score=float(question.points) if correct else 0.0,
        evaluation=McqEvaluation(correct=correct),
    )


def grade_text(question: Question, answer: str, provider: LLMProvider) -> GradeResult:
    result = provider.evaluate_text(question.question, answer, question.rubric)
    ev = normalize_text_evaluation(result)
    if not result.ok:
        logger.warning("[grading] text evaluation failed for question=%s: %s", question.id, result.error)
    return GradeResult(score=scale_to_points(ev.score, question.points), evaluation=ev, provider_error=result.error)


def grade_voice(question: Question, transcription: str, provider: LLMProvider) -> GradeResult:
    result = provider.evaluate_voice(question.question, transcription, question.rubric)
    ev = normalize_voice_evaluation(result)
    if not result.ok:
        logger.warning("[grading] voice evaluation failed for question=%s: %s", question.id, result.error)
    return GradeResult(score=scale_to_points(ev.score, question.points), evaluation=ev, provider_error=result.error)


def grade(question: Question, payload: AnswerPayload, provider: LLMProvider) -> GradeResult:
    validate_answer(question, payload)
    if question.type == QTYPE_MCQ:
        return grade_mcq(question, payload.answer.strip())
    if question.type == QTYPE_TEXT:
        return grade_text(question, payload.answer, provider)
    return grade_voice(question, payload.transcription, provider)


def evaluation_dict(ev: Evaluation) -> Dict[str, Any]:
    return ev.model_dump(mode="json", exclude_none=True)
