# app/core/feedback.py
from __future__ import annotations

import logging

from app.core.llm import LLMProvider
from app.core.scoring import SessionScores

logger = logging.getLogger(__name__)

FALLBACK_FEEDBACK = "Assessment completed successfully."


def synthesize_feedback(provider: LLMProvider, scores: SessionScores, title: str) -> str:
    """
    One narrative-feedback call per completed session. Never raises: any
    provider failure falls back to a fixed message so the scores still persist.
    """
    try:
        result = provider.final_feedback(scores.mcq, scores.text, scores.voice, title or "Assessment")
    except Exception as e:
        logger.warning("[feedback] provider raised: %s", e)
        return FALLBACK_FEEDBACK

    if not result.ok:
        logger.warning("[feedback] provider error: %s", result.error)
        return FALLBACK_FEEDBACK

    text = result.data.get("text")
    if not isinstance(text, str) or not text.strip():
        return FALLBACK_FEEDBACK
    return text.strip()
