# app/models/evaluation.py
"""
Typed per-response evaluation payloads, stored as JSON on Response.evaluation.

Every field has a default so older rows and partial evaluator output still
parse; unknown keys are kept for forward compatibility.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_FEEDBACK = "No feedback provided"


class _EvaluationBase(BaseModel):
    model_config = ConfigDict(extra="allow", protected_namespaces=())

    model_name: Optional[str] = None
    error: Optional[str] = None


class McqEvaluation(_EvaluationBase):
    kind: Literal["mcq"] = "mcq"
    correct: bool = False


class TextEvaluation(_EvaluationBase):
    kind: Literal["text"] = "text"
    score: float = 0.0  # 0..100
    feedback: str = DEFAULT_FEEDBACK
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    relevance: float = 0.0  # 0..10
    clarity: float = 0.0
    depth: float = 0.0


class VoiceEvaluation(_EvaluationBase):
    kind: Literal["voice"] = "voice"
    score: float = 0.0  # 0..100
    feedback: str = DEFAULT_FEEDBACK
    communication: float = 0.0  # 0..10
    confidence: float = 0.0
    clarity: float = 0.0
    content: float = 0.0


Evaluation = Union[McqEvaluation, TextEvaluation, VoiceEvaluation]

_BY_KIND = {
    "mcq": McqEvaluation,
    "text": TextEvaluation,
    "voice": VoiceEvaluation,
}


def parse_evaluation(data: Dict[str, Any]) -> Evaluation:
    """Rebuild the typed evaluation from the stored JSON (dispatches on `kind`)."""
    kind = (data or {}).get("kind")
    model = _BY_KIND.get(kind)
    if model is None:
        raise ValueError(f"unknown evaluation kind: {kind!r}")
    return model.model_validate(data)
