# app/core/llm.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional, Protocol

import httpx
from openai import OpenAI

from app.core.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class LLMResult:
    """
    Result-or-error of one provider call.

    `data` is always a dict (empty on failure), so callers can apply
    field-level defaults without checking `error` first.
    """
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    model_name: Optional[str] = None
    raw: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class LLMProvider(Protocol):
    def evaluate_text(self, question: str, answer: str, rubric: Optional[str] = None) -> LLMResult: ...

    def evaluate_voice(self, question: str, transcription: str, rubric: Optional[str] = None) -> LLMResult: ...

    def generate_mcq_questions(self, topic: str, difficulty: str, count: int) -> LLMResult: ...

    def generate_text_questions(self, topic: str, difficulty: str, count: int) -> LLMResult: ...

    def generate_voice_questions(self, topic: str, difficulty: str, count: int) -> LLMResult: ...

    def final_feedback(self, mcq_score: float, text_score: float, voice_score: float, title: str) -> LLMResult: ...

    def transcribe(self, audio: bytes, filename: str) -> LLMResult: ...


# ---------------- Prompts ----------------

SYSTEM_GENERATE_MCQ = "You are an expert technical interviewer creating assessment questions."
USER_GENERATE_MCQ = """Generate {count} multiple choice questions for a {difficulty} level {topic} assessment.
Each question should have 4 options (A, B, C, D) with one correct answer.
Respond with JSON in this format:
{{
  "questions": [
    {{
      "question": "Question text",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": "A",
      "explanation": "Why this answer is correct"
    }}
  ]
}}"""

SYSTEM_GENERATE_TEXT = "You are an expert technical interviewer creating in-depth assessment questions."
USER_GENERATE_TEXT = """Generate {count} subjective/open-ended questions for a {difficulty} level {topic} assessment.
These should test deep understanding and practical application.
Respond with JSON in this format: {{ "questions": ["Question 1", "Question 2", ...] }}"""

SYSTEM_GENERATE_VOICE = "You are an expert interviewer creating voice-based assessment questions."
USER_GENERATE_VOICE = """Generate {count} voice interview questions for a {difficulty} level {topic} assessment.
These should test communication skills, thought process, and ability to explain concepts verbally.
Questions should encourage detailed explanations and examples.
Respond with JSON in this format: {{ "questions": ["Question 1", "Question 2", ...] }}"""

SYSTEM_EVAL_TEXT = (
    "You are an expert technical interviewer evaluating candidate responses. "
    "Be fair but thorough in your assessment. Return ONLY valid JSON."
)
USER_EVAL_TEXT = """Evaluate this subjective answer for a technical interview:

Question: {question}
Answer: {answer}
{rubric_line}
Provide a comprehensive evaluation with scores from 0-100 for overall score and 0-10 for individual criteria.
Respond with JSON in this format:
{{
  "score": number,
  "feedback": "Detailed feedback explaining the score",
  "strengths": ["strength 1", "strength 2"],
  "improvements": ["improvement 1", "improvement 2"],
  "relevance": number,
  "clarity": number,
  "depth": number
}}"""

SYSTEM_EVAL_VOICE = (
    "You are an expert interviewer evaluating voice responses. "
    "Consider both content and communication skills. Return ONLY valid JSON."
)
USER_EVAL_VOICE = """Evaluate this voice interview response:

Question: {question}
Transcription: {transcription}
{rubric_line}
Evaluate based on content quality, communication skills, clarity of expression, and confidence.
Respond with JSON in this format:
{{
  "score": number,
  "feedback": "Detailed feedback on the voice response",
  "communication": number,
  "confidence": number,
  "clarity": number,
  "content": number
}}"""

SYSTEM_FEEDBACK = "You are a supportive career mentor providing constructive feedback to help candidates grow."
USER_FEEDBACK = """Generate comprehensive feedback for a candidate who completed a {title} assessment:

MCQ Score: {mcq:.1f}%
Subjective Score: {text:.1f}%
Voice Score: {voice:.1f}%

Provide encouraging but honest feedback highlighting strengths and areas for improvement.
Include specific actionable recommendations for skill development."""


# ---------------- Helpers ----------------

def _extract_json(text: str) -> Optional[dict]:
    if not text:
        return None
    s, e = text.find("{"), text.rfind("}")
    if 0 <= s < e:
        cand = text[s : e + 1]
        try:
            out = json.loads(cand)
        except ValueError:
            return None
        return out if isinstance(out, dict) else None
    return None


def _message_content(resp: Any) -> Optional[str]:
    """Text of the first choice, None when the completion carries no message."""
    choices = getattr(resp, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    if message is None:
        return None
    return getattr(message, "content", None) or ""


def _rubric_line(rubric: Optional[str]) -> str:
    return f"Evaluation Rubric: {rubric}\n" if rubric else ""


class OpenAIProvider:
    """LLMProvider over the OpenAI v1 SDK, with an explicit http timeout."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.base_url = base_url if base_url is not None else settings.OPENAI_BASE_URL
        self.timeout = timeout or settings.OPENAI_TIMEOUT
        self.temperature = settings.OPENAI_TEMPERATURE if temperature is None else temperature
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            http_client = httpx.Client(timeout=self.timeout)
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, http_client=http_client)
        return self._client

    def _chat_json(self, messages: List[dict]) -> LLMResult:
        try:
            client = self._get_client()
            resp = client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except Exception as e:
            logger.warning("[llm] chat call failed: %s", e)
            return LLMResult(error=str(e), model_name=self.model)

        model_name = getattr(resp, "model", None) or self.model
        content = _message_content(resp)
        if content is None:
            logger.warning("[llm] completion without a message from %s", model_name)
            return LLMResult(error="malformed_llm_response", model_name=model_name)
        data = _extract_json(content)
        if data is None:
            logger.warning("[llm] unparseable JSON from %s", model_name)
            return LLMResult(error="malformed_llm_response", model_name=model_name, raw=content[:500])
        return LLMResult(data=data, model_name=model_name, raw=content)

    def _chat_text(self, messages: List[dict]) -> LLMResult:
        try:
            client = self._get_client()
            resp = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
            )
        except Exception as e:
            logger.warning("[llm] chat call failed: %s", e)
            return LLMResult(error=str(e), model_name=self.model)

        model_name = getattr(resp, "model", None) or self.model
        content = _message_content(resp)
        if content is None:
            logger.warning("[llm] completion without a message from %s", model_name)
            return LLMResult(error="malformed_llm_response", model_name=model_name)
        content = content.strip()
        if not content:
            return LLMResult(error="empty_llm_response", model_name=model_name)
        return LLMResult(data={"text": content}, model_name=model_name, raw=content)

    # ---------------- Grading ----------------

    def evaluate_text(self, question: str, answer: str, rubric: Optional[str] = None) -> LLMResult:
        return self._chat_json([
            {"role": "system", "content": SYSTEM_EVAL_TEXT},
            {"role": "user", "content": USER_EVAL_TEXT.format(
                question=question, answer=answer, rubric_line=_rubric_line(rubric),
            )},
        ])

    def evaluate_voice(self, question: str, transcription: str, rubric: Optional[str] = None) -> LLMResult:
        return self._chat_json([
            {"role": "system", "content": SYSTEM_EVAL_VOICE},
            {"role": "user", "content": USER_EVAL_VOICE.format(
                question=question, transcription=transcription, rubric_line=_rubric_line(rubric),
            )},
        ])

    # ---------------- Generation ----------------

    def generate_mcq_questions(self, topic: str, difficulty: str, count: int) -> LLMResult:
        return self._chat_json([
            {"role": "system", "content": SYSTEM_GENERATE_MCQ},
            {"role": "user", "content": USER_GENERATE_MCQ.format(count=count, difficulty=difficulty, topic=topic)},
        ])

    def generate_text_questions(self, topic: str, difficulty: str, count: int) -> LLMResult:
        return self._chat_json([
            {"role": "system", "content": SYSTEM_GENERATE_TEXT},
            {"role": "user", "content": USER_GENERATE_TEXT.format(count=count, difficulty=difficulty, topic=topic)},
        ])

    def generate_voice_questions(self, topic: str, difficulty: str, count: int) -> LLMResult:
        return self._chat_json([
            {"role": "system", "content": SYSTEM_GENERATE_VOICE},
            {"role": "user", "content": USER_GENERATE_VOICE.format(count=count, difficulty=difficulty, topic=topic)},
        ])

    def final_feedback(self, mcq_score: float, text_score: float, voice_score: float, title: str) -> LLMResult:
        return self._chat_text([
            {"role": "system", "content": SYSTEM_FEEDBACK},
            {"role": "user", "content": USER_FEEDBACK.format(
                title=title, mcq=mcq_score, text=text_score, voice=voice_score,
            )},
        ])

    # ---------------- Audio ----------------

    def transcribe(self, audio: bytes, filename: str) -> LLMResult:
        model_name = settings.OPENAI_TRANSCRIBE_MODEL
        try:
            client = self._get_client()
            out = client.audio.transcriptions.create(file=(filename, audio), model=model_name)
        except Exception as e:
            logger.warning("[llm] transcription failed: %s", e)
            return LLMResult(error=str(e), model_name=model_name)
        return LLMResult(data={"text": getattr(out, "text", "") or ""}, model_name=model_name)


@lru_cache(maxsize=1)
def _default_provider() -> OpenAIProvider:
    return OpenAIProvider()


def get_provider() -> LLMProvider:
    """FastAPI dependency; tests swap it via app.dependency_overrides."""
    return _default_provider()
