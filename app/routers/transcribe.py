# app/routers/transcribe.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from app.core.errors import ProviderError, SubmissionError
from app.core.llm import LLMProvider, get_provider
from app.core.security import get_current_user
from app.core.settings import settings
from app.models.db_models import User
from app.models.schemas import TranscriptionOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["transcribe"])


@router.post("/transcribe", response_model=TranscriptionOut)
def transcribe(
    audio: UploadFile = File(...),
    provider: LLMProvider = Depends(get_provider),
    _user: User = Depends(get_current_user),
):
    data = audio.file.read(settings.MAX_AUDIO_BYTES + 1)
    if not data:
        raise SubmissionError("No audio file provided")
    if len(data) > settings.MAX_AUDIO_BYTES:
        raise SubmissionError("Audio file too large")

    result = provider.transcribe(data, audio.filename or "audio.webm")
    if not result.ok:
        raise ProviderError(f"Failed to transcribe audio: {result.error}")
    return TranscriptionOut(transcription=str(result.data.get("text") or ""))
