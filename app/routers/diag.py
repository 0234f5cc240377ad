# app/routers/diag.py
from fastapi import APIRouter, Depends

from app.core.security import require_admin
from app.core.settings import settings
from app.models.db_models import User

router = APIRouter(prefix="/_diag", tags=["diag"])


@router.get("/ping")
def diag_ping():
    return {"ok": True, "scope": "/_diag"}


@router.get("/config")
def config_info(_admin: User = Depends(require_admin)):
    return {
        "PROJECT_NAME": settings.PROJECT_NAME,
        "VERSION": settings.VERSION,
        "API_KEY_len": len(settings.API_KEY or ""),
        "OPENAI_MODEL": settings.OPENAI_MODEL,
        "OPENAI_TRANSCRIBE_MODEL": settings.OPENAI_TRANSCRIBE_MODEL,
        "OPENAI_TEMPERATURE": settings.OPENAI_TEMPERATURE,
        "OPENAI_BASE_URL": settings.OPENAI_BASE_URL,
        "OPENAI_TIMEOUT": settings.OPENAI_TIMEOUT,
        "OPENAI_API_KEY_masked": settings.masked_openai_key(),
        "LLM_configured": settings.LLM_configured,
        "GRADING_FAIL_SOFT": settings.GRADING_FAIL_SOFT,
    }
