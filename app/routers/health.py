from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlmodel import Session

from app.core.db import get_session
from app.core.settings import settings

router = APIRouter(prefix="", tags=["health"])


@router.get("/healthz")
def healthz():
    return {"ok": True}


@router.get("/health")
def health(session: Session = Depends(get_session)):
    db_ok = True
    try:
        session.execute(text("SELECT 1"))
    except Exception:
        db_ok = False
    return {"ok": db_ok, "db": db_ok, "llm_configured": settings.LLM_configured}
