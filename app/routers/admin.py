# app/routers/admin.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.db import get_session
from app.core.security import require_admin
from app.core.stats import admin_stats
from app.models.db_models import User
from app.models.schemas import AdminStatsOut

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=AdminStatsOut)
def stats(session: Session = Depends(get_session), _admin: User = Depends(require_admin)):
    return admin_stats(session)
