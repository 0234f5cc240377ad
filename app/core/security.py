# app/core/security.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.db import get_session
from app.core.errors import ForbiddenError
from app.core.settings import settings
from app.models.db_models import User, ROLE_ADMIN, ROLE_CANDIDATE, utcnow

logger = logging.getLogger(__name__)


async def verify_api_key(request: Request):
    """
    Checks the service API key in the x-api-key header.
    """
    api_key = request.headers.get("x-api-key")
    if not api_key or api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    session: Session = Depends(get_session),
    _key: None = Depends(verify_api_key),
) -> User:
    """
    Identity comes from the authentication gate in front of the service.
    Unknown ids are upserted (candidate unless listed in ADMIN_USER_IDS).
    """
    uid = (x_user_id or "").strip()
    if not uid:
        raise HTTPException(status_code=401, detail="missing x-user-id")

    user = session.get(User, uid)
    if user is None:
        first, _, last = (x_user_name or "").strip().partition(" ")
        user = User(
            id=uid,
            email=x_user_email,
            first_name=first or None,
            last_name=last or None,
            role=ROLE_ADMIN if uid in settings.admin_ids else ROLE_CANDIDATE,
        )
        session.add(user)
        try:
            session.commit()
        except IntegrityError:
            # a concurrent first request inserted the same id
            session.rollback()
            user = session.get(User, uid)
            if user is None:
                raise
            return user
        session.refresh(user)
        logger.info("[auth] new user id=%s role=%s", uid, user.role)
    elif x_user_email and x_user_email != user.email:
        user.email = x_user_email
        user.updated_at = utcnow()
        session.add(user)
        session.commit()
        session.refresh(user)
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != ROLE_ADMIN:
        raise ForbiddenError("Admin access required")
    return user
