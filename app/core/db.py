# app/core/db.py
from __future__ import annotations
from typing import Generator
from sqlmodel import SQLModel, Session, create_engine
from app.core.settings import settings

# register the tables on SQLModel.metadata
from app.models import db_models  # noqa: F401

# shared engine for the whole app
_engine = None


def make_engine(db_url: str, **kwargs):
    connect_args = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        db_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
        **kwargs,
    )


def get_engine():
    global _engine
    if _engine is None:
        _engine = make_engine(settings.DATABASE_URL)
    return _engine


def init_db(engine=None) -> None:
    """
    Creates all tables that do not exist yet.
    Runs on startup; production schemas go through alembic.
    """
    SQLModel.metadata.create_all(engine or get_engine())


def get_session() -> Generator[Session, None, None]:
    """
    FastAPI dependency for Depends(get_session)
    """
    with Session(get_engine()) as session:
        yield session
