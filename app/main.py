# app/main.py
from __future__ import annotations
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum

# --- Settings / DB ---
from app.core.settings import settings
from app.core.db import init_db
from app.core.errors import AppError
from app.core.logging_config import setup_logging

# --- Routers ---
from app.routers import admin, assessments, diag, health, responses, sessions, transcribe, users

setup_logging()
logger = logging.getLogger("app")

# -----------------------------------------------------------------------------
# FastAPI app
# -----------------------------------------------------------------------------
API_PREFIX = "/api"
ROOT_PATH = os.getenv("FASTAPI_ROOT_PATH", "")   # e.g. "/prod"
BUILD_TAG = os.getenv("BUILD_TAG", "dev")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    logger.info("[boot] %s %s build=%s", settings.PROJECT_NAME, settings.VERSION, BUILD_TAG)
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    root_path=ROOT_PATH,
    lifespan=lifespan,
)

# -----------------------------------------------------------------------------
# CORS
# -----------------------------------------------------------------------------
ALLOWED_ORIGINS = [
    "http://127.0.0.1:5173", "http://localhost:5173",
    "http://127.0.0.1:5000", "http://localhost:5000",
]
LOCALHOST_REGEX = r"http://(localhost|127\.0\.0\.1):\d+$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.ALLOW_ALL_CORS else ALLOWED_ORIGINS,
    allow_origin_regex=".*" if settings.ALLOW_ALL_CORS else LOCALHOST_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=86400,
)

# -----------------------------------------------------------------------------
# JSON UTF-8 middleware
# -----------------------------------------------------------------------------
@app.middleware("http")
async def force_utf8_content_type(request: Request, call_next):
    response = await call_next(request)
    ct = response.headers.get("content-type", "")
    if "application/json" in ct.lower() and "charset=" not in ct.lower():
        response.headers["content-type"] = "application/json; charset=utf-8"
    return response

# -----------------------------------------------------------------------------
# Register routers
# -----------------------------------------------------------------------------
app.include_router(assessments.router, prefix=API_PREFIX)
app.include_router(sessions.router,    prefix=API_PREFIX)
app.include_router(responses.router,   prefix=API_PREFIX)
app.include_router(transcribe.router,  prefix=API_PREFIX)
app.include_router(users.router,       prefix=API_PREFIX)
app.include_router(admin.router,       prefix=API_PREFIX)
app.include_router(diag.router,        prefix=API_PREFIX)
app.include_router(health.router)

# -----------------------------------------------------------------------------
# Root
# -----------------------------------------------------------------------------
@app.get("/")
def root():
    return {
        "ok": True,
        "service": settings.PROJECT_NAME,
        "prefix": API_PREFIX,
        "docs": "/docs",
        "build": BUILD_TAG,
    }

# -----------------------------------------------------------------------------
# Exception handlers
# -----------------------------------------------------------------------------
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.code, "detail": exc.detail},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("[error] %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "internal_error", "detail": str(exc)},
    )

# -----------------------------------------------------------------------------
# Lambda handler
# -----------------------------------------------------------------------------
handler = Mangum(app)
