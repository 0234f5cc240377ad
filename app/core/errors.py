# app/core/errors.py
from __future__ import annotations


class AppError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.code)
        self.detail = detail or self.code


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"


class SubmissionError(AppError):
    """Malformed answer, or the session cannot take it."""
    status_code = 422
    code = "invalid_submission"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"


class ProviderError(AppError):
    """External LLM / transcription call failed."""
    status_code = 502
    code = "provider_error"
