# app/core/settings.py
from __future__ import annotations

from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Basics
    PROJECT_NAME: str = "assessment-platform"
    VERSION: str = "1.0.0"
    DATABASE_URL: str = "sqlite:///assessments.db"
    LOG_LEVEL: str = "INFO"

    # Service key sent by the authentication gate (x-api-key)
    API_KEY: str = "supersecret123"
    # Comma separated user ids that are created with the admin role
    ADMIN_USER_IDS: str = ""

    # OpenAI
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_TRANSCRIBE_MODEL: str = "whisper-1"
    OPENAI_TEMPERATURE: float = 0.2
    OPENAI_BASE_URL: str | None = None
    OPENAI_TIMEOUT: float = 30.0

    # Grading
    GRADING_FAIL_SOFT: bool = True
    MAX_AUDIO_BYTES: int = 10 * 1024 * 1024

    ALLOW_ALL_CORS: bool = False

    @field_validator("OPENAI_TEMPERATURE", mode="before")
    @classmethod
    def _comma_decimal(cls, v):
        # "0,2" is accepted as 0.2
        if isinstance(v, str):
            return v.replace(",", ".")
        return v

    @property
    def LLM_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    @property
    def admin_ids(self) -> List[str]:
        return [x.strip() for x in self.ADMIN_USER_IDS.split(",") if x.strip()]

    def masked_openai_key(self) -> str:
        """Key with everything but the last 8 characters masked, for /_diag/config."""
        key = self.OPENAI_API_KEY or ""
        if not key:
            return ""
        if len(key) <= 8:
            return "*" * len(key)
        return "*" * (len(key) - 8) + key[-8:]


settings = Settings()
