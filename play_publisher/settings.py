from __future__ import annotations
import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    """
    Centralized configuration for the Play bundle publisher.
    Loads from .env file or environment variables.
    """
    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(__file__), ".env"),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Google OAuth 2.0 (JWT-bearer service-account grant)
    TOKEN_ENDPOINT: str = "https://oauth2.googleapis.com/token"
    ANDROID_PUBLISHER_SCOPE: str = "https://www.googleapis.com/auth/androidpublisher"

    # Tokens with less than this much validity left are refreshed, never reused
    TOKEN_EXPIRY_SKEW_SECONDS: int = 300
    ASSERTION_LIFETIME_SECONDS: int = 3600

    # Android Publisher API
    PUBLISHER_BASE_URL: str = "https://androidpublisher.googleapis.com"

    # Transport
    UPLOAD_CHUNK_SIZE: int = 64 * 1024
    HTTP_TIMEOUT_SECONDS: float = 30.0
    UPLOAD_TIMEOUT_SECONDS: float = 600.0

    @field_validator("PUBLISHER_BASE_URL", "TOKEN_ENDPOINT")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("UPLOAD_CHUNK_SIZE")
    @classmethod
    def _positive_chunk_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("UPLOAD_CHUNK_SIZE must be positive")
        return value

settings = Settings()
