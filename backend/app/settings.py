from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = REPO_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE), env_file_encoding="utf-8", extra="ignore"
    )

    # console logs instead of JSON, verbose errors
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # persistence directory for the file-backed store (defaults to ~/.tablewise-data)
    DATA_DIR: Path | None = None
    STORAGE_BACKEND: Literal["memory", "file"] = "memory"

    # CORS allow origins (comma-separated). Default empty (no cross-origin).
    CORS_ALLOW_ORIGINS: str = ""

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 300  # per window per client
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Defaults applied to restaurants created without explicit values
    DEFAULT_CAPACITY: int = 30
    DEFAULT_SLOT_INTERVAL_MINUTES: int = 15
    DEFAULT_SERVICE_DURATION_MINUTES: int = 120

    # Alternative-slot search
    SUGGESTION_WINDOW_MINUTES: int = 120
    SUGGESTION_MAX_SLOTS: int = 16

    # Booking flow
    BOOKING_MAX_ATTEMPTS: int = 3
    # Reject a commit when another booking landed on the same restaurant/day
    # after the capacity check ran. Off keeps plain optimistic inserts.
    STRICT_CAPACITY_GUARD: bool = False

    # Observability
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_RELEASE: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2

    @property
    def allow_origins(self) -> list[str]:
        s = (self.CORS_ALLOW_ORIGINS or "").strip()
        if s == "*":
            return ["*"]
        if s == "":
            return []
        return [part.strip() for part in s.split(",") if part.strip()]

    @property
    def data_dir(self) -> Path:
        if self.DATA_DIR:
            return Path(self.DATA_DIR).expanduser().resolve()
        return (Path.home() / ".tablewise-data").resolve()


settings = Settings()
