"""
Centralised settings loader.

Every value can be overridden from the environment or a local `.env`.
"""

from __future__ import annotations
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ------------------------------------------------------------------ #
#  Master settings model
# ------------------------------------------------------------------ #
class _Settings(BaseSettings):
    # ─── runtime / DB ────────────────────────────────────────────────
    env_name: str = "local"
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./routines.db"
    create_tables: bool = True
    cors_origins: list[str] = ["*"]

    # ─── tokens ──────────────────────────────────────────────────────
    jwt_secret: str = "changeme"
    jwt_ttl_minutes: int = Field(60, gt=0)

    # ─── Gemini ──────────────────────────────────────────────────────
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    generation_timeout_s: float = Field(60.0, gt=0)
    generation_max_attempts: int = Field(3, ge=1)

    # allow other teammates’ env-vars without crashing
    model_config = SettingsConfigDict(
        extra="ignore", env_file=".env", env_file_encoding="utf-8"
    )


# ------------------------------------------------------------------ #
#  Cached singleton accessor
# ------------------------------------------------------------------ #
@lru_cache
def _cached() -> _Settings:  # pragma: no cover
    return _Settings()


settings: _Settings = _cached()
