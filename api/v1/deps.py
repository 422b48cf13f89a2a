# api/v1/deps.py
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.orchestrator import ProfileOrchestrator
from core.routine_generator import RoutineGenerator
from services.db import get_session
from services.gemini import GeminiClient
from services.profile_store import ProfileStore
from services.routine_store import RoutineStore

TOKEN_COOKIE = "token"


def bearer_token(request: Request) -> str | None:
    """`Authorization: Bearer …` first, then the `token` cookie set at login."""
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(TOKEN_COOKIE)


@lru_cache
def _gemini() -> GeminiClient:
    return GeminiClient()


def get_generator() -> RoutineGenerator:
    return RoutineGenerator(_gemini())


def get_orchestrator(
    db: AsyncSession = Depends(get_session),
    generator: RoutineGenerator = Depends(get_generator),
) -> ProfileOrchestrator:
    return ProfileOrchestrator(ProfileStore(db), RoutineStore(db), generator)
