"""
Shared fixtures: in-memory SQLite per test, a fake Gemini, and an
in-process HTTP client with both wired in through dependency overrides.
"""
from __future__ import annotations

import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CREATE_TABLES", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.v1.deps import get_generator
from core.routine_generator import RoutineGenerator
from main import app
from services.auth import create_token, hash_password
from services.db import Base, User, get_session

_DEFAULT = object()


def make_doc(days: int = 4, per_day: int = 2) -> dict:
    return {
        "routines": [
            {
                "exercise": [
                    {
                        "exercise": f"Exercise {d}.{i}",
                        "duration": "10 minutes",
                        "calories": 80 + i,
                        "sets": 3,
                        "reps": 12,
                        "imgUrl": f"https://example.com/img/{d}-{i}.png",
                        "videoUrl": f"https://example.com/video/{d}-{i}.mp4",
                    }
                    for i in range(per_day)
                ]
            }
            for d in range(days)
        ]
    }


class FakeLLM:
    """Stands in for GeminiClient; `reply` may be text, None or an exception."""

    def __init__(self, reply=_DEFAULT) -> None:
        self.reply = json.dumps(make_doc()) if reply is _DEFAULT else reply
        self.calls: list[tuple[str, dict]] = []

    async def generate_json(self, prompt: str, schema: dict) -> str | None:
        self.calls.append((prompt, schema))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def doc():
    return make_doc


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
async def sessions():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(eng, expire_on_commit=False)
    await eng.dispose()


@pytest.fixture
async def session(sessions):
    async with sessions() as s:
        yield s


@pytest.fixture
async def user(sessions) -> User:
    async with sessions() as s:
        u = User(
            id=42,
            username="bob",
            email="bob@example.com",
            password=hash_password("secret1"),
        )
        s.add(u)
        await s.commit()
        return u


@pytest.fixture
def auth():
    def _headers(user_id: int | str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_token(user_id)}"}

    return _headers


@pytest.fixture
def count(sessions):
    async def _count(model) -> int:
        async with sessions() as s:
            return (await s.execute(select(func.count()).select_from(model))).scalar_one()

    return _count


@pytest.fixture
async def client(sessions, llm):
    async def _session():
        async with sessions() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_generator] = lambda: RoutineGenerator(llm)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
