"""
services/db.py
────────────────────────────────────────────────────────────────────────
* Async SQLAlchemy v2 setup
* Models for the three tables (user, user_profile, user_routine)
* Dialect-aware single-statement upsert used by the stores
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, AsyncGenerator

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from config import settings

# ───────── connection helper ────────────────────────────────────────
_ENGINE: AsyncEngine | None = None
_SESSIONS: async_sessionmaker[AsyncSession] | None = None


def engine() -> AsyncEngine:
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = create_async_engine(settings.database_url, pool_pre_ping=True)
    return _ENGINE


def sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _SESSIONS
    if _SESSIONS is None:
        _SESSIONS = async_sessionmaker(engine(), expire_on_commit=False)
    return _SESSIONS


async def create_all() -> None:
    async with engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose() -> None:
    global _ENGINE, _SESSIONS
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE, _SESSIONS = None, None


# ───────── declarative base ──────────────────────────────────────────
Base = declarative_base(cls=AsyncAttrs)


class User(Base):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(64), unique=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    password: Mapped[str] = mapped_column(String(255))
    create_time: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    is_active: Mapped[int] = mapped_column(Integer, default=1)
    profiling_form: Mapped[int] = mapped_column(Integer, default=0)


class UserProfile(Base):
    __tablename__ = "user_profile"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), unique=True
    )
    age: Mapped[float] = mapped_column(Float)
    weight: Mapped[float] = mapped_column(Float)
    height: Mapped[float] = mapped_column(Float)
    objective: Mapped[str] = mapped_column(Text)
    training_days: Mapped[int] = mapped_column(Integer)
    # pending → ready | failed, see core/orchestrator.py
    routine_status: Mapped[str] = mapped_column(String(16), default="pending")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


class UserRoutine(Base):
    __tablename__ = "user_routine"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), unique=True
    )
    routine: Mapped[str] = mapped_column(Text)  # serialized routine document
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


# ───────── upsert ────────────────────────────────────────────────────
_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
    "mysql": mysql.insert,
    "mariadb": mysql.insert,
}


def upsert(dialect: str, model: type[Base], key: str, values: dict[str, Any]):
    """
    Build one atomic `INSERT … ON CONFLICT/DUPLICATE KEY UPDATE` for
    `model`, keyed on the unique column `key`.  Every other column in
    `values` is overwritten on conflict.
    """
    try:
        insert = _INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"upsert not supported on dialect {dialect!r}") from None

    stmt = insert(model).values(**values)
    changed = {k: v for k, v in values.items() if k != key}
    changed["updated_at"] = func.now()

    if dialect in ("mysql", "mariadb"):
        return stmt.on_duplicate_key_update(**changed)
    return stmt.on_conflict_do_update(
        index_elements=[model.__table__.c[key]],
        set_=changed,
    )


# ───────── session helper ────────────────────────────────────────────

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with sessionmaker()() as session:
        yield session
