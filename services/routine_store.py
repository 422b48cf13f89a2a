"""
services/routine_store.py
────────────────────────────────────────────────────────────────────────
One routine document per user.  Saving again replaces the previous
document in place (single upsert statement, never a second row).
"""
from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import PersistenceFailure
from services.db import UserRoutine, upsert

_LOG = logging.getLogger(__name__)


class RoutineStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def save_routine(self, user_id: int, document: dict[str, Any]) -> None:
        stmt = upsert(
            self.db.get_bind().dialect.name,
            UserRoutine,
            "user_id",
            {"user_id": user_id, "routine": json.dumps(document)},
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            _LOG.exception("saving routine for user %s failed", user_id)
            raise PersistenceFailure() from e

    async def get_routine(self, user_id: int) -> dict[str, Any] | None:
        text = (
            await self.db.execute(
                select(UserRoutine.routine).where(UserRoutine.user_id == user_id)
            )
        ).scalar_one_or_none()
        return json.loads(text) if text is not None else None
