"""
services/profile_store.py
────────────────────────────────────────────────────────────────────────
User + UserProfile persistence.  One profile row per user, written with
a single upsert statement so concurrent updates serialise in the DB.
"""
from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Conflict, ProfileNotFound
from core.models.profile import Profile
from services.db import User, UserProfile, upsert

_LOG = logging.getLogger(__name__)


class ProfileStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def upsert_profile(
        self,
        user_id: int,
        username: str,
        age: float,
        weight: float,
        height: float,
        objective: str,
        training_days: int,
        profiling_form: int,
    ) -> Profile:
        """
        Rename the user / set the profiling-form flag, then insert-or-update
        their profile.  Both writes commit together; the profile comes back
        with `routine_status="pending"` until a routine is saved for it.
        """
        user = await self.db.get(User, user_id)
        if user is None:
            raise ProfileNotFound()

        # 1) user row first
        user.username = username
        user.profiling_form = profiling_form

        # 2) then the profile row
        stmt = upsert(
            self.db.get_bind().dialect.name,
            UserProfile,
            "user_id",
            {
                "user_id": user_id,
                "age": age,
                "weight": weight,
                "height": height,
                "objective": objective,
                "training_days": training_days,
                "routine_status": "pending",
            },
        )
        try:
            await self.db.flush()
            await self.db.execute(stmt)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            _LOG.info("profile update for %s rejected: %s", user_id, e.orig)
            raise Conflict("Username already taken") from e

        profile = await self.get_profile(user_id)
        if profile is None:  # deleted between commit and read
            raise ProfileNotFound()
        return profile

    async def get_profile(self, user_id: int) -> Profile | None:
        row = (
            await self.db.execute(
                select(UserProfile)
                .where(UserProfile.user_id == user_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
        return Profile.model_validate(row) if row else None

    async def set_routine_status(self, user_id: int, status: str) -> None:
        try:
            await self.db.execute(
                update(UserProfile)
                .where(UserProfile.user_id == user_id)
                .values(routine_status=status)
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def pending_user_ids(self) -> list[int]:
        rows = await self.db.execute(
            select(UserProfile.user_id).where(
                UserProfile.routine_status.in_(("pending", "failed"))
            )
        )
        return list(rows.scalars().all())
