"""
core/orchestrator.py
────────────────────────────────────────────────────────────────────────
Profile-update pipeline, one instance per request:

    START → AUTHORIZED → PROFILE_VALIDATED → PROFILE_PERSISTED
          → ROUTINE_GENERATED → ROUTINE_PERSISTED → DONE

Any stage may end in FAILED; `failure` then holds the error raised to
the caller.  Each stage runs at most once and nothing is retried here.

The profile write is not undone when generation or the routine write
fails.  Instead the profile is marked `routine_status="failed"` so the
routine alone can be regenerated later (see `regenerate`).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.errors import (
    InternalError,
    ProfileNotFound,
    RoutineNotFound,
    RoutineServiceError,
    ValidationError,
    field_errors,
)
from core.models.profile import Profile, ProfileUpdate
from core.routine_generator import RoutineGenerator
from services.auth import ensure_owner, verify_token
from services.profile_store import ProfileStore
from services.routine_store import RoutineStore

_LOG = logging.getLogger(__name__)

T = TypeVar("T")


class Stage(str, Enum):
    START = "start"
    AUTHORIZED = "authorized"
    PROFILE_VALIDATED = "profile_validated"
    PROFILE_PERSISTED = "profile_persisted"
    ROUTINE_GENERATED = "routine_generated"
    ROUTINE_PERSISTED = "routine_persisted"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineResult:
    profile: Profile
    routine: dict[str, Any]


class ProfileOrchestrator:
    def __init__(
        self,
        profiles: ProfileStore,
        routines: RoutineStore,
        generator: RoutineGenerator,
    ) -> None:
        self.profiles = profiles
        self.routines = routines
        self.generator = generator
        self.stage = Stage.START
        self.failure: RoutineServiceError | None = None

    # ───────────────────────── helpers ──────────────────────────
    def _advance(self, stage: Stage) -> None:
        _LOG.debug("pipeline %s → %s", self.stage.value, stage.value)
        self.stage = stage

    def _fail(self, err: RoutineServiceError) -> RoutineServiceError:
        _LOG.warning("pipeline failed at %s: %s", self.stage.value, type(err).__name__)
        self.failure = err
        self.stage = Stage.FAILED
        return err

    def authorize(self, token: str | None, owner_id: int | str) -> int:
        subject = verify_token(token)
        ensure_owner(owner_id, subject)
        return subject

    async def _mark(self, user_id: int, status: str) -> None:
        try:
            await self.profiles.set_routine_status(user_id, status)
        except SQLAlchemyError:
            _LOG.exception("could not mark routine %s for user %s", status, user_id)

    async def _reload(self, user_id: int) -> Profile:
        profile = await self.profiles.get_profile(user_id)
        if profile is None:
            raise ProfileNotFound()
        return profile

    async def _run(self, steps: Callable[[], Awaitable[T]]) -> T:
        try:
            return await steps()
        except RoutineServiceError as e:
            raise self._fail(e)
        except Exception as e:
            _LOG.exception("unexpected failure at stage %s", self.stage.value)
            raise self._fail(InternalError()) from e

    # ───────────────────────── pipeline ─────────────────────────
    async def update_profile(
        self, token: str | None, owner_id: int | str, payload: Any
    ) -> PipelineResult:
        async def steps() -> PipelineResult:
            user_id = self.authorize(token, owner_id)
            self._advance(Stage.AUTHORIZED)

            body = validate_payload(payload)
            self._advance(Stage.PROFILE_VALIDATED)

            profile = await self.profiles.upsert_profile(
                user_id,
                body.username,
                body.age,
                body.weight,
                body.height,
                body.objective,
                body.training_days,
                body.profiling_form,
            )
            self._advance(Stage.PROFILE_PERSISTED)

            routine = await self._generate_and_save(profile)
            profile = await self._reload(user_id)
            self._advance(Stage.DONE)
            return PipelineResult(profile=profile, routine=routine)

        return await self._run(steps)

    async def regenerate(self, token: str | None, owner_id: int | str) -> PipelineResult:
        """Retry generation + routine write alone from the stored profile."""
        async def steps() -> PipelineResult:
            user_id = self.authorize(token, owner_id)
            self._advance(Stage.AUTHORIZED)
            result = await self.regenerate_for(user_id)
            self._advance(Stage.DONE)
            return result

        return await self._run(steps)

    async def regenerate_for(self, user_id: int) -> PipelineResult:
        """Generation + routine write for an already-stored profile, no auth."""
        profile = await self._reload(user_id)
        self._advance(Stage.PROFILE_PERSISTED)

        routine = await self._generate_and_save(profile)
        return PipelineResult(profile=await self._reload(user_id), routine=routine)

    async def _generate_and_save(self, profile: Profile) -> dict[str, Any]:
        try:
            routine = await self.generator.generate(
                profile.age,
                profile.weight,
                profile.height,
                profile.objective,
                profile.training_days,
            )
            self._advance(Stage.ROUTINE_GENERATED)

            await self.routines.save_routine(profile.user_id, routine)
            self._advance(Stage.ROUTINE_PERSISTED)
        except RoutineServiceError:
            await self._mark(profile.user_id, "failed")
            raise

        await self._mark(profile.user_id, "ready")
        return routine

    # ───────────────────────── reads ────────────────────────────
    async def get_profile(self, token: str | None, owner_id: int | str) -> Profile:
        async def steps() -> Profile:
            user_id = self.authorize(token, owner_id)
            self._advance(Stage.AUTHORIZED)
            profile = await self.profiles.get_profile(user_id)
            if profile is None:
                raise ProfileNotFound()
            self._advance(Stage.DONE)
            return profile

        return await self._run(steps)

    async def get_routine(self, token: str | None, owner_id: int | str) -> dict[str, Any]:
        async def steps() -> dict[str, Any]:
            user_id = self.authorize(token, owner_id)
            self._advance(Stage.AUTHORIZED)
            routine = await self.routines.get_routine(user_id)
            if routine is None:
                raise RoutineNotFound()
            self._advance(Stage.DONE)
            return routine

        return await self._run(steps)


def validate_payload(payload: Any) -> ProfileUpdate:
    if not isinstance(payload, Mapping):
        raise ValidationError([{"field": "body", "message": "Expected a JSON object"}])
    try:
        return ProfileUpdate.model_validate(dict(payload))
    except PydanticValidationError as e:
        raise ValidationError(field_errors(e.errors())) from None
