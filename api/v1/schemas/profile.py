from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from core.models.profile import Profile


class ProfileResponse(BaseModel):
    message: str
    profile: Profile


class ProfileUpdateResponse(ProfileResponse):
    routine: dict[str, Any]


class RoutineResponse(BaseModel):
    # the routine travels under `profile` for client compatibility
    message: str
    profile: dict[str, Any]
