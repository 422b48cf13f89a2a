from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request, status

from api.v1.deps import bearer_token, get_orchestrator
from api.v1.schemas import ProfileResponse, ProfileUpdateResponse, RoutineResponse
from core.orchestrator import ProfileOrchestrator

router = APIRouter()


async def _json_body(request: Request) -> Any:
    # parsed by hand so a bad body is reported *after* the identity gate
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


# ───────────────────────── update (full pipeline) ───────────
@router.post(
    "/userProfile/{user_id}",
    response_model=ProfileUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Upsert the caller's profile and regenerate their routine",
)
async def update_profile(
    user_id: str,
    request: Request,
    token: str | None = Depends(bearer_token),
    orch: ProfileOrchestrator = Depends(get_orchestrator),
) -> ProfileUpdateResponse:
    payload = await _json_body(request)
    result = await orch.update_profile(token, user_id, payload)
    return ProfileUpdateResponse(
        message="User profile update successfully",
        profile=result.profile,
        routine=result.routine,
    )


# ───────────────────────── fetch profile ────────────────────
@router.get("/userProfile/{user_id}", response_model=ProfileResponse)
async def fetch_profile(
    user_id: str,
    token: str | None = Depends(bearer_token),
    orch: ProfileOrchestrator = Depends(get_orchestrator),
) -> ProfileResponse:
    profile = await orch.get_profile(token, user_id)
    return ProfileResponse(message="User profile retrieved successfully", profile=profile)


# ───────────────────────── fetch routine ────────────────────
@router.get("/userRoutines/{user_id}", response_model=RoutineResponse)
async def fetch_routine(
    user_id: str,
    token: str | None = Depends(bearer_token),
    orch: ProfileOrchestrator = Depends(get_orchestrator),
) -> RoutineResponse:
    routine = await orch.get_routine(token, user_id)
    return RoutineResponse(message="User routines retrieved successfully", profile=routine)


# ───────────────────────── retry generation only ────────────
@router.post(
    "/userRoutines/{user_id}/regenerate",
    response_model=ProfileUpdateResponse,
    summary="Regenerate the routine from the stored profile",
)
async def regenerate_routine(
    user_id: str,
    token: str | None = Depends(bearer_token),
    orch: ProfileOrchestrator = Depends(get_orchestrator),
) -> ProfileUpdateResponse:
    result = await orch.regenerate(token, user_id)
    return ProfileUpdateResponse(
        message="User routines regenerated successfully",
        profile=result.profile,
        routine=result.routine,
    )
