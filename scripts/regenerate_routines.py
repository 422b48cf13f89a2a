"""
scripts/regenerate_routines.py
────────────────────────────────────────────────────────────────────────
Retry routine generation for profiles whose last attempt did not finish
(`routine_status` pending or failed):

    python -m scripts.regenerate_routines            # every unfinished profile

Force one user (any status, overwrites their routine):

    python -m scripts.regenerate_routines --user 42
"""
from __future__ import annotations

import asyncio
import logging
from argparse import ArgumentParser

from dotenv import load_dotenv
load_dotenv()

from core.errors import RoutineServiceError
from core.orchestrator import ProfileOrchestrator
from core.routine_generator import RoutineGenerator
from services import db
from services.gemini import GeminiClient
from services.profile_store import ProfileStore
from services.routine_store import RoutineStore

_LOG = logging.getLogger("scripts.regenerate_routines")


async def regenerate(user_ids: list[int] | None, generator: RoutineGenerator) -> dict[int, str]:
    """Return `{user_id: "ready" | <error name>}` for every user attempted."""
    outcome: dict[int, str] = {}
    async with db.sessionmaker()() as session:
        if user_ids is None:
            user_ids = await ProfileStore(session).pending_user_ids()

    for uid in user_ids:
        # fresh session per user so one failure can't poison the next
        async with db.sessionmaker()() as session:
            orch = ProfileOrchestrator(ProfileStore(session), RoutineStore(session), generator)
            try:
                await orch.regenerate_for(uid)
                outcome[uid] = "ready"
            except RoutineServiceError as e:
                outcome[uid] = type(e).__name__
                _LOG.warning("user %s: %s", uid, e.message)
    return outcome


async def _main(user: int | None) -> None:
    try:
        outcome = await regenerate([user] if user is not None else None,
                                   RoutineGenerator(GeminiClient()))
    finally:
        await db.dispose()

    ok = sum(1 for v in outcome.values() if v == "ready")
    print(f"✓ regenerated {ok}/{len(outcome)} routines")
    for uid, status in outcome.items():
        if status != "ready":
            print(f"  ! user {uid}: {status}")


if __name__ == "__main__":  # pragma: no cover
    ap = ArgumentParser()
    ap.add_argument("--user", type=int, help="only this user id")
    args = ap.parse_args()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_main(args.user))
