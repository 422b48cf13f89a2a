"""
services/auth.py
────────────────────────────────────────────────────────────────────────
Identity gate: HS256 bearer tokens, bcrypt password hashes and the
owner check every `/user/...` route runs before touching a store.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from config import settings
from core.errors import Forbidden, Unauthenticated

_ALGO = "HS256"
_LOG = logging.getLogger(__name__)


def create_token(user_id: int | str, ttl_minutes: int | None = None) -> str:
    ttl = ttl_minutes if ttl_minutes is not None else settings.jwt_ttl_minutes
    exp = datetime.now(timezone.utc) + timedelta(minutes=ttl)
    payload = {"sub": str(user_id), "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGO)


def verify_token(token: str | None) -> int:
    """Return the subject's user id or raise `Unauthenticated`."""
    if not token:
        raise Unauthenticated()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[_ALGO],
            options={"require": ["exp", "sub"]},
        )
        return int(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired") from None
    except (jwt.InvalidTokenError, ValueError):
        raise Unauthenticated("Invalid token") from None


def ensure_owner(owner_id: int | str, subject_id: int) -> None:
    """Grant access only when the path's owner is the token's subject."""
    try:
        same = int(owner_id) == int(subject_id)
    except (TypeError, ValueError):
        same = False
    if not same:
        _LOG.warning("subject %s denied access to user %s", subject_id, owner_id)
        raise Forbidden()


# ───────── passwords ─────────────────────────────────────────────────
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode()


def check_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
