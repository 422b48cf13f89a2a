"""
core/errors.py
────────────────────────────────────────────────────────────────────────
Failure kinds a profile/routine request can end in.

Every stage raises exactly one of these; `main.py` turns them into the
JSON body + status code the client sees.
"""
from __future__ import annotations

from typing import Any


class RoutineServiceError(Exception):
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or type(self).message
        super().__init__(self.message)

    def body(self) -> dict[str, Any]:
        return {"message": self.message}


class Unauthenticated(RoutineServiceError):
    status_code = 401
    message = "User not authenticated"


class Forbidden(RoutineServiceError):
    status_code = 403
    message = "User not allowed"


class ValidationError(RoutineServiceError):
    status_code = 400
    message = "Invalid request"

    def __init__(self, errors: list[dict[str, str]]) -> None:
        super().__init__()
        self.errors = errors

    def body(self) -> dict[str, Any]:
        return {"errors": self.errors}


class Conflict(RoutineServiceError):
    status_code = 400
    message = "User already exists"


class ProfileNotFound(RoutineServiceError):
    status_code = 404
    message = "User not found"


class RoutineNotFound(RoutineServiceError):
    status_code = 404
    message = "User routines not found"


class GenerationUnavailable(RoutineServiceError):
    status_code = 404
    message = "Routine generation is unavailable, try again later"


class GenerationEmpty(RoutineServiceError):
    status_code = 404
    message = "Routines not found"


class PersistenceFailure(RoutineServiceError):
    status_code = 500
    message = "Could not save routine"


class InternalError(RoutineServiceError):
    status_code = 500
    message = "Internal server error"


def field_errors(raw: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic `errors()` output into `{field, message}` pairs."""
    out: list[dict[str, str]] = []
    for err in raw:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body",)]
        out.append({"field": ".".join(loc) or "body", "message": err.get("msg", "")})
    return out
