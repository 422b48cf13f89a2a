"""
Routine document: what the generator must return and the store keeps.

`ROUTINE_SCHEMA` is handed to Gemini as the native response schema; the
pydantic models below re-check the decoded payload before it is trusted.
"""
from __future__ import annotations

from typing import Any

from pydantic import AnyUrl, BaseModel, Field

EXERCISE_FIELDS = ("exercise", "duration", "calories", "sets", "reps", "imgUrl", "videoUrl")


class Exercise(BaseModel):
    exercise: str = Field(..., min_length=1)
    duration: str
    calories: float
    sets: float
    reps: float
    imgUrl: AnyUrl
    videoUrl: AnyUrl


class DayRoutine(BaseModel):
    exercise: list[Exercise] = Field(..., min_length=1)


class RoutineDocument(BaseModel):
    routines: list[DayRoutine] = Field(..., min_length=1)


def routine_schema(max_days: int | None = None) -> dict[str, Any]:
    """Gemini `response_schema` for a routine of at most `max_days` days."""
    exercise = {
        "type": "OBJECT",
        "properties": {
            "exercise": {"type": "STRING", "description": "Exercise name"},
            "duration": {"type": "STRING", "description": "e.g. '45 seconds' or '10 minutes'"},
            "calories": {"type": "NUMBER", "description": "Estimated kcal burned"},
            "sets": {"type": "NUMBER"},
            "reps": {"type": "NUMBER"},
            "imgUrl": {"type": "STRING", "description": "Absolute URL of a demo image"},
            "videoUrl": {"type": "STRING", "description": "Absolute URL of a demo video"},
        },
        "required": list(EXERCISE_FIELDS),
        "propertyOrdering": list(EXERCISE_FIELDS),
    }
    days: dict[str, Any] = {
        "type": "ARRAY",
        "minItems": 1,
        "items": {
            "type": "OBJECT",
            "properties": {
                "exercise": {"type": "ARRAY", "minItems": 1, "items": exercise},
            },
            "required": ["exercise"],
        },
    }
    if max_days:
        days["maxItems"] = max_days

    return {
        "type": "OBJECT",
        "properties": {"routines": days},
        "required": ["routines"],
    }
