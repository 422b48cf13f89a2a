"""
core/routine_generator.py
────────────────────────────────────────────────────────────────────────
Profile attributes → prompt → Gemini (schema-constrained) → validated
routine document.

The generator never hands back a document that failed validation:

  • call errored / timed out / retries exhausted   → GenerationUnavailable
  • empty reply, non-JSON, or schema violation     → GenerationEmpty

No partial salvage is attempted on a bad reply.
"""
from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from google.genai import errors as gerrors
from pydantic import ValidationError as PydanticValidationError

from core.errors import GenerationEmpty, GenerationUnavailable
from core.models.routine import RoutineDocument, routine_schema
from services.gemini import GeminiError, JsonGenerator

_LOG = logging.getLogger(__name__)

PROMPT_TEMPLATE = (
    "You are a certified personal trainer. Design a weekly exercise routine "
    "for a person who is {age:g} years old, weighs {weight:g} kg and is "
    "{height:g} cm tall. Their objective is: {objective}. They can train "
    "{training_days} days per week, so return exactly {training_days} daily "
    "routines, in the order they should be done. For every exercise give its "
    "name, duration, estimated calories burned, number of sets, number of "
    "reps, an image URL and a video URL showing how to perform it."
)


def build_prompt(
    age: float, weight: float, height: float, objective: str, training_days: int
) -> str:
    return PROMPT_TEMPLATE.format(
        age=age,
        weight=weight,
        height=height,
        objective=objective.strip(),
        training_days=training_days,
    )


class RoutineGenerator:
    def __init__(self, llm: JsonGenerator) -> None:
        self._llm = llm

    async def generate(
        self,
        age: float,
        weight: float,
        height: float,
        objective: str,
        training_days: int,
    ) -> dict[str, Any]:
        prompt = build_prompt(age, weight, height, objective, training_days)
        schema = routine_schema(max_days=training_days)

        try:
            raw = await self._llm.generate_json(prompt, schema)
        except (
            GeminiError,
            gerrors.APIError,
            gerrors.UnknownApiResponseError,
            httpx.HTTPError,
        ) as e:
            _LOG.warning("routine generation failed: %s", e)
            raise GenerationUnavailable() from e

        return parse_routine(raw, max_days=training_days)


def parse_routine(raw: str | None, max_days: int | None = None) -> dict[str, Any]:
    """Decode + validate a Gemini reply; return the document as decoded."""
    if not raw or not raw.strip():
        _LOG.warning("Gemini returned no content")
        raise GenerationEmpty()

    try:
        data = json.loads(raw)
        RoutineDocument.model_validate_json(raw, strict=True)
    except (ValueError, PydanticValidationError) as e:
        _LOG.warning("Gemini reply does not match routine schema: %s", e)
        raise GenerationEmpty() from e

    if max_days and len(data["routines"]) > max_days:
        _LOG.warning("Gemini returned %d days, asked for %d", len(data["routines"]), max_days)
        raise GenerationEmpty()
    return data
