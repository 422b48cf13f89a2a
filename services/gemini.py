# services/gemini.py
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Protocol

import httpx
from google import genai
from google.genai import errors as gerrors
from google.genai import types

from config import settings

_LOG = logging.getLogger(__name__)

# statuses worth another attempt; everything else is a caller/config error
_RETRY_CODES = {408, 429, 500, 502, 503, 504}


class GeminiError(RuntimeError):
    """Gemini could not be reached, timed out, or kept rate-limiting us."""


class JsonGenerator(Protocol):
    async def generate_json(self, prompt: str, schema: dict[str, Any]) -> str | None:
        ...


# ───────────── Client ─────────────
class GeminiClient:
    """
    Schema-constrained JSON generation with an explicit timeout and a
    bounded retry policy (exponential backoff + jitter).

    One instance per process is enough; pass it to whatever needs it
    instead of importing a module-level client.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout_s: float | None = None,
        max_attempts: int | None = None,
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
        backoff_s: float = 1.0,
        client: genai.Client | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.timeout_s = timeout_s or settings.generation_timeout_s
        self.max_attempts = max_attempts or settings.generation_max_attempts
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.backoff_s = backoff_s
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise GeminiError("GEMINI_API_KEY not set in environment")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def _call(self, prompt: str, schema: dict[str, Any]) -> str | None:
        resp = await self.client.aio.models.generate_content(
            model=self.model,
            contents=[prompt],
            config=types.GenerateContentConfig(
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        return resp.text

    async def generate_json(self, prompt: str, schema: dict[str, Any]) -> str | None:
        """Return the raw JSON text Gemini produced (may be None/empty)."""
        last: Exception | None = None
        for attempt in range(self.max_attempts):
            try:
                return await asyncio.wait_for(self._call(prompt, schema), self.timeout_s)
            except asyncio.TimeoutError as e:
                last = e
                _LOG.warning("Gemini timed out after %.1fs (attempt %d)", self.timeout_s, attempt + 1)
            except gerrors.APIError as e:
                if getattr(e, "code", None) not in _RETRY_CODES:
                    raise
                last = e
                _LOG.warning("Gemini %s (attempt %d)", e.code, attempt + 1)
            except httpx.TransportError as e:
                last = e
                _LOG.warning("Gemini transport error %s (attempt %d)", e, attempt + 1)
            except gerrors.UnknownApiResponseError as e:
                raise GeminiError(f"Gemini reply unreadable: {e}") from e

            if attempt + 1 < self.max_attempts:
                backoff = self.backoff_s * ((2 ** attempt) + random.random())
                await asyncio.sleep(backoff)

        raise GeminiError(f"Gemini retries exhausted: {last}") from last
