"""Advisory trip note suggestions from Gemini.

The text is never validated; every failure maps to a fixed fallback.
"""

from __future__ import annotations

import logging
from typing import Any

from pytriplog._transport import Transport
from pytriplog.exceptions import TripLogTransportError

_logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

MISSING_KEY_TEXT = "AI unavailable (Missing API Key)"
EMPTY_RESPONSE_TEXT = "Drive logged successfully."
FAILURE_TEXT = "Great drive!"


def build_prompt(mileage: float) -> str:
    return (
        "Generate a short, witty, or encouraging driving log message for a trip of "
        f"{mileage:g} miles. Keep it under 15 words."
    )


def extract_text(body: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate, or ``""``."""
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict)).strip()


class NoteSuggester:
    def __init__(self, transport: Transport, api_key: str | None, *, model: str = "gemini-2.5-flash") -> None:
        self._transport = transport
        self._api_key = api_key
        self._model = model

    async def suggest(self, mileage: float) -> str:
        if not self._api_key:
            _logger.warning("Gemini API key is missing; note suggestions disabled")
            return MISSING_KEY_TEXT

        payload = {"contents": [{"parts": [{"text": build_prompt(mileage)}]}]}
        try:
            body = await self._transport.post_json(
                GEMINI_ENDPOINT.format(model=self._model),
                payload,
                headers={"x-goog-api-key": self._api_key},
            )
        except TripLogTransportError as exc:
            _logger.warning("Gemini API error: %s", exc)
            return FAILURE_TEXT

        return extract_text(body) or EMPTY_RESPONSE_TEXT
