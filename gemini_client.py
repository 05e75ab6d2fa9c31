"""Gemini backend using the google-genai SDK's native JSON response schemas."""

from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types

from backends import decode_text
from models import NormalizedPayload

LOGGER = logging.getLogger(__name__)


class GeminiBackend:
    """StructuredBackend backed by Gemini generate_content."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.1,
        timeout_seconds: float = 120.0,
    ) -> None:
        self.model = model
        self.temperature = temperature
        # HttpOptions.timeout is in milliseconds.
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    def generate(
        self,
        instructions: str,
        *,
        schema: dict[str, Any],
        payload: NormalizedPayload | None = None,
        filename: str = "",
    ) -> str:
        parts: list[types.Part] = []
        if payload is not None:
            parts.append(_payload_part(payload))
        parts.append(types.Part.from_text(text=instructions))

        LOGGER.debug("Calling Gemini model=%s file=%s", self.model, filename or "-")
        response = self.client.models.generate_content(
            model=self.model,
            contents=types.Content(role="user", parts=parts),
            config=types.GenerateContentConfig(
                temperature=self.temperature,
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        return response.text or ""


def _payload_part(payload: NormalizedPayload) -> types.Part:
    if payload.media_type == "text/plain":
        return types.Part.from_text(text=decode_text(payload))
    return types.Part.from_bytes(data=payload.data, mime_type=payload.media_type)
