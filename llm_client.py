"""OpenAI GPT-based backend for question extraction and grouping."""

from __future__ import annotations

import logging
from typing import Any

from openai import OpenAI

from backends import data_url, decode_text, schema_prompt
from models import NormalizedPayload

LOGGER = logging.getLogger(__name__)


class OpenAIBackend:
    """StructuredBackend backed by chat completions in JSON mode."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-5.2",
        temperature: float = 0.1,
        timeout_seconds: float = 120.0,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.client = OpenAI(api_key=api_key, timeout=timeout_seconds)

    def generate(
        self,
        instructions: str,
        *,
        schema: dict[str, Any],
        payload: NormalizedPayload | None = None,
        filename: str = "",
    ) -> str:
        user_content: list[dict[str, Any]] = []
        if payload is not None:
            user_content.append(_payload_part(payload, filename))
        user_content.append({"type": "text", "text": "Return the JSON now."})

        LOGGER.debug("Calling OpenAI model=%s file=%s", self.model, filename or "-")
        response = self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": schema_prompt(instructions, schema)},
                {"role": "user", "content": user_content},
            ],
        )
        return response.choices[0].message.content or ""


def _payload_part(payload: NormalizedPayload, filename: str) -> dict[str, Any]:
    if payload.media_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": data_url(payload)}}
    if payload.media_type == "text/plain":
        return {"type": "text", "text": decode_text(payload)}
    return {
        "type": "file",
        "file": {"filename": filename or "document.pdf", "file_data": data_url(payload)},
    }
