"""Thin wrapper around the Anthropic Messages API."""

from __future__ import annotations

import logging
from typing import Any

import anthropic

from backends import decode_text, encode_base64, schema_prompt
from models import NormalizedPayload

LOGGER = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 16000


class AnthropicBackend:
    """StructuredBackend backed by Claude; documents travel as base64 content blocks."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-opus-4-6",
        temperature: float = 0.1,
        timeout_seconds: float = 120.0,
        max_tokens: int = MAX_OUTPUT_TOKENS,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout_seconds)

    def generate(
        self,
        instructions: str,
        *,
        schema: dict[str, Any],
        payload: NormalizedPayload | None = None,
        filename: str = "",
    ) -> str:
        content: list[dict[str, Any]] = []
        if payload is not None:
            content.append(_payload_block(payload, filename))
        content.append({"type": "text", "text": "Return the JSON now."})

        LOGGER.debug("Calling Claude model=%s file=%s", self.model, filename or "-")
        response = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=schema_prompt(instructions, schema),
            messages=[{"role": "user", "content": content}],
        )
        return "".join(block.text for block in response.content if block.type == "text")


def _payload_block(payload: NormalizedPayload, filename: str) -> dict[str, Any]:
    if payload.media_type.startswith("image/"):
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": payload.media_type, "data": encode_base64(payload)},
        }

    if payload.media_type == "text/plain":
        source = {"type": "text", "media_type": "text/plain", "data": decode_text(payload)}
    else:
        source = {"type": "base64", "media_type": payload.media_type, "data": encode_base64(payload)}
    block: dict[str, Any] = {"type": "document", "source": source}
    if filename:
        block["title"] = filename
    return block
