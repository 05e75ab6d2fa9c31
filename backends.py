"""Structured-output backend contract shared by the extraction and grouping stages."""

from __future__ import annotations

import base64
import json
from json import JSONDecodeError
from typing import Any, Protocol

from config import Settings
from errors import ConfigError
from models import NormalizedPayload


class StructuredBackend(Protocol):
    """An opaque model that answers an instruction with JSON matching a schema."""

    def generate(
        self,
        instructions: str,
        *,
        schema: dict[str, Any],
        payload: NormalizedPayload | None = None,
        filename: str = "",
    ) -> str:
        """Return the raw JSON text of the response (empty when the model returned nothing)."""
        ...


def create_backend(settings: Settings) -> StructuredBackend:
    """Build the client for settings.backend."""
    if settings.backend == "gemini":
        from gemini_client import GeminiBackend  # noqa: PLC0415

        return GeminiBackend(
            api_key=settings.api_key,
            model=settings.model,
            temperature=settings.temperature,
            timeout_seconds=settings.request_timeout_seconds,
        )
    if settings.backend == "openai":
        from llm_client import OpenAIBackend  # noqa: PLC0415

        return OpenAIBackend(
            api_key=settings.api_key,
            model=settings.model,
            temperature=settings.temperature,
            timeout_seconds=settings.request_timeout_seconds,
        )
    if settings.backend == "anthropic":
        from anthropic_client import AnthropicBackend  # noqa: PLC0415

        return AnthropicBackend(
            api_key=settings.api_key,
            model=settings.model,
            temperature=settings.temperature,
            timeout_seconds=settings.request_timeout_seconds,
        )
    raise ConfigError(f"Unknown backend {settings.backend!r}")


def schema_prompt(instructions: str, schema: dict[str, Any]) -> str:
    """System prompt for backends without native response schemas.

    JSON mode only allows a top-level object, so array schemas are requested
    wrapped under ``"items"``; parse_json_response unwraps them again.
    """
    prompt = (
        f"{instructions}\n\n"
        "Respond ONLY with valid JSON following the schema below. No prose, no markdown.\n\n"
        f"Required JSON schema:\n{json.dumps(schema, indent=2)}"
    )
    if schema.get("type") == "ARRAY":
        prompt += '\n\nWrap the array in a JSON object under the key "items".'
    return prompt


def encode_base64(payload: NormalizedPayload) -> str:
    return base64.b64encode(payload.data).decode("ascii")


def data_url(payload: NormalizedPayload) -> str:
    return f"data:{payload.media_type};base64,{encode_base64(payload)}"


def decode_text(payload: NormalizedPayload) -> str:
    return payload.data.decode("utf-8", errors="replace")


def parse_json_response(content: str, expected: type = dict) -> Any:
    """Parse possibly noisy model output into a JSON object or array.

    ``expected`` is ``dict`` or ``list``. Raises RuntimeError when no value of
    that kind can be decoded.
    """
    kind = "object" if expected is dict else "array"
    try:
        parsed = json.loads(content)
    except JSONDecodeError:
        parsed = _extract_first_json_value(content, expected)

    if expected is list and isinstance(parsed, dict):
        parsed = _unwrap_array(parsed)

    if not isinstance(parsed, expected):
        raise RuntimeError(f"Expected JSON {kind} from model response, got {type(parsed).__name__}")
    return parsed


def _unwrap_array(obj: dict[str, Any]) -> Any:
    """Return the single array held by a wrapper object such as {"items": [...]}."""
    arrays = [value for value in obj.values() if isinstance(value, list)]
    if len(arrays) == 1:
        return arrays[0]
    return obj


def _extract_first_json_value(content: str, expected: type) -> Any:
    """Extract the first decodable JSON value of the expected kind from an arbitrary string."""
    openers = "{" if expected is dict else "[{"
    decoder = json.JSONDecoder()
    for index, char in enumerate(content):
        if char not in openers:
            continue
        try:
            candidate, _ = decoder.raw_decode(content[index:])
        except JSONDecodeError:
            continue
        if isinstance(candidate, expected):
            return candidate
        if expected is list and isinstance(candidate, dict):
            unwrapped = _unwrap_array(candidate)
            if isinstance(unwrapped, list):
                return unwrapped
    raise RuntimeError("Could not extract valid JSON from model output")
