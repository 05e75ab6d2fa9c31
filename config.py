"""Environment-driven settings for the analyzer."""

from __future__ import annotations

import os
from dataclasses import dataclass

from errors import ConfigError

SUPPORTED_BACKENDS: tuple[str, ...] = ("gemini", "openai", "anthropic")

_API_KEY_VARS = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

_MODEL_DEFAULTS = {
    "gemini": ("GEMINI_MODEL", "gemini-2.5-flash"),
    "openai": ("OPENAI_MODEL", "gpt-5.2"),
    "anthropic": ("CLAUDE_MODEL", "claude-opus-4-6"),
}

DEFAULT_BACKEND = "gemini"
DEFAULT_TEMPERATURE = 0.1
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_WORKERS = 8
# Soft upload limits that keep a single run's memory bounded.
DEFAULT_MAX_DOCUMENTS = 20
DEFAULT_MAX_FILE_SIZE_MB = 15


@dataclass(frozen=True, slots=True)
class Settings:
    backend: str
    api_key: str
    model: str
    temperature: float = DEFAULT_TEMPERATURE
    request_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS
    max_documents: int = DEFAULT_MAX_DOCUMENTS
    max_file_size_mb: int = DEFAULT_MAX_FILE_SIZE_MB


def load_settings(backend: str | None = None) -> Settings:
    """Read settings from the process environment.

    Raises ConfigError when the backend is unknown or its API key is missing,
    before any document is touched.
    """
    name = (backend or os.getenv("EXAM_BACKEND") or DEFAULT_BACKEND).strip().lower()
    if name not in SUPPORTED_BACKENDS:
        raise ConfigError(
            f"Unknown backend {name!r}; expected one of {', '.join(SUPPORTED_BACKENDS)}"
        )

    key_var = _API_KEY_VARS[name]
    api_key = os.getenv(key_var) or os.getenv("API_KEY")
    if not api_key:
        raise ConfigError(f"API Key is missing. Set {key_var} (or API_KEY) in the environment.")

    model_var, model_default = _MODEL_DEFAULTS[name]
    return Settings(
        backend=name,
        api_key=api_key,
        model=os.getenv(model_var, model_default),
        temperature=_env_float("LLM_TEMPERATURE", DEFAULT_TEMPERATURE),
        request_timeout_seconds=_env_float("REQUEST_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        max_workers=_env_int("MAX_WORKERS", DEFAULT_MAX_WORKERS),
        max_documents=_env_int("MAX_DOCUMENTS", DEFAULT_MAX_DOCUMENTS),
        max_file_size_mb=_env_int("MAX_FILE_SIZE_MB", DEFAULT_MAX_FILE_SIZE_MB),
    )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ConfigError(f"{name} must be at least 1, got {value}")
    return value
