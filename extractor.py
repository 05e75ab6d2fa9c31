"""Per-document question extraction through a structured-output backend."""

from __future__ import annotations

import logging
from typing import Any

from aggregator import dedupe_questions
from backends import StructuredBackend, parse_json_response
from errors import ExtractionFailure
from models import UNKNOWN_YEAR, ExtractionResult, NormalizedPayload

MAX_ATTEMPTS = 2

LOGGER = logging.getLogger(__name__)

EXTRACTION_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "year": {
            "type": "STRING",
            "description": "The year of the exam paper found in the text/header. If not found, use 'Unknown'.",
        },
        "questions": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": (
                "List of all exam questions extracted from the document. "
                "Exclude instructions, headers, and footers."
            ),
        },
    },
    "required": ["year", "questions"],
}

EXTRACTION_INSTRUCTIONS = """Extract every exam question from this document.

STRICT NORMALIZATION RULES:
1. Remove all numbering and labels (e.g., '1.', 'Q1.', '(a)', '2)').
2. Correct any OCR spelling mistakes automatically.
3. If a question is broken across multiple lines, merge it into a single coherent sentence.
4. Keep the COMPLETE, exact meaning of the question.
5. Do NOT shorten or summarize the question.
6. Detect the Year of the exam. If no year is visible, use 'Unknown'."""


def extract(payload: NormalizedPayload, filename: str, backend: StructuredBackend) -> ExtractionResult:
    """Extract the distinct questions and exam year from one document.

    Raises ExtractionFailure after MAX_ATTEMPTS failed backend calls or
    schema validations; other documents are unaffected.
    """
    LOGGER.info("Extracting questions from %s (%s)", filename, payload.media_type)
    last_error: Exception | None = None

    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            content = backend.generate(
                EXTRACTION_INSTRUCTIONS,
                schema=EXTRACTION_SCHEMA,
                payload=payload,
                filename=filename,
            )
            if not content:
                raise RuntimeError("No response from extraction backend")
            result = parse_extraction(content, filename)
            LOGGER.info(
                "Extracted %s questions from %s (year=%s)",
                len(result.questions),
                filename,
                result.year,
            )
            return result
        except Exception as exc:
            last_error = exc
            LOGGER.warning(
                "Extraction failed for %s on attempt %s/%s: %s",
                filename,
                attempt,
                MAX_ATTEMPTS,
                exc,
            )

    raise ExtractionFailure(filename, str(last_error)) from last_error


def parse_extraction(content: str, filename: str) -> ExtractionResult:
    """Validate a raw extraction response and de-duplicate its questions."""
    data = parse_json_response(content, expected=dict)

    questions = data.get("questions")
    if not isinstance(questions, list) or not all(isinstance(q, str) for q in questions):
        raise RuntimeError("Extraction response 'questions' must be a list of strings")

    return ExtractionResult(
        questions=dedupe_questions(questions),
        year=_coerce_year(data.get("year")),
        source_file=filename,
    )


def _coerce_year(value: Any) -> str:
    if isinstance(value, bool):
        raise RuntimeError("Extraction response 'year' must be a string")
    if isinstance(value, int):
        return str(value)
    if value is None:
        return UNKNOWN_YEAR
    if not isinstance(value, str):
        raise RuntimeError("Extraction response 'year' must be a string")
    return value.strip() or UNKNOWN_YEAR
