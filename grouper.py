"""Semantic grouping of aggregated questions with model answers.

Paraphrase clustering and answer writing are delegated to the analysis
backend in one request; this module owns the request and enforces the
response contract: schema, frequency counts and descending order.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from aggregator import occurrence_count
from backends import StructuredBackend, parse_json_response
from errors import AnalysisFailure
from models import AggregatedQuestion, AnalysisGroup, QuestionType

MAX_ATTEMPTS = 2
MIN_VARIANTS = 2
MAX_VARIANTS = 4

LOGGER = logging.getLogger(__name__)

ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "id": {"type": "STRING"},
            "normalizedQuestion": {
                "type": "STRING",
                "description": "The cleanest, most complete version of the question.",
            },
            "type": {"type": "STRING", "enum": [member.value for member in QuestionType]},
            "years": {
                "type": "ARRAY",
                "items": {"type": "STRING"},
                "description": "Combined list of years from all merged variants, one entry per occurrence.",
            },
            "frequency": {"type": "NUMBER", "description": "Total count of appearances across all years."},
            "variants": {
                "type": "ARRAY",
                "items": {"type": "STRING"},
                "description": "2 to 4 distinct example variants.",
            },
            "answer": {"type": "STRING", "description": "A detailed, exam-quality model answer."},
        },
        "required": ["id", "normalizedQuestion", "type", "years", "frequency", "variants", "answer"],
    },
}

ANALYSIS_INSTRUCTIONS = """You are an expert Exam Question Analyzer.

INPUT DATA:
Identical text strings are already pre-grouped. The input is a JSON list of objects: { "question": "...", "years": [...] }.
Each entry in "years" is one appearance of that question, so a year may repeat.

YOUR TASK:
1. Semantic Grouping: merge questions that have the SAME MEANING but different wording
   (e.g., "Define Photosynthesis" == "What do you mean by Photosynthesis?").
2. Aggregation: for each semantic group, concatenate the "years" lists of its members WITHOUT removing repeats,
   and set "frequency" to the total number of appearances (the length of the combined years list).
3. Analysis:
   - Create a 'normalizedQuestion' (best version).
   - Determine 'type'.
   - Select 2-4 distinct 'variants' from the inputs.
   - Generate a HIGH QUALITY, DETAILED ACADEMIC ANSWER.
4. Output: return a JSON array sorted by frequency (descending)."""


def build_analysis_input(aggregated: list[AggregatedQuestion]) -> list[dict[str, Any]]:
    return [{"question": entry.text, "years": list(entry.years)} for entry in aggregated]


def group(aggregated: list[AggregatedQuestion], backend: StructuredBackend) -> list[AnalysisGroup]:
    """Cluster paraphrases into frequency-ranked groups with answers.

    Raises AnalysisFailure when the backend fails or its response does not
    match ANALYSIS_SCHEMA after MAX_ATTEMPTS tries.
    """
    if not aggregated:
        LOGGER.info("No questions to group; skipping analysis request")
        return []

    instructions = (
        f"{ANALYSIS_INSTRUCTIONS}\n\nINPUT JSON:\n"
        f"{json.dumps(build_analysis_input(aggregated), ensure_ascii=False)}"
    )
    LOGGER.info("Grouping %s distinct questions", len(aggregated))
    last_error: Exception | None = None

    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            content = backend.generate(instructions, schema=ANALYSIS_SCHEMA)
            if not content:
                raise RuntimeError("No analysis response from backend")
            groups = parse_analysis(content)
            break
        except Exception as exc:
            last_error = exc
            LOGGER.warning("Analysis failed on attempt %s/%s: %s", attempt, MAX_ATTEMPTS, exc)
    else:
        raise AnalysisFailure(f"Failed to parse analysis results: {last_error}") from last_error

    expected = occurrence_count(aggregated)
    grouped = sum(g.frequency for g in groups)
    if grouped != expected:
        LOGGER.warning("Groups cover %s occurrences but %s were submitted", grouped, expected)

    LOGGER.info("Analysis produced %s groups", len(groups))
    return groups


def parse_analysis(content: str) -> list[AnalysisGroup]:
    """Validate a raw analysis response and return groups sorted by frequency."""
    items = parse_json_response(content, expected=list)
    groups = [_parse_group(item, index) for index, item in enumerate(items)]
    groups.sort(key=lambda g: g.frequency, reverse=True)
    return groups


def _parse_group(item: Any, index: int) -> AnalysisGroup:
    if not isinstance(item, dict):
        raise RuntimeError(f"Group {index} is not a JSON object")

    missing = set(ANALYSIS_SCHEMA["items"]["required"]) - item.keys()
    if missing:
        raise RuntimeError(f"Group {index} missing required keys: {sorted(missing)}")

    group_id = item["id"]
    if isinstance(group_id, int) and not isinstance(group_id, bool):
        group_id = str(group_id)
    normalized = item["normalizedQuestion"]
    answer = item["answer"]
    years = item["years"]
    frequency = item["frequency"]

    if not isinstance(group_id, str) or not group_id:
        raise RuntimeError(f"Group {index} has an invalid id")
    if not isinstance(normalized, str) or not normalized.strip():
        raise RuntimeError(f"Group {index} has an empty normalizedQuestion")
    if not isinstance(answer, str):
        raise RuntimeError(f"Group {index} answer must be a string")
    if not _is_string_list(years) or not years:
        raise RuntimeError(f"Group {index} years must be a non-empty list of strings")
    if isinstance(frequency, bool) or not isinstance(frequency, (int, float)) or frequency != int(frequency):
        raise RuntimeError(f"Group {index} frequency must be an integer")
    if frequency < 1:
        raise RuntimeError(f"Group {index} frequency must be positive")

    try:
        question_type = QuestionType.parse(item["type"])
    except ValueError as exc:
        raise RuntimeError(f"Group {index}: {exc}") from exc

    normalized = normalized.strip()
    # years carries one entry per occurrence, so its length is the true count.
    if int(frequency) != len(years):
        LOGGER.warning(
            "Group %s reported frequency=%s for %s occurrences; using %s",
            group_id,
            frequency,
            len(years),
            len(years),
        )

    return AnalysisGroup(
        id=group_id,
        normalized_question=normalized,
        type=question_type,
        years=list(years),
        frequency=len(years),
        variants=_select_variants(item["variants"], normalized, index),
        answer=answer.strip(),
    )


def _select_variants(variants: Any, normalized: str, index: int) -> list[str]:
    if not _is_string_list(variants):
        raise RuntimeError(f"Group {index} variants must be a list of strings")

    selected: list[str] = []
    for variant in variants:
        text = variant.strip()
        if text and text not in selected:
            selected.append(text)
    selected = selected[:MAX_VARIANTS]

    if len(selected) < MIN_VARIANTS and normalized not in selected:
        selected.append(normalized)
    if len(selected) < MIN_VARIANTS:
        raise RuntimeError(f"Group {index} needs at least {MIN_VARIANTS} distinct variants")
    return selected


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)
