"""Exact-match merging of extracted questions across documents (no LLM calls)."""

from __future__ import annotations

from collections.abc import Iterable

from models import UNKNOWN_YEAR, AggregatedQuestion, ExtractionResult

# Shorter fragments are OCR noise, not questions.
MIN_QUESTION_LENGTH = 3

_TRAILING_PUNCTUATION = "?.!:;"


def normalization_key(text: str) -> str:
    """Case-folded, whitespace-collapsed form used to match identical questions.

    Trailing sentence punctuation is dropped so "Define X" and "Define X?" match.
    """
    key = " ".join(text.split()).casefold()
    return key.rstrip(_TRAILING_PUNCTUATION).rstrip()


def dedupe_questions(questions: Iterable[str]) -> list[str]:
    """Drop exact repeats (by normalization_key), keeping first-seen order and wording."""
    seen: set[str] = set()
    unique: list[str] = []
    for question in questions:
        text = question.strip()
        key = normalization_key(text)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(text)
    return unique


def aggregate(results: Iterable[ExtractionResult]) -> list[AggregatedQuestion]:
    """Merge per-document questions into exact-match buckets.

    Each bucket keeps the first-seen wording and one year entry per document
    occurrence. Output follows first-occurrence order.
    """
    buckets: dict[str, AggregatedQuestion] = {}

    for result in results:
        year = result.year or UNKNOWN_YEAR
        for question in result.questions:
            if not isinstance(question, str):
                continue
            text = question.strip()
            if len(text) < MIN_QUESTION_LENGTH:
                continue

            key = normalization_key(text)
            if not key:
                continue
            entry = buckets.get(key)
            if entry is None:
                buckets[key] = AggregatedQuestion(normalized_key=key, text=text, years=[year])
            else:
                entry.years.append(year)

    return list(buckets.values())


def occurrence_count(aggregated: Iterable[AggregatedQuestion]) -> int:
    """Total number of question occurrences represented by the buckets."""
    return sum(len(entry.years) for entry in aggregated)
