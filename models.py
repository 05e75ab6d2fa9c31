"""Shared typed models for the question analysis pipeline."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

UNKNOWN_YEAR = "Unknown"


def _new_doc_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True, slots=True)
class SourceDocument:
    """One uploaded exam paper, exactly as received."""

    filename: str
    media_type: str
    data: bytes = field(repr=False)
    doc_id: str = field(default_factory=_new_doc_id)


@dataclass(frozen=True, slots=True)
class NormalizedPayload:
    """Transport form of a document handed to an extraction backend."""

    data: bytes = field(repr=False)
    media_type: str


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Distinct questions and detected year for a single document."""

    questions: list[str]
    year: str
    source_file: str


@dataclass(slots=True)
class AggregatedQuestion:
    """Exact-match bucket built across documents.

    ``years`` holds one entry per occurrence, so it may contain repeats.
    """

    normalized_key: str
    text: str
    years: list[str] = field(default_factory=list)


class QuestionType(str, Enum):
    LONG = "Long Question"
    SHORT = "Short Question"
    VERY_SHORT = "Very Short Question"
    MCQ = "MCQ"

    @classmethod
    def parse(cls, value: Any) -> QuestionType:
        """Accept the wire value or its short form, ignoring case and spacing."""
        if not isinstance(value, str):
            raise ValueError(f"Question type must be a string, got {type(value).__name__}")
        compact = "".join(value.split()).lower()
        for member in cls:
            wire = "".join(member.value.split()).lower()
            if compact in (wire, wire.removesuffix("question")):
                return member
        raise ValueError(f"Unknown question type: {value!r}")


@dataclass(frozen=True, slots=True)
class AnalysisGroup:
    """One semantic group of paraphrased questions with its model answer."""

    id: str
    normalized_question: str
    type: QuestionType
    years: list[str]
    frequency: int
    variants: list[str]
    answer: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "normalizedQuestion": self.normalized_question,
            "type": self.type.value,
            "years": list(self.years),
            "frequency": self.frequency,
            "variants": list(self.variants),
            "answer": self.answer,
        }


@dataclass(frozen=True, slots=True)
class RunSummary:
    total_papers: int
    total_questions_extracted: int
    total_repeated_groups: int

    def to_dict(self) -> dict[str, int]:
        return {
            "totalPapers": self.total_papers,
            "totalQuestionsExtracted": self.total_questions_extracted,
            "totalRepeatedGroups": self.total_repeated_groups,
        }


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class DocumentState:
    """Read-only view of one document's progress through extraction."""

    doc_id: str
    filename: str
    status: DocumentStatus = DocumentStatus.PENDING
    detected_year: str | None = None
    question_count: int | None = None
    error: str | None = None
