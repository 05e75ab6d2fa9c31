"""Run the full analysis over a batch of exam papers.

Stages:
  1. normalize + extract every document concurrently (progress 0-90%)
  2. aggregate exact duplicates across the successful extractions
  3. group paraphrases and write answers in one backend call (92-100%)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, replace
from types import MappingProxyType

from aggregator import aggregate
from backends import StructuredBackend, create_backend
from config import DEFAULT_MAX_WORKERS, load_settings
from errors import AllExtractionsFailedError, NoInputError
from extractor import extract
from grouper import group
from models import (
    AnalysisGroup,
    DocumentState,
    DocumentStatus,
    ExtractionResult,
    RunSummary,
    SourceDocument,
)
from normalizer import normalize

EXTRACTION_PROGRESS_CEILING = 90
GROUPING_PROGRESS = 92
COMPLETE_PROGRESS = 100

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


@dataclass(frozen=True, slots=True)
class ExtractionOutcome:
    """Settled result of one document task: either ``result`` or ``error`` is set."""

    document: SourceDocument
    result: ExtractionResult | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


class StatusTracker:
    """Per-document status and overall progress, safe to update from worker threads."""

    def __init__(self, documents: Sequence[SourceDocument], on_progress: ProgressCallback | None = None) -> None:
        self._lock = threading.Lock()
        self._notify_lock = threading.RLock()
        self._states: dict[str, DocumentState] = {
            doc.doc_id: DocumentState(doc_id=doc.doc_id, filename=doc.filename) for doc in documents
        }
        self._total = len(documents)
        self._settled = 0
        self._progress = 0
        self._on_progress = on_progress

    @property
    def progress(self) -> int:
        with self._lock:
            return self._progress

    def snapshot(self) -> Mapping[str, DocumentState]:
        """Read-only copy of every document's current state."""
        with self._lock:
            return MappingProxyType(dict(self._states))

    def mark_processing(self, doc_id: str) -> None:
        with self._lock:
            self._states[doc_id] = replace(self._states[doc_id], status=DocumentStatus.PROCESSING)

    def mark_completed(self, doc_id: str, result: ExtractionResult) -> None:
        self._settle(
            doc_id,
            status=DocumentStatus.COMPLETED,
            detected_year=result.year,
            question_count=len(result.questions),
        )

    def mark_failed(self, doc_id: str, error: Exception) -> None:
        self._settle(doc_id, status=DocumentStatus.ERROR, error=str(error))

    def advance(self, percent: int, message: str) -> None:
        """Move progress forward; lower values are ignored."""
        with self._notify_lock:
            with self._lock:
                changed = self._raise_progress(percent)
            if changed:
                self._notify(percent, message)

    def _settle(self, doc_id: str, **changes: object) -> None:
        # Listeners see percents in the order they were set.
        with self._notify_lock:
            with self._lock:
                self._states[doc_id] = replace(self._states[doc_id], **changes)
                self._settled += 1
                percent = min(
                    EXTRACTION_PROGRESS_CEILING,
                    round(self._settled / self._total * EXTRACTION_PROGRESS_CEILING),
                )
                changed = self._raise_progress(percent)
                settled, total = self._settled, self._total
            if changed:
                self._notify(percent, f"Extracted {settled}/{total} papers")

    def _raise_progress(self, percent: int) -> bool:
        if percent <= self._progress:
            return False
        self._progress = percent
        return True

    def _notify(self, percent: int, message: str) -> None:
        if self._on_progress is None:
            return
        try:
            self._on_progress(percent, message)
        except Exception:
            LOGGER.exception("Progress callback failed at %s%%", percent)


def run(
    documents: Sequence[SourceDocument],
    backend: StructuredBackend | None = None,
    *,
    max_workers: int | None = None,
    on_progress: ProgressCallback | None = None,
    tracker: StatusTracker | None = None,
) -> tuple[list[AnalysisGroup], RunSummary]:
    """Extract, aggregate and group questions from a batch of papers.

    Per-document failures are logged and skipped. Raises NoInputError,
    ConfigError, AllExtractionsFailedError or AnalysisFailure for run-level
    failures.
    """
    if not documents:
        raise NoInputError("Please upload at least one paper.")

    if backend is None:
        settings = load_settings()
        backend = create_backend(settings)
        max_workers = max_workers or settings.max_workers

    tracker = tracker or StatusTracker(documents, on_progress=on_progress)
    workers = max(1, min(max_workers or DEFAULT_MAX_WORKERS, len(documents)))
    LOGGER.info("Extracting from %s papers concurrently (workers=%s)", len(documents), workers)

    outcomes = extract_all(documents, backend, tracker=tracker, max_workers=workers)
    successful = [o.result for o in outcomes if o.succeeded]
    failed = len(outcomes) - len(successful)
    LOGGER.info("Extraction finished: succeeded=%s failed=%s", len(successful), failed)

    if not successful:
        LOGGER.error("Run aborted at extraction stage: all %s documents failed", len(documents))
        raise AllExtractionsFailedError("No questions could be extracted. Please check your files.")

    total_questions = sum(len(r.questions) for r in successful)

    tracker.advance(GROUPING_PROGRESS, "Analyzing patterns, merging duplicates, and solving questions...")
    aggregated = aggregate(successful)
    LOGGER.info("Aggregated %s extracted questions into %s distinct entries", total_questions, len(aggregated))

    try:
        groups = group(aggregated, backend)
    except Exception:
        LOGGER.exception("Run aborted at grouping stage")
        raise

    tracker.advance(COMPLETE_PROGRESS, "Analysis complete")
    summary = RunSummary(
        total_papers=len(documents),
        total_questions_extracted=total_questions,
        total_repeated_groups=len(groups),
    )
    LOGGER.info(
        "Run complete. papers=%s questions=%s groups=%s",
        summary.total_papers,
        summary.total_questions_extracted,
        summary.total_repeated_groups,
    )
    return groups, summary


def extract_all(
    documents: Sequence[SourceDocument],
    backend: StructuredBackend,
    *,
    tracker: StatusTracker,
    max_workers: int,
) -> list[ExtractionOutcome]:
    """Run normalize + extract for every document and wait for all of them to settle.

    Outcomes are returned in the order their tasks settled.
    """
    outcomes: list[ExtractionOutcome] = []
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="extract") as executor:
        futures = [executor.submit(_process_document, doc, backend, tracker) for doc in documents]
        for future in as_completed(futures):
            outcomes.append(future.result())
    return outcomes


def _process_document(
    doc: SourceDocument,
    backend: StructuredBackend,
    tracker: StatusTracker,
) -> ExtractionOutcome:
    tracker.mark_processing(doc.doc_id)
    try:
        payload = normalize(doc)
        result = extract(payload, doc.filename, backend)
    except Exception as exc:
        LOGGER.exception("Error processing %s: %s", doc.filename, exc)
        tracker.mark_failed(doc.doc_id, exc)
        return ExtractionOutcome(document=doc, error=exc)

    tracker.mark_completed(doc.doc_id, result)
    return ExtractionOutcome(document=doc, result=result)
