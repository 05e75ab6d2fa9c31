"""Error taxonomy for the question analysis pipeline.

Per-document failures (``ExtractionFailure``) are recovered by the orchestrator.
Every other error aborts the run and carries a message fit to show the user.
"""

from __future__ import annotations


class ExamAnalyzerError(RuntimeError):
    """Base class for all pipeline errors."""


class ConfigError(ExamAnalyzerError):
    """A required setting, usually the API key, is missing or invalid."""


class NoInputError(ExamAnalyzerError):
    """The run was started without any documents."""


class DocumentRejected(ExamAnalyzerError, ValueError):
    """An input file has an unsupported type or exceeds an upload limit."""


class ExtractionFailure(ExamAnalyzerError):
    """Extraction failed for a single document."""

    def __init__(self, source_file: str, reason: str) -> None:
        super().__init__(f"Extraction failed for {source_file}: {reason}")
        self.source_file = source_file
        self.reason = reason


class AllExtractionsFailedError(ExamAnalyzerError):
    """No document produced a usable extraction."""


class AnalysisFailure(ExamAnalyzerError):
    """The semantic grouping request failed or returned an invalid payload."""
