"""CLI entrypoint for the repeated exam question analyzer."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from dotenv import load_dotenv

from backends import create_backend
from config import load_settings
from documents import load_documents
from errors import ExamAnalyzerError
from models import AnalysisGroup, RunSummary
from pipeline import run


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(
        description="Find repeated questions across previous year papers and generate model answers",
    )
    parser.add_argument("papers", nargs="+", help="Exam papers to analyze (PDF, PNG, JPEG or TXT)")
    parser.add_argument(
        "--backend",
        choices=["gemini", "openai", "anthropic"],
        default=None,
        help="Model backend (defaults to EXAM_BACKEND, then gemini)",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Number of papers extracted concurrently (defaults to MAX_WORKERS)",
    )
    return parser.parse_args(argv)


def render_result(groups: list[AnalysisGroup], summary: RunSummary) -> str:
    return json.dumps(
        {"summary": summary.to_dict(), "groups": [g.to_dict() for g in groups]},
        indent=2,
        ensure_ascii=False,
    )


def _log_progress(percent: int, message: str) -> None:
    logging.info("[%3d%%] %s", percent, message)


def main(argv: list[str] | None = None) -> int:
    """Load config, analyze the given papers and print the result as JSON."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    args = parse_args(argv)

    try:
        settings = load_settings(backend=args.backend)
        documents = load_documents(
            args.papers,
            max_documents=settings.max_documents,
            max_file_size_mb=settings.max_file_size_mb,
        )
        groups, summary = run(
            documents,
            create_backend(settings),
            max_workers=args.max_workers or settings.max_workers,
            on_progress=_log_progress,
        )
    except (ExamAnalyzerError, OSError) as exc:
        logging.error("%s", exc)
        return 1

    print(render_result(groups, summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
