"""Tests for the CLI entrypoint (main.main)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import main
from errors import AllExtractionsFailedError
from models import AnalysisGroup, QuestionType, RunSummary

_GROUP = AnalysisGroup(
    id="g1",
    normalized_question="Define photosynthesis.",
    type=QuestionType.SHORT,
    years=["2021", "2022"],
    frequency=2,
    variants=["Define photosynthesis", "What do you mean by photosynthesis?"],
    answer="Photosynthesis is...",
)
_SUMMARY = RunSummary(total_papers=2, total_questions_extracted=7, total_repeated_groups=1)


@pytest.fixture
def papers(tmp_path: Path) -> list[str]:
    paths = []
    for name in ("2021.txt", "2022.txt"):
        path = tmp_path / name
        path.write_text("1. Define photosynthesis.")
        paths.append(str(path))
    return paths


def test_main_prints_summary_and_groups(papers: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    with patch.dict("os.environ", {"GEMINI_API_KEY": "k"}, clear=True), \
         patch("main.load_dotenv"), \
         patch("main.create_backend", return_value=MagicMock()), \
         patch("main.run", return_value=([_GROUP], _SUMMARY)) as mock_run:
        exit_code = main.main(papers)

    assert exit_code == 0
    documents = mock_run.call_args.args[0]
    assert [d.filename for d in documents] == ["2021.txt", "2022.txt"]

    output = json.loads(capsys.readouterr().out)
    assert output["summary"] == {"totalPapers": 2, "totalQuestionsExtracted": 7, "totalRepeatedGroups": 1}
    assert output["groups"][0]["normalizedQuestion"] == "Define photosynthesis."
    assert output["groups"][0]["type"] == "Short Question"


def test_main_returns_error_code_without_api_key(papers: list[str]) -> None:
    with patch.dict("os.environ", {}, clear=True), \
         patch("main.load_dotenv"), \
         patch("main.run") as mock_run:
        exit_code = main.main(papers)

    assert exit_code == 1
    mock_run.assert_not_called()


def test_main_returns_error_code_on_run_failure(papers: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    with patch.dict("os.environ", {"OPENAI_API_KEY": "k"}, clear=True), \
         patch("main.load_dotenv"), \
         patch("main.create_backend", return_value=MagicMock()), \
         patch("main.run", side_effect=AllExtractionsFailedError("No questions could be extracted.")):
        exit_code = main.main([*papers, "--backend", "openai"])

    assert exit_code == 1
    assert capsys.readouterr().out == ""
