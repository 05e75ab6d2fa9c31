from __future__ import annotations

import json
from typing import Any

import pytest

import grouper
from aggregator import aggregate
from errors import AnalysisFailure
from grouper import ANALYSIS_SCHEMA, group, parse_analysis
from models import AggregatedQuestion, ExtractionResult, QuestionType


class _StubBackend:
    def __init__(self, *responses: str | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def generate(self, instructions: str, *, schema: dict[str, Any], payload=None, filename: str = "") -> str:
        self.calls.append({"instructions": instructions, "schema": schema, "payload": payload})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _group(group_id: str, count: int, years: list[str] | None = None, **overrides: Any) -> dict[str, Any]:
    data = {
        "id": group_id,
        "normalizedQuestion": f"Question {group_id}",
        "type": "Short Question",
        "years": years if years is not None else ["2020"] * count,
        "frequency": count,
        "variants": [f"Question {group_id}", f"What is question {group_id}?"],
        "answer": f"Answer {group_id}",
    }
    data.update(overrides)
    return data


_AGGREGATED = [
    AggregatedQuestion(normalized_key="define photosynthesis", text="Define Photosynthesis", years=["2020", "2021"]),
    AggregatedQuestion(
        normalized_key="what do you mean by photosynthesis",
        text="What do you mean by Photosynthesis?",
        years=["2022"],
    ),
]


def test_group_sends_aggregated_questions_in_one_request() -> None:
    backend = _StubBackend(json.dumps([_group("g1", 3, ["2020", "2021", "2022"])]))

    groups = group(_AGGREGATED, backend)

    assert len(backend.calls) == 1
    call = backend.calls[0]
    assert call["schema"] is ANALYSIS_SCHEMA
    assert call["payload"] is None
    assert '"question": "Define Photosynthesis"' in call["instructions"]
    assert '"years": ["2020", "2021"]' in call["instructions"]
    assert groups[0].frequency == 3


def test_group_output_sorted_by_frequency_for_scrambled_input() -> None:
    response = json.dumps([_group("a", 1), _group("b", 5), _group("c", 3)])

    groups = parse_analysis(response)

    assert [g.frequency for g in groups] == [5, 3, 1]
    assert [g.id for g in groups] == ["b", "c", "a"]


def test_group_frequency_follows_occurrence_years() -> None:
    response = json.dumps([_group("a", 2, ["2020", "2020", "2021"])])

    groups = parse_analysis(response)

    assert groups[0].frequency == 3
    assert groups[0].years == ["2020", "2020", "2021"]


def test_group_frequency_survives_identity_reaggregation() -> None:
    groups = parse_analysis(json.dumps([_group("a", 4, ["2019", "2020", "2020", "2022"])]))
    g = groups[0]

    reaggregated = aggregate(
        [ExtractionResult(questions=[g.normalized_question], year=year, source_file="group") for year in g.years]
    )

    assert len(reaggregated) == 1
    assert len(reaggregated[0].years) == g.frequency


def test_group_variants_are_distinct_and_bounded() -> None:
    many = ["V1", "V2", "V2", " V3 ", "V4", "V5"]
    groups = parse_analysis(json.dumps([_group("a", 2, variants=many)]))

    variants = groups[0].variants
    assert variants == ["V1", "V2", "V3", "V4"]
    assert 2 <= len(variants) <= 4
    assert len(set(variants)) == len(variants)


def test_group_pads_single_variant_with_normalized_question() -> None:
    groups = parse_analysis(json.dumps([_group("a", 1, variants=["What is X?"], normalizedQuestion="Define X.")]))

    assert groups[0].variants == ["What is X?", "Define X."]


def test_group_rejects_too_few_distinct_variants() -> None:
    response = json.dumps([_group("a", 1, variants=["Define X."], normalizedQuestion="Define X.")])

    with pytest.raises(RuntimeError, match="variants"):
        parse_analysis(response)


@pytest.mark.parametrize("value,expected", [
    ("Long Question", QuestionType.LONG),
    ("Very Short Question", QuestionType.VERY_SHORT),
    ("VeryShort", QuestionType.VERY_SHORT),
    ("short", QuestionType.SHORT),
    ("mcq", QuestionType.MCQ),
])
def test_group_question_type_parsing(value: str, expected: QuestionType) -> None:
    groups = parse_analysis(json.dumps([_group("a", 1, type=value)]))
    assert groups[0].type is expected


def test_group_accepts_wrapped_array_and_integer_id() -> None:
    response = json.dumps({"items": [_group("a", 1, id=7)]})

    groups = parse_analysis(response)

    assert groups[0].id == "7"


@pytest.mark.parametrize("overrides", [
    {"type": "Essay"},
    {"frequency": "three"},
    {"frequency": 0},
    {"years": "2020"},
    {"years": []},
    {"variants": "one"},
    {"normalizedQuestion": ""},
    {"answer": None},
])
def test_parse_analysis_rejects_schema_violations(overrides: dict[str, Any]) -> None:
    with pytest.raises(RuntimeError):
        parse_analysis(json.dumps([_group("a", 1, **overrides)]))


def test_parse_analysis_rejects_missing_keys() -> None:
    item = _group("a", 1)
    del item["answer"]

    with pytest.raises(RuntimeError, match="answer"):
        parse_analysis(json.dumps([item]))


def test_group_raises_analysis_failure_on_malformed_response() -> None:
    backend = _StubBackend(*["[{not json"] * grouper.MAX_ATTEMPTS)

    with pytest.raises(AnalysisFailure):
        group(_AGGREGATED, backend)

    assert len(backend.calls) == grouper.MAX_ATTEMPTS


def test_group_raises_analysis_failure_on_empty_response() -> None:
    backend = _StubBackend("", "")

    with pytest.raises(AnalysisFailure, match="No analysis response"):
        group(_AGGREGATED, backend)


def test_group_retries_after_backend_error() -> None:
    backend = _StubBackend(TimeoutError("slow"), json.dumps([_group("a", 3)]))

    groups = group(_AGGREGATED, backend)

    assert len(backend.calls) == 2
    assert groups[0].id == "a"


def test_group_with_no_questions_skips_backend() -> None:
    backend = _StubBackend()

    assert group([], backend) == []
    assert backend.calls == []


def test_analysis_group_to_dict_uses_wire_names() -> None:
    g = parse_analysis(json.dumps([_group("a", 1)]))[0]

    data = g.to_dict()

    assert data["normalizedQuestion"] == "Question a"
    assert data["type"] == "Short Question"
    assert data["frequency"] == 1
