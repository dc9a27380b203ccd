"""Tests for turning semgrep JSON into normalized records."""

from __future__ import annotations

import json

import pytest

from semgrep_diagnostics.models.finding import ScanRecord
from semgrep_diagnostics.models.semgrep_report import SemgrepPosition
from semgrep_diagnostics.services.parser import parse_semgrep_output, to_editor_position


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "   \n",
        "not json at all",
        '{"results": [',
        "[]",
        "42",
        '"results"',
        '{"errors": []}',
        '{"results": {"not": "a list"}}',
        b"\xff\xfe\x00garbage",
    ],
)
def test_malformed_output_is_reported_not_raised(raw: str | bytes | None) -> None:
    """Any malformed document yields a failure value."""

    report = parse_semgrep_output(raw)

    assert not report.ok
    assert report.error
    assert report.issues == []


def test_sample_output_keeps_complete_records(semgrep_output: str) -> None:
    """Records with severity and message survive, others are dropped silently."""

    report = parse_semgrep_output(semgrep_output)

    assert report.ok
    assert [r.rule_id for r in report.issues] == [
        "python.lang.security.audit.eval-detected.eval-detected",
        "python.lang.security.dangerous-subprocess-use.dangerous-subprocess-use",
        "python.lang.best-practice.open-never-closed.open-never-closed",
    ]
    assert report.dropped == 2
    assert report.tool_errors == ["Syntax error at line app/handlers.py:55"]


def test_coordinates_are_zero_indexed(semgrep_output: str) -> None:
    """Lines and columns shift down by one, end column stays exclusive."""

    first: ScanRecord = parse_semgrep_output(semgrep_output).issues[0]

    assert (first.start_line, first.start_col) == (11, 4)
    assert (first.end_line, first.end_col) == (11, 20)
    assert first.severity_label == "WARNING"
    assert first.rule_source == "app/handlers.py"


def test_metadata_is_normalized(semgrep_output: str) -> None:
    """String and list metadata both become tuples of tags."""

    eval_record, subprocess_record, open_record = parse_semgrep_output(semgrep_output).issues

    assert eval_record.metadata.category == "security"
    assert eval_record.metadata.technology == ("python",)
    assert eval_record.metadata.confidence == "LOW"
    assert eval_record.metadata.references == ("https://owasp.org/Top10/A03_2021-Injection",)
    assert subprocess_record.metadata.technology == ("python",)
    assert subprocess_record.metadata.references == ()
    assert open_record.metadata.confidence is None


@pytest.mark.parametrize(
    "entry",
    [
        {"start": {"line": 1, "col": 1}, "end": {"line": 1, "col": 2}, "extra": {}},
        {"start": {"line": 1, "col": 1}, "end": {"line": 1, "col": 2}},
        {"extra": {"severity": "ERROR", "message": "no range"}},
        {"start": {"line": "x"}, "end": {}, "extra": {"severity": "ERROR", "message": "m"}},
        "not an object",
        None,
    ],
)
def test_incomplete_records_are_dropped(entry: object) -> None:
    """Entries that cannot become a diagnostic never fail the whole report."""

    report = parse_semgrep_output(json.dumps({"results": [entry]}))

    assert report.ok
    assert report.issues == []
    assert report.dropped == 1


def test_record_without_rule_id_is_kept() -> None:
    """Rule id and path are optional."""

    payload = {
        "results": [
            {
                "start": {"line": 3, "col": 2},
                "end": {"line": 3, "col": 9},
                "extra": {"severity": "INFO", "message": "hello"},
            }
        ]
    }

    record = parse_semgrep_output(json.dumps(payload)).issues[0]

    assert record.rule_id is None
    assert record.rule_source is None
    assert record.message == "hello"


def test_empty_results_is_success() -> None:
    report = parse_semgrep_output('{"results": [], "errors": []}')

    assert report.ok
    assert report.issues == []


def test_to_editor_position_subtracts_one() -> None:
    assert to_editor_position(SemgrepPosition(line=1, col=1)) == (0, 0)
    assert to_editor_position(SemgrepPosition(line=10, col=7)) == (9, 6)


@pytest.mark.parametrize(
    "metadata",
    [
        {"confidence": 3},
        {"technology": ["python", None]},
        {"category": ["security"]},
        {"references": [{"url": "https://example.com"}]},
        [],
        "security",
    ],
)
def test_malformed_metadata_keeps_record(metadata: object) -> None:
    """Only severity and message are required; bad metadata is ignored."""

    payload = {
        "results": [
            {
                "check_id": "rule.bad-metadata",
                "start": {"line": 2, "col": 1},
                "end": {"line": 2, "col": 4},
                "extra": {"severity": "ERROR", "message": "bad", "metadata": metadata},
            }
        ]
    }

    report = parse_semgrep_output(json.dumps(payload))

    assert report.dropped == 0
    (record,) = report.issues
    assert record.rule_id == "rule.bad-metadata"
    assert record.message == "bad"


def test_valid_metadata_fields_survive_malformed_siblings() -> None:
    payload = {
        "results": [
            {
                "start": {"line": 1, "col": 1},
                "end": {"line": 1, "col": 2},
                "extra": {
                    "severity": "INFO",
                    "message": "m",
                    "metadata": {
                        "category": "security",
                        "confidence": 3,
                        "technology": "python",
                        "references": ["https://example.com", None],
                    },
                },
            }
        ]
    }

    (record,) = parse_semgrep_output(json.dumps(payload)).issues

    assert record.metadata.category == "security"
    assert record.metadata.technology == ("python",)
    assert record.metadata.confidence is None
    assert record.metadata.references == ()
