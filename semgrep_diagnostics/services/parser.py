from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from semgrep_diagnostics.models.base import StaticAnalyzerReport
from semgrep_diagnostics.models.finding import FindingMetadata, ScanRecord
from semgrep_diagnostics.models.semgrep_report import (
    SemgrepMetadata,
    SemgrepPosition,
    SemgrepReport,
    SemgrepResult,
)

logger = logging.getLogger(__name__)

SemgrepParseResult = StaticAnalyzerReport[ScanRecord]


def to_editor_position(position: SemgrepPosition) -> tuple[int, int]:
    """Convert a semgrep position to the editor's (line, col).

    Semgrep counts lines and columns from 1 and its end column points one
    past the match. The editor counts both from 0 with an exclusive end
    column, so every coordinate shifts down by exactly one.
    """
    return max(position.line - 1, 0), max(position.col - 1, 0)


def _tool_error_message(error: Any) -> str:
    if isinstance(error, dict):
        message = error.get("message") or error.get("type") or "unknown semgrep error"
        return str(message).strip()
    return str(error)


def _to_metadata(raw: Any) -> FindingMetadata:
    """Keep the metadata fields that validate and drop the rest.

    Metadata is optional, so a malformed value never costs the finding.
    """
    if not isinstance(raw, dict):
        return FindingMetadata()

    fields: dict[str, Any] = {}
    for name in FindingMetadata.model_fields:
        if raw.get(name) is None:
            continue
        try:
            wire = SemgrepMetadata.model_validate({name: raw[name]})
            checked = FindingMetadata.model_validate({name: getattr(wire, name)})
        except ValidationError:
            logger.debug("Ignoring malformed semgrep metadata %s=%r", name, raw[name])
            continue
        fields[name] = getattr(checked, name)
    return FindingMetadata(**fields)


def _to_record(result: SemgrepResult) -> ScanRecord:
    start_line, start_col = to_editor_position(result.start)
    end_line, end_col = to_editor_position(result.end)
    metadata = _to_metadata(result.extra.metadata)
    return ScanRecord(
        start_line=start_line,
        start_col=start_col,
        end_line=end_line,
        end_col=end_col,
        severity_label=result.extra.severity or "",
        message=result.extra.message or "",
        rule_id=result.check_id,
        rule_source=result.path,
        metadata=metadata,
    )


def parse_semgrep_output(raw: str | bytes | None) -> SemgrepParseResult:
    """Turn ``semgrep --json`` output into normalized records.

    Malformed output never raises; the returned report carries an ``error``
    instead. Result entries without a severity, a message or a usable range
    are dropped without being reported.

    Args:
        raw: Captured standard output of the analyzer.

    Returns:
        Report with the accepted records, the number of dropped entries and
        the tool's own error messages.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if raw is None or not raw.strip():
        return SemgrepParseResult(error="semgrep produced no output")

    try:
        report = SemgrepReport.model_validate_json(raw)
    except ValidationError as exc:
        logger.debug("Unparseable semgrep output: %s", exc)
        first = exc.errors()[0]["msg"] if exc.errors() else str(exc)
        return SemgrepParseResult(error=f"Failed to parse semgrep output: {first}")

    records: list[ScanRecord] = []
    dropped: int = 0
    for index, entry in enumerate(report.results):
        try:
            result = SemgrepResult.model_validate(entry)
        except ValidationError:
            logger.debug("Dropping malformed semgrep result #%d", index)
            dropped += 1
            continue
        if not result.is_reportable:
            logger.debug("Dropping semgrep result #%d without severity or message", index)
            dropped += 1
            continue
        records.append(_to_record(result))

    tool_errors: list[str] = [_tool_error_message(error) for error in report.errors]
    for message in tool_errors:
        logger.warning("semgrep reported an error: %s", message)

    return SemgrepParseResult(issues=records, dropped=dropped, tool_errors=tool_errors)
