from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from semgrep_diagnostics.models.config import Settings
from semgrep_diagnostics.models.finding import Finding, ScanRecord


class SeverityFilter(BaseModel):
    """Classify semgrep severities and drop findings below the threshold.

    Ordinals follow the editor convention where 1 is the most severe, so a
    finding is kept when its ordinal is *less than or equal to* the minimum
    severity. A minimum of 2 (WARN) keeps errors and warnings.
    """

    model_config = ConfigDict(frozen=True)

    severity_map: dict[str, int]
    default_severity: int
    minimum_severity: int

    @classmethod
    def from_settings(cls, settings: Settings) -> SeverityFilter:
        return cls(
            severity_map=settings.severity_map,
            default_severity=settings.default_severity,
            minimum_severity=settings.minimum_severity,
        )

    def classify(self, label: str | None) -> int:
        if not label:
            return self.default_severity
        if label in self.severity_map:
            return self.severity_map[label]
        return self.severity_map.get(label.upper(), self.default_severity)

    def retains(self, severity: int) -> bool:
        return severity <= self.minimum_severity

    def apply(self, records: Iterable[ScanRecord]) -> list[Finding]:
        findings: list[Finding] = []
        for record in records:
            severity: int = self.classify(record.severity_label)
            if self.retains(severity):
                findings.append(Finding.from_record(record, severity))
        return findings
