from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from semgrep_diagnostics.models.base import AnalyzerRecord


class FindingMetadata(BaseModel):
    """Optional rule metadata attached to a finding."""

    model_config = ConfigDict(frozen=True)

    category: str | None = None
    technology: tuple[str, ...] = ()
    confidence: str | None = None
    references: tuple[str, ...] = ()

    @field_validator("technology", "references", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return value


class ScanRecord(AnalyzerRecord):
    """A semgrep result normalized to editor coordinates, not yet classified."""

    severity_label: str = Field(..., description="Severity exactly as reported")
    rule_id: str | None = Field(default=None, description="Rule check id")
    rule_source: str | None = Field(
        default=None, description="Path reported alongside the result"
    )
    metadata: FindingMetadata = Field(default_factory=FindingMetadata)


class Finding(ScanRecord):
    """A classified record that survived severity filtering."""

    severity: int = Field(..., ge=1, description="Ordinal severity, 1 is most severe")

    @classmethod
    def from_record(cls, record: ScanRecord, severity: int) -> "Finding":
        return cls(**dict(record), severity=severity)
