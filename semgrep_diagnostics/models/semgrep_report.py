from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SemgrepPosition(BaseModel):
    """Location as printed by ``semgrep --json``.

    Attributes:
        line: Line number (1-based).
        col: Column number (1-based, exclusive for ``end``).
        offset: Byte offset into the file, when reported.
    """

    line: int = Field(..., ge=1)
    col: int = Field(..., ge=1)
    offset: int | None = None


class SemgrepMetadata(BaseModel):
    """Subset of rule metadata shown in rule details."""

    model_config = ConfigDict(extra="allow")

    category: str | None = None
    technology: list[str] | str | None = None
    confidence: str | None = None
    references: list[str] | str | None = None


class SemgrepExtra(BaseModel):
    model_config = ConfigDict(extra="allow")

    severity: str | None = None
    message: str | None = None
    metadata: Any = None


class SemgrepResult(BaseModel):
    """Single entry of the ``results`` array."""

    model_config = ConfigDict(extra="allow")

    check_id: str | None = None
    path: str | None = None
    start: SemgrepPosition
    end: SemgrepPosition
    extra: SemgrepExtra = Field(default_factory=SemgrepExtra)

    @property
    def is_reportable(self) -> bool:
        return bool(self.extra.severity) and bool(self.extra.message)


class SemgrepReport(BaseModel):
    """Top level ``semgrep --json`` document.

    Results stay untyped here so one malformed entry cannot reject the
    whole report; entries are validated one by one by the parser.
    """

    model_config = ConfigDict(extra="allow")

    results: list[Any]
    errors: list[Any] = Field(default_factory=list)
    version: str | None = None
