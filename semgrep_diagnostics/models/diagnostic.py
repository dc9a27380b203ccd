from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from semgrep_diagnostics.models.finding import Finding


class RuleDetails(BaseModel):
    category: str | None = None
    technology: list[str] = Field(default_factory=list)
    confidence: str | None = None
    references: list[str] = Field(default_factory=list)

    @field_validator("technology", "references", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        # Lua hands back an empty table as a mapping.
        if not value:
            return []
        if isinstance(value, str):
            return [value]
        return value


class DiagnosticUserData(BaseModel):
    """Payload kept next to a diagnostic for on-demand rule details."""

    rule_id: str | None = None
    rule_source: str | None = None
    rule_details: RuleDetails = Field(default_factory=RuleDetails)


class Diagnostic(BaseModel):
    """A diagnostic in the shape ``vim.diagnostic.set`` accepts.

    Hosts may hand back additional keys (``bufnr``, ``namespace``); they are
    ignored on validation.
    """

    model_config = ConfigDict(extra="ignore")

    lnum: int
    col: int
    end_lnum: int
    end_col: int
    severity: int
    source: str
    message: str
    user_data: DiagnosticUserData | None = None

    def covers(self, line: int, col: int) -> bool:
        """Whether a cursor at ``line``/``col`` sits on this diagnostic's first line."""
        return self.lnum == line and self.col <= col <= self.end_col

    @classmethod
    def from_finding(
        cls, finding: Finding, source: str, annotate_rule_id: bool = True
    ) -> "Diagnostic":
        message: str = finding.message
        if annotate_rule_id and finding.rule_id:
            message = f"{message} [{finding.rule_id}]"

        details = RuleDetails(
            category=finding.metadata.category,
            technology=list(finding.metadata.technology),
            confidence=finding.metadata.confidence,
            references=list(finding.metadata.references),
        )
        return cls(
            lnum=finding.start_line,
            col=finding.start_col,
            end_lnum=finding.end_line,
            end_col=finding.end_col,
            severity=finding.severity,
            source=source,
            message=message,
            user_data=DiagnosticUserData(
                rule_id=finding.rule_id,
                rule_source=finding.rule_source,
                rule_details=details,
            ),
        )


def rule_detail_lines(diagnostic: Diagnostic) -> list[str]:
    """Markdown lines describing the rule behind ``diagnostic``."""
    data = diagnostic.user_data or DiagnosticUserData()
    lines: list[str] = [
        f"Rule ID: {data.rule_id or 'N/A'}",
        f"Source: {data.rule_source or 'N/A'}",
    ]

    details = data.rule_details
    if details.category:
        lines.append(f"Category: {details.category}")
    if details.technology:
        lines.append(f"Technology: {', '.join(details.technology)}")
    if details.confidence:
        lines.append(f"Confidence: {details.confidence}")
    if details.references:
        lines.append("References:")
        lines.extend(f"  - {reference}" for reference in details.references)
    return lines
