from enum import IntEnum, StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from semgrep_diagnostics.errors import InvalidSeverityError


class SeverityLevel(IntEnum):
    """Diagnostic severities as ordered by the host editor.

    Smaller values are more severe, so ``ERROR`` sorts first.
    """

    ERROR = 1
    WARN = 2
    INFO = 3
    HINT = 4

    @classmethod
    def parse(cls, value: "int | str | SeverityLevel") -> "SeverityLevel":
        """Resolve an ordinal, a level name or a digit string to a level.

        Raises:
            InvalidSeverityError: When the value names no known level.
        """
        try:
            if isinstance(value, str):
                name = value.strip().upper()
                if name.isdigit():
                    return cls(int(name))
                if name == "WARNING":
                    return cls.WARN
                return cls[name]
            return cls(value)
        except (KeyError, ValueError):
            raise InvalidSeverityError(f"Invalid severity level: {value}") from None


class RunMode(StrEnum):
    SAVE = "save"
    EDIT = "edit"


class AnalyzerRecord(BaseModel):
    """Common shape of a single analyzer result after normalization."""

    model_config = ConfigDict(frozen=True)

    start_line: int = Field(..., ge=0, description="First line (0-indexed)")
    start_col: int = Field(..., ge=0, description="First column (0-indexed)")
    end_line: int = Field(..., ge=0, description="Last line (0-indexed)")
    end_col: int = Field(..., ge=0, description="End column (0-indexed, exclusive)")
    message: str


T = TypeVar("T", bound=AnalyzerRecord)


class StaticAnalyzerReport(BaseModel, Generic[T]):
    """Records extracted from one analyzer run, or the reason there are none."""

    issues: list[T] = Field(default_factory=list)
    error: str | None = None
    dropped: int = 0
    tool_errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None
