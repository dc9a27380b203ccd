"""Exception types shared across the scan pipeline."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class SemgrepDiagnosticsError(Exception):
    """Base class for every error raised by this package."""


class ToolNotFoundError(SemgrepDiagnosticsError):
    """None of the configured analyzer executables is on PATH."""

    def __init__(self, candidates: Sequence[str]) -> None:
        self.candidates: tuple[str, ...] = tuple(candidates)
        names = " or ".join(self.candidates) or "<none configured>"
        super().__init__(f"{names} executable not found in PATH")


class ConfigSourceMissingError(SemgrepDiagnosticsError):
    """A rule source pointing at the filesystem does not exist."""

    def __init__(self, source: str, path: Path) -> None:
        self.source = source
        self.path = path
        super().__init__(f"Semgrep config not found, skipping: {source}")


class ScanExecutionError(SemgrepDiagnosticsError):
    """The analyzer process could not be launched."""


class ConfigurationError(SemgrepDiagnosticsError, ValueError):
    """Configuration input could not be turned into settings."""


class InvalidSeverityError(ConfigurationError):
    """A severity level outside the supported ordinals was requested."""
