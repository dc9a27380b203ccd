from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Final

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from semgrep_diagnostics.errors import ConfigurationError
from semgrep_diagnostics.models.base import RunMode, SeverityLevel

logger = logging.getLogger(__name__)

DEFAULT_SEVERITY_MAP: Final[dict[str, int]] = {
    "ERROR": int(SeverityLevel.ERROR),
    "WARNING": int(SeverityLevel.WARN),
    "INFO": int(SeverityLevel.INFO),
    "HINT": int(SeverityLevel.HINT),
}


def _check_ordinal(value: int) -> int:
    try:
        return int(SeverityLevel(value))
    except ValueError:
        raise ValueError(
            f"severity must be one of {[int(level) for level in SeverityLevel]}, got {value}"
        ) from None


class Settings(BaseModel):
    """Immutable configuration snapshot.

    Every scan captures the snapshot current when it starts, so replacing
    the settings never affects a scan already in flight.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    semgrep_config: str | list[str] = "auto"
    severity_map: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_SEVERITY_MAP))
    default_severity: int = int(SeverityLevel.WARN)
    minimum_severity: int = int(SeverityLevel.HINT)
    extra_args: list[str] = Field(default_factory=list)
    filetypes: list[str] = Field(default_factory=list)
    run_mode: RunMode = RunMode.SAVE
    debounce_ms: int = Field(default=1000, ge=0)
    executables: list[str] = Field(default_factory=lambda: ["semgrep", "opengrep"])
    namespace: str = "semgrep-nvim"
    show_rule_id: bool = True

    @field_validator("severity_map")
    @classmethod
    def _validate_severity_map(cls, value: dict[str, int]) -> dict[str, int]:
        return {label: _check_ordinal(ordinal) for label, ordinal in value.items()}

    @field_validator("default_severity", "minimum_severity", mode="before")
    @classmethod
    def _validate_ordinal(cls, value: Any) -> int:
        if isinstance(value, str):
            try:
                return int(SeverityLevel.parse(value))
            except ValueError as exc:
                raise ValueError(str(exc)) from None
        return _check_ordinal(value)

    @property
    def rulesets(self) -> list[str]:
        """Rule sources as a list, whichever form was configured."""
        if isinstance(self.semgrep_config, str):
            return [self.semgrep_config]
        return list(self.semgrep_config)

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    def allows_filetype(self, filetype: str) -> bool:
        return not self.filetypes or filetype in self.filetypes

    def update(self, **overrides: Any) -> Settings:
        """Return a validated copy with ``overrides`` applied.

        Raises:
            ConfigurationError: When the merged options do not validate.
        """
        merged: dict[str, Any] = self.model_dump()
        merged.update(overrides)
        return build_settings(merged)


def build_settings(options: dict[str, Any] | None = None) -> Settings:
    """Validate user options into a settings snapshot.

    Raises:
        ConfigurationError: With pydantic's messages when validation fails.
    """
    try:
        return Settings.model_validate(options or {})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid semgrep-diagnostics settings:\n{exc}") from exc


def load_settings(path: str | Path | None) -> Settings:
    """Load settings from a YAML file.

    Args:
        path: YAML file holding a mapping of option names. ``None`` or a
            missing file yields the defaults.

    Returns:
        Settings: The validated snapshot.

    Raises:
        ConfigurationError: When the file is unreadable, not a mapping, or
            holds invalid options.
    """
    if path is None:
        return Settings()

    config_path = Path(path).expanduser()
    if not config_path.exists():
        logger.debug("No settings file at %s, using defaults", config_path)
        return Settings()

    try:
        raw: Any = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read settings from {config_path}: {exc}") from exc

    if raw is None:
        return Settings()
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Settings file {config_path} must contain a mapping")
    return build_settings(raw)


def render_settings(settings: Settings) -> list[str]:
    """Format the snapshot for the print-configuration command."""
    payload: dict[str, Any] = settings.model_dump(mode="json")
    body: str = yaml.safe_dump(
        payload, sort_keys=False, default_flow_style=False, allow_unicode=True
    )
    return ["Current Semgrep Configuration:", *body.rstrip().splitlines()]
