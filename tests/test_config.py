"""Tests for settings validation and YAML loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from semgrep_diagnostics.errors import ConfigurationError, InvalidSeverityError
from semgrep_diagnostics.models.base import RunMode, SeverityLevel
from semgrep_diagnostics.models.config import (
    DEFAULT_SEVERITY_MAP,
    Settings,
    build_settings,
    load_settings,
    render_settings,
)


def test_defaults() -> None:
    settings = Settings()

    assert settings.enabled
    assert settings.rulesets == ["auto"]
    assert settings.severity_map == DEFAULT_SEVERITY_MAP
    assert settings.default_severity == 2
    assert settings.minimum_severity == 4
    assert settings.run_mode is RunMode.SAVE
    assert settings.debounce_seconds == 1.0
    assert settings.executables == ["semgrep", "opengrep"]
    assert settings.namespace == "semgrep-nvim"


def test_load_yaml_file(tmp_path: Path) -> None:
    config_file = tmp_path / "semgrep.yml"
    config_file.write_text(
        yaml.safe_dump(
            {
                "semgrep_config": ["p/python", "~/rules"],
                "minimum_severity": "warn",
                "severity_map": {"CRITICAL": 1, "LOW": 3},
                "run_mode": "edit",
                "debounce_ms": 250,
                "filetypes": ["python", "go"],
            }
        ),
        encoding="utf-8",
    )

    settings = load_settings(config_file)

    assert settings.rulesets == ["p/python", "~/rules"]
    assert settings.minimum_severity == SeverityLevel.WARN
    assert settings.severity_map == {"CRITICAL": 1, "LOW": 3}
    assert settings.run_mode is RunMode.EDIT
    assert settings.debounce_seconds == 0.25
    assert settings.allows_filetype("go")
    assert not settings.allows_filetype("lua")


def test_missing_or_empty_file_gives_defaults(tmp_path: Path) -> None:
    empty = tmp_path / "empty.yml"
    empty.write_text("", encoding="utf-8")

    assert load_settings(None) == Settings()
    assert load_settings(tmp_path / "absent.yml") == Settings()
    assert load_settings(empty) == Settings()


@pytest.mark.parametrize(
    "content",
    ["- just\n- a list\n", "key: [unclosed\n", "minimum_severity: 0\n", "colour: blue\n"],
)
def test_invalid_file_raises(tmp_path: Path, content: str) -> None:
    config_file = tmp_path / "bad.yml"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_settings(config_file)


@pytest.mark.parametrize(
    "options",
    [
        {"severity_map": {"ERROR": 5}},
        {"default_severity": "LOUD"},
        {"debounce_ms": -1},
        {"run_mode": "always"},
    ],
)
def test_invalid_options_rejected(options: dict[str, object]) -> None:
    with pytest.raises(ConfigurationError):
        build_settings(options)


def test_update_returns_new_snapshot() -> None:
    settings = Settings()

    updated = settings.update(minimum_severity=1, extra_args=["--timeout", "5"])

    assert settings.minimum_severity == 4
    assert updated.minimum_severity == 1
    assert updated.extra_args == ["--timeout", "5"]


def test_update_validates() -> None:
    with pytest.raises(ConfigurationError):
        Settings().update(minimum_severity=42)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("ERROR", SeverityLevel.ERROR),
        ("warning", SeverityLevel.WARN),
        (" info ", SeverityLevel.INFO),
        ("4", SeverityLevel.HINT),
        (2, SeverityLevel.WARN),
    ],
)
def test_severity_level_parse(value: int | str, expected: SeverityLevel) -> None:
    assert SeverityLevel.parse(value) is expected


@pytest.mark.parametrize("value", ["", "CRITICAL", "0", 5])
def test_severity_level_parse_rejects(value: int | str) -> None:
    with pytest.raises(InvalidSeverityError):
        SeverityLevel.parse(value)


def test_render_settings_is_yaml() -> None:
    lines = render_settings(Settings(semgrep_config=["p/ci"], minimum_severity=2))

    assert lines[0] == "Current Semgrep Configuration:"
    rendered = yaml.safe_load("\n".join(lines[1:]))
    assert rendered["semgrep_config"] == ["p/ci"]
    assert rendered["minimum_severity"] == 2
    assert rendered["run_mode"] == "save"
