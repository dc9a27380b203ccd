"""Tests for building and running the semgrep command."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from semgrep_diagnostics.clients.analyzers import semgrep as semgrep_module
from semgrep_diagnostics.clients.analyzers.semgrep import (
    SemgrepStaticAnalyzer,
    is_registry_source,
    resolve_config_source,
)
from semgrep_diagnostics.errors import (
    ConfigSourceMissingError,
    ScanExecutionError,
    ToolNotFoundError,
)
from semgrep_diagnostics.models.config import Settings

TARGET = Path("/project/app.py")


def _analyzer(**options: object) -> SemgrepStaticAnalyzer:
    return SemgrepStaticAnalyzer(src=TARGET, settings=Settings(**options))


def test_argument_order(tmp_path: Path) -> None:
    """Flags, one --config per source, then the target, then extra args."""

    rules_file = tmp_path / "rules.yml"
    rules_file.write_text("rules: []\n", encoding="utf-8")
    analyzer = _analyzer(
        semgrep_config=["p/python", "auto", str(rules_file), str(tmp_path)],
        extra_args=["--timeout", "10"],
    )

    command = analyzer.build_command("semgrep")

    assert command.argv == [
        "semgrep",
        "--json",
        "--quiet",
        "--config=p/python",
        "--config=auto",
        f"--config={rules_file}",
        f"--config={tmp_path}",
        str(TARGET),
        "--timeout",
        "10",
    ]
    assert command.skipped == []


def test_missing_sources_are_skipped_with_warning(tmp_path: Path) -> None:
    missing = tmp_path / "nope.yml"
    analyzer = _analyzer(semgrep_config=[str(missing), "p/ci"])

    command = analyzer.build_command("opengrep")

    assert command.argv == ["opengrep", "--json", "--quiet", "--config=p/ci", str(TARGET)]
    assert len(command.skipped) == 1
    assert isinstance(command.skipped[0], ConfigSourceMissingError)
    assert str(missing) in str(command.skipped[0])


def test_single_string_config_is_one_source() -> None:
    command = _analyzer(semgrep_config="auto").build_command("semgrep")

    assert command.argv.count("--config=auto") == 1


def test_home_directory_sources_are_expanded(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / "rules").mkdir()

    assert resolve_config_source("~/rules") == str(tmp_path / "rules")


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("auto", True),
        ("p/python", True),
        ("r/python.lang.security", True),
        ("https://example.com/rules.yml", True),
        ("rules.yml", False),
        ("./p/local", False),
    ],
)
def test_registry_sources(source: str, expected: bool) -> None:
    assert is_registry_source(source) is expected


def test_primary_binary_preferred(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(semgrep_module.shutil, "which", lambda name: f"/usr/bin/{name}")

    assert _analyzer().resolve_binary() == "semgrep"


def test_fallback_binary_used(monkeypatch: pytest.MonkeyPatch) -> None:
    available = {"opengrep": "/usr/local/bin/opengrep"}
    monkeypatch.setattr(semgrep_module.shutil, "which", available.get)

    assert _analyzer().resolve_binary() == "opengrep"


def test_tool_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(semgrep_module.shutil, "which", lambda name: None)

    with pytest.raises(ToolNotFoundError) as exc_info:
        _analyzer().resolve_binary()

    assert exc_info.value.candidates == ("semgrep", "opengrep")
    assert "semgrep or opengrep" in str(exc_info.value)


def test_run_captures_output_and_exit_code(
    tmp_path: Path, stub_semgrep: Callable[..., Path], semgrep_output: str
) -> None:
    """A non-zero exit status is captured, not raised."""

    stub = stub_semgrep(semgrep_output, exit_code=1)
    analyzer = SemgrepStaticAnalyzer(
        src=tmp_path / "app.py",
        cwd=tmp_path,
        settings=Settings(executables=[str(stub)], semgrep_config="p/python"),
    )

    run = asyncio.run(analyzer.run())

    assert run.returncode == 1
    assert '"results"' in run.stdout
    logged = (tmp_path / "argv.log").read_text(encoding="utf-8")
    assert logged.strip() == f"--json --quiet --config=p/python {tmp_path / 'app.py'}"


def test_execute_reports_launch_failure(tmp_path: Path) -> None:
    analyzer = _analyzer()
    command = analyzer.build_command(str(tmp_path / "does-not-exist"))

    with pytest.raises(ScanExecutionError):
        asyncio.run(analyzer.execute(command))
