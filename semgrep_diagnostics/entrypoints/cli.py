from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer

from semgrep_diagnostics.clients.console import ConsoleHost
from semgrep_diagnostics.errors import ConfigurationError
from semgrep_diagnostics.models.base import SeverityLevel
from semgrep_diagnostics.models.config import Settings, load_settings, render_settings
from semgrep_diagnostics.models.diagnostic import Diagnostic, rule_detail_lines
from .base import scan_files, setup_logging

app = typer.Typer(
    name="semgrep-diagnostics",
    add_completion=False,
    no_args_is_help=True,
    help="Run semgrep on files and report its findings as editor diagnostics.",
)

ConfigFileOption = Annotated[
    Path | None,
    typer.Option(
        "--config-file",
        "-c",
        help="YAML file with plugin settings.",
        envvar="SEMGREP_DIAGNOSTICS_CONFIG",
        dir_okay=False,
        resolve_path=True,
    ),
]


def _load_settings(config_file: Path | None, **overrides: Any) -> Settings:
    """Read the settings file and apply command line overrides.

    Args:
        config_file: Optional YAML settings file.
        overrides: Option values; ``None`` and empty lists mean "not given".

    Returns:
        Settings: Validated snapshot.
    """
    given: dict[str, Any] = {k: v for k, v in overrides.items() if v not in (None, [])}
    try:
        settings = load_settings(config_file)
        return settings.update(**given) if given else settings
    except ConfigurationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc


def _format_diagnostic(path: Path, diagnostic: Diagnostic) -> str:
    try:
        level: str = SeverityLevel(diagnostic.severity).name
    except ValueError:
        level = str(diagnostic.severity)
    return f"{path}:{diagnostic.lnum + 1}:{diagnostic.col + 1}: {level} {diagnostic.message}"


@app.callback()
def main_callback(
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            help="Logging level (DEBUG, INFO, WARNING, ERROR).",
            envvar="SEMGREP_DIAGNOSTICS_LOG_LEVEL",
        ),
    ] = "WARNING",
) -> None:
    """Configure logging for every command."""
    setup_logging(log_level)


@app.command("scan")
def scan(
    files: Annotated[
        list[Path],
        typer.Argument(
            help="Files to scan.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    config_file: ConfigFileOption = None,
    rules: Annotated[
        list[str] | None,
        typer.Option(
            "--rules",
            "-r",
            help="Rule source (registry shorthand, 'auto' or path). Repeatable.",
        ),
    ] = None,
    min_severity: Annotated[
        str | None,
        typer.Option(
            "--min-severity",
            help="Least severe level to report: ERROR, WARN, INFO or HINT.",
        ),
    ] = None,
    extra_args: Annotated[
        list[str] | None,
        typer.Option("--extra-arg", help="Argument passed through to semgrep. Repeatable."),
    ] = None,
    details: Annotated[
        bool,
        typer.Option("--details/--no-details", help="Print rule details per finding."),
    ] = False,
) -> None:
    """Scan files once and print their diagnostics.

    Args:
        files: Files to scan.
        config_file: Optional YAML settings file.
        rules: Rule sources replacing the configured ones.
        min_severity: Minimum severity replacing the configured one.
        extra_args: Pass-through arguments replacing the configured ones.
        details: Whether to print rule details under each diagnostic.
    """
    settings: Settings = _load_settings(
        config_file,
        semgrep_config=rules,
        minimum_severity=min_severity,
        extra_args=extra_args,
        enabled=True,
    )

    host = ConsoleHost()
    service, buffers = asyncio.run(scan_files(host, files, settings))

    total: int = 0
    for path, buffer in buffers.items():
        diagnostics: list[Diagnostic] = sorted(
            host.get_diagnostics(service.publisher.namespace, buffer),
            key=lambda d: (d.lnum, d.col),
        )
        for diagnostic in diagnostics:
            typer.echo(_format_diagnostic(path, diagnostic))
            if details:
                host.show_details(rule_detail_lines(diagnostic))
        total += len(diagnostics)

    typer.secho(
        f"{total} finding(s) in {len(buffers)} file(s)",
        fg=typer.colors.GREEN if not host.error_count else typer.colors.RED,
    )
    if host.error_count:
        raise typer.Exit(code=1)


@app.command("show-config")
def show_config(config_file: ConfigFileOption = None) -> None:
    """Print the effective settings."""
    settings: Settings = _load_settings(config_file)
    for line in render_settings(settings):
        typer.echo(line)


def main() -> None:
    """Entry point for executing the Typer application."""
    app()


if __name__ == "__main__":
    main()
