from __future__ import annotations

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from semgrep_diagnostics.clients.analyzers.base import IStaticAnalyzer, StaticAnalyzerRun
from semgrep_diagnostics.errors import (
    ConfigSourceMissingError,
    ScanExecutionError,
    ToolNotFoundError,
)
from semgrep_diagnostics.models.config import Settings

logger = logging.getLogger(__name__)

AUTO_CONFIG: Final[str] = "auto"
REGISTRY_PREFIXES: Final[tuple[str, ...]] = ("p/", "r/", "s/", "http://", "https://")


class SemgrepCommand(BaseModel):
    """Argument vector plus the rule sources that had to be left out."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    argv: list[str]
    skipped: list[ConfigSourceMissingError] = Field(default_factory=list)


def is_registry_source(source: str) -> bool:
    return source == AUTO_CONFIG or source.startswith(REGISTRY_PREFIXES)


def resolve_config_source(source: str) -> str:
    """Return the ``--config`` value for a rule source.

    Registry shorthands and ``auto`` pass through untouched. Anything else
    is a file or directory on disk, expanded for ``~`` and environment
    variables.

    Raises:
        ConfigSourceMissingError: When the path does not exist.
    """
    if is_registry_source(source):
        return source
    path = Path(os.path.expandvars(source)).expanduser()
    if not (path.is_file() or path.is_dir()):
        raise ConfigSourceMissingError(source, path)
    return str(path)


class SemgrepStaticAnalyzer(IStaticAnalyzer):
    """Run semgrep (or opengrep) on a single file.

    Output is requested as JSON; a non-zero exit status is expected when
    findings exist, so it is recorded but never treated as failure here.
    """

    settings: Settings

    def resolve_binary(self) -> str:
        """Pick the first configured executable found on PATH.

        Raises:
            ToolNotFoundError: When none of them is installed.
        """
        for name in self.settings.executables:
            if shutil.which(name):
                return name
        raise ToolNotFoundError(self.settings.executables)

    def build_command(self, binary: str) -> SemgrepCommand:
        argv: list[str] = [binary, "--json", "--quiet"]
        skipped: list[ConfigSourceMissingError] = []

        for source in self.settings.rulesets:
            try:
                argv.append(f"--config={resolve_config_source(source)}")
            except ConfigSourceMissingError as exc:
                logger.warning("%s", exc)
                skipped.append(exc)

        argv.append(str(self.src))
        argv.extend(self.settings.extra_args)
        return SemgrepCommand(argv=argv, skipped=skipped)

    async def execute(self, command: SemgrepCommand) -> StaticAnalyzerRun:
        """Spawn the analyzer and wait for it without blocking the loop.

        Raises:
            ScanExecutionError: When the process cannot be started.
        """
        logger.info("Running %s", " ".join(command.argv))
        try:
            process = await asyncio.create_subprocess_exec(
                *command.argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.cwd) if self.cwd is not None else None,
                env=os.environ.copy(),
            )
        except OSError as exc:
            raise ScanExecutionError(f"Failed to start {command.argv[0]}: {exc}") from exc

        stdout, stderr = await process.communicate()
        returncode: int = process.returncode if process.returncode is not None else -1
        if returncode != 0:
            logger.debug("%s exited with status %d", command.argv[0], returncode)

        return StaticAnalyzerRun(
            argv=command.argv,
            returncode=returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    async def run(self) -> StaticAnalyzerRun:
        command = self.build_command(self.resolve_binary())
        return await self.execute(command)
