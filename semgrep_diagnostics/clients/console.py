from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, Final

import typer

from semgrep_diagnostics.clients.host import NotifyLevel
from semgrep_diagnostics.models.diagnostic import Diagnostic

logger = logging.getLogger(__name__)

_LEVEL_COLORS: Final[dict[NotifyLevel, str]] = {
    NotifyLevel.ERROR: typer.colors.RED,
    NotifyLevel.WARN: typer.colors.YELLOW,
    NotifyLevel.INFO: typer.colors.GREEN,
}


class ConsoleHost:
    """Host editor for the terminal.

    Files are opened as numbered buffers and diagnostics are kept in memory
    per namespace, so a scan can be run and inspected without an editor.
    """

    def __init__(self, cwd: Path | None = None) -> None:
        self._cwd: Path = (cwd or Path.cwd()).resolve()
        self._namespaces: dict[str, int] = {}
        self._buffers: dict[int, Path] = {}
        self._diagnostics: dict[int, dict[int, list[Diagnostic]]] = defaultdict(dict)
        self._current: int = 0
        self._cursor: tuple[int, int] = (0, 0)
        self.error_count: int = 0

    def open(self, path: Path) -> int:
        buffer: int = max(self._buffers, default=0) + 1
        self._buffers[buffer] = path.resolve()
        self._current = buffer
        return buffer

    def close(self, buffer: int) -> None:
        self._buffers.pop(buffer, None)
        for per_buffer in self._diagnostics.values():
            per_buffer.pop(buffer, None)

    def set_cursor(self, buffer: int, line: int, col: int) -> None:
        self._current = buffer
        self._cursor = (line, col)

    def create_namespace(self, name: str) -> int:
        return self._namespaces.setdefault(name, len(self._namespaces) + 1)

    def list_buffers(self) -> list[int]:
        return list(self._buffers)

    def is_buffer_valid(self, buffer: int) -> bool:
        return buffer in self._buffers

    def buffer_path(self, buffer: int) -> str:
        path = self._buffers.get(buffer)
        return str(path) if path is not None else ""

    def buffer_filetype(self, buffer: int) -> str:
        path = self._buffers.get(buffer)
        return path.suffix.lstrip(".") if path is not None else ""

    def current_buffer(self) -> int:
        return self._current

    def cursor(self) -> tuple[int, int]:
        return self._cursor

    def cwd(self) -> Path:
        return self._cwd

    def set_diagnostics(
        self, namespace: int, buffer: int, diagnostics: Sequence[Diagnostic]
    ) -> None:
        self._diagnostics[namespace][buffer] = list(diagnostics)

    def reset_diagnostics(self, namespace: int, buffer: int) -> None:
        self._diagnostics[namespace].pop(buffer, None)

    def get_diagnostics(
        self, namespace: int, buffer: int, line: int | None = None
    ) -> list[Diagnostic]:
        diagnostics = self._diagnostics[namespace].get(buffer, [])
        if line is None:
            return list(diagnostics)
        return [d for d in diagnostics if d.lnum == line]

    def notify(self, message: str, level: NotifyLevel = NotifyLevel.INFO) -> None:
        if level >= NotifyLevel.ERROR:
            self.error_count += 1
        if level < NotifyLevel.INFO:
            logger.debug("%s", message)
            return
        typer.secho(message, fg=_LEVEL_COLORS.get(level), err=True)

    def show_details(self, lines: Sequence[str]) -> None:
        for line in lines:
            typer.echo(f"    {line}")

    def select(
        self,
        items: Sequence[str],
        prompt: str,
        on_choice: Callable[[str | None], None],
    ) -> None:
        choice: str = typer.prompt(f"{prompt} [{'/'.join(items)}]", default="", show_default=False)
        on_choice(choice.strip().upper() or None)

    def schedule(self, callback: Callable[..., Any], *args: Any) -> None:
        callback(*args)
