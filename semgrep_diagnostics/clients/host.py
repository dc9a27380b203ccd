from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import IntEnum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from semgrep_diagnostics.models.diagnostic import Diagnostic


class NotifyLevel(IntEnum):
    """Notification levels, numbered like ``vim.log.levels``."""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4


@runtime_checkable
class HostEditor(Protocol):
    """Editor operations the plugin relies on.

    Buffers are identified by the integer handle the editor assigns them and
    diagnostics are grouped under integer namespaces created by the editor.
    """

    def create_namespace(self, name: str) -> int: ...

    def list_buffers(self) -> list[int]: ...

    def is_buffer_valid(self, buffer: int) -> bool: ...

    def buffer_path(self, buffer: int) -> str:
        """Absolute path of the file backing ``buffer``, empty when unnamed."""
        ...

    def buffer_filetype(self, buffer: int) -> str: ...

    def current_buffer(self) -> int: ...

    def cursor(self) -> tuple[int, int]:
        """Cursor as zero-indexed (line, column) in the current window."""
        ...

    def cwd(self) -> Path: ...

    def set_diagnostics(
        self, namespace: int, buffer: int, diagnostics: Sequence[Diagnostic]
    ) -> None: ...

    def reset_diagnostics(self, namespace: int, buffer: int) -> None: ...

    def get_diagnostics(
        self, namespace: int, buffer: int, line: int | None = None
    ) -> list[Diagnostic]: ...

    def notify(self, message: str, level: NotifyLevel = NotifyLevel.INFO) -> None: ...

    def show_details(self, lines: Sequence[str]) -> None:
        """Present rule details, e.g. in a floating window."""
        ...

    def select(
        self,
        items: Sequence[str],
        prompt: str,
        on_choice: Callable[[str | None], None],
    ) -> None:
        """Ask the user to pick one item; ``on_choice`` gets ``None`` on cancel."""
        ...

    def schedule(self, callback: Callable[..., Any], *args: Any) -> None:
        """Run ``callback`` on the editor's main context."""
        ...
