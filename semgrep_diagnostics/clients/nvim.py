from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Any, Final

import pynvim
from pydantic import ValidationError

from semgrep_diagnostics.clients.host import NotifyLevel
from semgrep_diagnostics.models.diagnostic import Diagnostic

logger = logging.getLogger(__name__)

SELECTION_CALLBACK: Final[str] = "SemgrepDiagnosticsSelected"

_SET_DIAGNOSTICS: Final[str] = """
local ns, buf, diagnostics = ...
vim.diagnostic.set(ns, buf, diagnostics)
"""
_RESET_DIAGNOSTICS: Final[str] = """
local ns, buf = ...
vim.diagnostic.reset(ns, buf)
"""
_GET_DIAGNOSTICS: Final[str] = """
local ns, buf, lnum = ...
return vim.diagnostic.get(buf, { namespace = ns, lnum = lnum })
"""
_NOTIFY: Final[str] = """
local message, level = ...
vim.notify(message, level)
"""
_FLOAT: Final[str] = """
local lines = ...
vim.lsp.util.open_floating_preview(lines, "markdown", {
  border = "rounded",
  focus = true,
  focusable = true,
  width = 80,
  height = #lines,
  close_events = { "BufHidden", "BufLeave" },
  focus_id = "semgrep_details",
})
"""
_SELECT: Final[str] = f"""
local items, prompt, token = ...
vim.ui.select(items, {{ prompt = prompt }}, function(choice)
  vim.fn.{SELECTION_CALLBACK}(token, choice or "")
end)
"""


class NvimHost:
    """Host editor backed by a running Neovim through pynvim.

    Every method must be called from pynvim's main context; code running
    on the event loop goes through :meth:`schedule` first.
    """

    def __init__(self, nvim: pynvim.Nvim) -> None:
        self._nvim = nvim
        self._selections: dict[int, Callable[[str | None], None]] = {}
        self._tokens: Iterator[int] = itertools.count(1)

    def create_namespace(self, name: str) -> int:
        return int(self._nvim.api.create_namespace(name))

    def list_buffers(self) -> list[int]:
        return [buffer.number for buffer in self._nvim.buffers]

    def is_buffer_valid(self, buffer: int) -> bool:
        return bool(self._nvim.api.buf_is_valid(buffer))

    def buffer_path(self, buffer: int) -> str:
        return str(self._nvim.api.buf_get_name(buffer))

    def buffer_filetype(self, buffer: int) -> str:
        return str(self._nvim.api.get_option_value("filetype", {"buf": buffer}))

    def current_buffer(self) -> int:
        return int(self._nvim.current.buffer.number)

    def cursor(self) -> tuple[int, int]:
        row, col = self._nvim.current.window.cursor
        return row - 1, col

    def cwd(self) -> Path:
        return Path(self._nvim.funcs.getcwd())

    def set_diagnostics(
        self, namespace: int, buffer: int, diagnostics: Sequence[Diagnostic]
    ) -> None:
        payload: list[dict[str, Any]] = [d.model_dump(exclude_none=True) for d in diagnostics]
        self._nvim.exec_lua(_SET_DIAGNOSTICS, namespace, buffer, payload)

    def reset_diagnostics(self, namespace: int, buffer: int) -> None:
        self._nvim.exec_lua(_RESET_DIAGNOSTICS, namespace, buffer)

    def get_diagnostics(
        self, namespace: int, buffer: int, line: int | None = None
    ) -> list[Diagnostic]:
        rows: list[dict[str, Any]] = self._nvim.exec_lua(_GET_DIAGNOSTICS, namespace, buffer, line)
        diagnostics: list[Diagnostic] = []
        for row in rows or []:
            try:
                diagnostics.append(Diagnostic.model_validate(row))
            except ValidationError:
                logger.debug("Skipping unexpected diagnostic payload: %r", row)
        return diagnostics

    def notify(self, message: str, level: NotifyLevel = NotifyLevel.INFO) -> None:
        self._nvim.exec_lua(_NOTIFY, message, int(level))

    def show_details(self, lines: Sequence[str]) -> None:
        self._nvim.exec_lua(_FLOAT, list(lines))

    def select(
        self,
        items: Sequence[str],
        prompt: str,
        on_choice: Callable[[str | None], None],
    ) -> None:
        token: int = next(self._tokens)
        self._selections[token] = on_choice
        self._nvim.exec_lua(_SELECT, list(items), prompt, token)

    def resolve_selection(self, token: int, choice: str) -> None:
        """Deliver the answer of a :meth:`select` prompt."""
        callback = self._selections.pop(int(token), None)
        if callback is not None:
            callback(choice or None)

    def schedule(self, callback: Callable[..., Any], *args: Any) -> None:
        self._nvim.async_call(callback, *args)
