"""Neovim remote plugin exposing the semgrep diagnostics commands.

Register it with ``:UpdateRemotePlugins`` (see ``rplugin/python3``), then
configure it from Lua::

    vim.fn.SemgrepSetup({ semgrep_config = { "p/python" }, run_mode = "edit" })
"""

from __future__ import annotations

import logging
from functools import cached_property
from typing import Any

import pynvim

from semgrep_diagnostics.clients.nvim import SELECTION_CALLBACK, NvimHost
from semgrep_diagnostics.services.diagnostics import SemgrepDiagnosticsService

logger = logging.getLogger(__name__)

_ABUF = 'expand("<abuf>")'


@pynvim.plugin
class SemgrepDiagnosticsPlugin:
    def __init__(self, nvim: pynvim.Nvim) -> None:
        self.nvim = nvim

    @cached_property
    def host(self) -> NvimHost:
        return NvimHost(self.nvim)

    @cached_property
    def service(self) -> SemgrepDiagnosticsService:
        # Built lazily: Neovim must not be called from the plugin constructor.
        return SemgrepDiagnosticsService(self.host, self.nvim.loop)

    @pynvim.function("SemgrepSetup")
    def setup(self, args: list[Any]) -> None:
        options: dict[str, Any] = args[0] if args and isinstance(args[0], dict) else {}
        logger.info("SemgrepSetup with %s", options)
        self.service.setup(**options)

    @pynvim.command("SemgrepToggle")
    def toggle(self, *args: Any) -> None:
        self.service.toggle()

    @pynvim.command("SemgrepPrintConfig")
    def print_config(self, *args: Any) -> None:
        self.service.print_config()

    @pynvim.command("SemgrepRun")
    def run(self, *args: Any) -> None:
        self.service.run_now()

    @pynvim.command("SemgrepRuleDetails")
    def rule_details(self, *args: Any) -> None:
        self.service.show_rule_details()

    @pynvim.command("SemgrepSetSeverity", nargs="?")
    def set_severity(self, args: list[str]) -> None:
        if args:
            self.service.set_minimum_severity(args[0])
        else:
            self.service.select_minimum_severity()

    @pynvim.function(SELECTION_CALLBACK)
    def selection_made(self, args: list[Any]) -> None:
        token, choice = args
        self.host.resolve_selection(token, choice)

    @pynvim.autocmd("BufWritePost", pattern="*", eval=_ABUF)
    def on_write(self, buffer: str) -> None:
        self.service.on_save(int(buffer))

    @pynvim.autocmd("TextChanged", pattern="*", eval=_ABUF)
    def on_text_changed(self, buffer: str) -> None:
        self.service.on_edit(int(buffer))

    @pynvim.autocmd("TextChangedI", pattern="*", eval=_ABUF)
    def on_text_changed_insert(self, buffer: str) -> None:
        self.service.on_edit(int(buffer))

    @pynvim.autocmd("BufDelete", pattern="*", eval=_ABUF)
    def on_delete(self, buffer: str) -> None:
        self.service.on_close(int(buffer))

    @pynvim.autocmd("BufWipeout", pattern="*", eval=_ABUF)
    def on_wipeout(self, buffer: str) -> None:
        self.service.on_close(int(buffer))
