from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from semgrep_diagnostics.clients.analyzers.semgrep import SemgrepStaticAnalyzer
from semgrep_diagnostics.clients.host import HostEditor, NotifyLevel
from semgrep_diagnostics.errors import (
    ConfigurationError,
    InvalidSeverityError,
    SemgrepDiagnosticsError,
)
from semgrep_diagnostics.models.base import SeverityLevel
from semgrep_diagnostics.models.config import Settings, render_settings
from semgrep_diagnostics.models.diagnostic import rule_detail_lines
from semgrep_diagnostics.models.finding import Finding
from semgrep_diagnostics.models.scan import ScanRequest, TriggerReason
from semgrep_diagnostics.services.parser import parse_semgrep_output
from semgrep_diagnostics.services.publisher import DiagnosticPublisher
from semgrep_diagnostics.services.scheduler import ScanScheduler, TimerHandle
from semgrep_diagnostics.services.severity import SeverityFilter

logger = logging.getLogger(__name__)


class Notice(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: NotifyLevel
    message: str


class ScanOutcome(BaseModel):
    """What a finished scan hands back to the editor's main context.

    ``findings`` is ``None`` when the scan failed; the previously published
    diagnostics are then left as they are.
    """

    model_config = ConfigDict(frozen=True)

    request: ScanRequest
    scan_id: int
    findings: list[Finding] | None = None
    notices: list[Notice] = Field(default_factory=list)


class _HostTimerLoop:
    """Run debounce timers through the host so they fire on its main context."""

    def __init__(self, loop: asyncio.AbstractEventLoop, host: HostEditor) -> None:
        self._loop = loop
        self._host = host

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle:
        return self._loop.call_later(delay, self._host.schedule, callback, *args)


class SemgrepDiagnosticsService:
    """Editor-facing commands and the scan pipeline behind them.

    Args:
        host: The editor the diagnostics are shown in.
        loop: Event loop running analyzer processes and debounce timers.
        settings: Initial configuration snapshot.
    """

    def __init__(
        self,
        host: HostEditor,
        loop: asyncio.AbstractEventLoop,
        settings: Settings | None = None,
    ) -> None:
        self.host = host
        self.settings: Settings = settings or Settings()
        self._loop = loop
        self._tasks: set[asyncio.Task[None]] = set()
        self.publisher = DiagnosticPublisher(
            host, self.settings.namespace, annotate_rule_id=self.settings.show_rule_id
        )
        self.scheduler = ScanScheduler(_HostTimerLoop(loop, host), self._start_scan)

    # Configuration

    def setup(self, **options: Any) -> bool:
        """Merge user options into the settings; invalid options are reported."""
        try:
            settings = self.settings.update(**options)
        except ConfigurationError as exc:
            self.host.notify(str(exc), NotifyLevel.ERROR)
            return False
        self._apply_settings(settings)
        return True

    def _apply_settings(self, settings: Settings) -> None:
        if settings.namespace != self.settings.namespace:
            self.publisher.clear_all()
            self.publisher = DiagnosticPublisher(
                self.host, settings.namespace, annotate_rule_id=settings.show_rule_id
            )
        self.publisher.annotate_rule_id = settings.show_rule_id

        if self.settings.enabled and not settings.enabled:
            self.scheduler.disable()
            self.publisher.clear_all()
        self.settings = settings

    def print_config(self) -> None:
        self.host.notify("\n".join(render_settings(self.settings)), NotifyLevel.INFO)

    def toggle(self) -> None:
        """Enable or disable the plugin; disabling clears every buffer."""
        enabling: bool = not self.settings.enabled
        self._apply_settings(self.settings.update(enabled=enabling))
        if enabling:
            self.host.notify("Semgrep diagnostics enabled", NotifyLevel.INFO)
            self.run_now()
        else:
            self.host.notify("Semgrep diagnostics disabled", NotifyLevel.INFO)

    def set_minimum_severity(self, level: int | str) -> bool:
        try:
            severity = SeverityLevel.parse(level)
        except InvalidSeverityError:
            self.host.notify("Invalid severity level", NotifyLevel.ERROR)
            return False
        self._apply_settings(self.settings.update(minimum_severity=int(severity)))
        self.host.notify(
            f"Minimum severity set to: {severity.name} ({int(severity)})", NotifyLevel.INFO
        )
        return True

    def select_minimum_severity(self) -> None:
        def on_choice(choice: str | None) -> None:
            if choice:
                self.set_minimum_severity(choice)

        self.host.select(
            [level.name for level in SeverityLevel],
            "Select minimum severity level:",
            on_choice,
        )

    # Editor events

    def on_edit(self, buffer: int) -> None:
        self._trigger(buffer, TriggerReason.EDIT)

    def on_save(self, buffer: int) -> None:
        self._trigger(buffer, TriggerReason.SAVE)

    def on_close(self, buffer: int) -> None:
        self.scheduler.forget(buffer)
        self.publisher.clear(buffer)

    def run_now(self, buffer: int | None = None) -> None:
        if not self.settings.enabled:
            self.host.notify("Semgrep diagnostics are disabled", NotifyLevel.WARN)
            return
        target: int = self.host.current_buffer() if buffer is None else buffer
        self._trigger(target, TriggerReason.MANUAL)

    def show_rule_details(self) -> None:
        buffer: int = self.host.current_buffer()
        line, col = self.host.cursor()
        for diagnostic in self.publisher.diagnostics_at(buffer, line, col):
            if diagnostic.user_data is not None:
                self.host.show_details(rule_detail_lines(diagnostic))
                return
        self.host.notify("No semgrep diagnostic found under cursor", NotifyLevel.WARN)

    def _request_for(self, buffer: int, reason: TriggerReason) -> ScanRequest | None:
        if not self.host.is_buffer_valid(buffer):
            return None
        path: str = self.host.buffer_path(buffer)
        if not path:
            return None
        if not self.settings.allows_filetype(self.host.buffer_filetype(buffer)):
            return None
        return ScanRequest(document_id=buffer, path=Path(path), reason=reason)

    def _trigger(self, buffer: int, reason: TriggerReason) -> None:
        request = self._request_for(buffer, reason)
        if request is not None:
            self.scheduler.trigger(request, self.settings)

    # Scan execution

    def _start_scan(self, request: ScanRequest, scan_id: int) -> None:
        task = self._loop.create_task(
            self._scan(request, scan_id, self.settings, self.host.cwd())
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _scan(
        self, request: ScanRequest, scan_id: int, settings: Settings, cwd: Path
    ) -> None:
        notices: list[Notice] = []
        findings: list[Finding] | None = None
        try:
            findings = await self._collect(request, settings, cwd, notices)
        except SemgrepDiagnosticsError as exc:
            notices.append(Notice(level=NotifyLevel.ERROR, message=str(exc)))
        except Exception:
            logger.exception("Semgrep scan of %s failed", request.path)
            notices.append(
                Notice(
                    level=NotifyLevel.ERROR,
                    message=f"Semgrep scan of {request.path} failed unexpectedly",
                )
            )
        outcome = ScanOutcome(
            request=request, scan_id=scan_id, findings=findings, notices=notices
        )
        self.host.schedule(self._finish, outcome)

    async def _collect(
        self,
        request: ScanRequest,
        settings: Settings,
        cwd: Path,
        notices: list[Notice],
    ) -> list[Finding] | None:
        analyzer = SemgrepStaticAnalyzer(src=request.path, cwd=cwd, settings=settings)
        command = analyzer.build_command(analyzer.resolve_binary())
        notices.extend(
            Notice(level=NotifyLevel.WARN, message=str(skipped)) for skipped in command.skipped
        )

        run = await analyzer.execute(command)
        report = parse_semgrep_output(run.stdout)
        if not report.ok:
            message: str = report.error or "Failed to parse semgrep output"
            if run.stderr.strip():
                message = f"{message}\n{run.stderr.strip()}"
            notices.append(Notice(level=NotifyLevel.ERROR, message=message))
            return None

        if report.tool_errors:
            notices.append(
                Notice(
                    level=NotifyLevel.WARN,
                    message="semgrep reported errors:\n" + "\n".join(report.tool_errors),
                )
            )
        return SeverityFilter.from_settings(settings).apply(report.issues)

    def _finish(self, outcome: ScanOutcome) -> None:
        for notice in outcome.notices:
            self.host.notify(notice.message, notice.level)

        request = outcome.request
        try:
            if (
                outcome.findings is not None
                and self.settings.enabled
                and self.scheduler.is_current(request.document_id, outcome.scan_id)
            ):
                self.publisher.publish(request.document_id, outcome.findings)
        finally:
            self.scheduler.complete(request.document_id, outcome.scan_id)

    async def drain(self) -> None:
        """Wait until no scan task is left, including reruns they queue."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await asyncio.sleep(0)
