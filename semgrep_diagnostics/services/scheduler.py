from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol

from semgrep_diagnostics.models.base import RunMode
from semgrep_diagnostics.models.config import Settings
from semgrep_diagnostics.models.scan import (
    ArmTimer,
    CancelTimer,
    Close,
    Disable,
    DocumentScanState,
    ScanCompleted,
    ScanPhase,
    ScanRequest,
    SchedulerEffect,
    SchedulerEvent,
    StartScan,
    TimerFired,
    Trigger,
)

logger = logging.getLogger(__name__)

ScanStarter = Callable[[ScanRequest, int], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerLoop(Protocol):
    """The part of an event loop the scheduler needs.

    ``asyncio.AbstractEventLoop`` satisfies it.
    """

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle: ...


def _queue_rerun(queued: ScanRequest | None, incoming: ScanRequest) -> ScanRequest:
    # An immediate trigger is never downgraded to a debounced one.
    if queued is not None and queued.reason.immediate and not incoming.reason.immediate:
        return queued.model_copy(update={"path": incoming.path})
    return incoming


def _on_trigger(
    state: DocumentScanState, event: Trigger
) -> tuple[DocumentScanState, list[SchedulerEffect]]:
    request = event.request
    if not event.enabled:
        return state, []
    if not request.reason.immediate and event.run_mode is RunMode.SAVE:
        return state, []

    if state.phase is ScanPhase.RUNNING:
        rerun = _queue_rerun(state.rerun, request)
        return state.model_copy(update={"rerun": rerun, "delay": event.delay}), []

    effects: list[SchedulerEffect] = []
    if state.phase is ScanPhase.PENDING:
        effects.append(CancelTimer())

    if request.reason.immediate:
        effects.append(StartScan(request=request))
        running = DocumentScanState(phase=ScanPhase.RUNNING, request=request)
        return running, effects

    effects.append(ArmTimer(delay=event.delay))
    pending = DocumentScanState(phase=ScanPhase.PENDING, request=request, delay=event.delay)
    return pending, effects


def _on_completed(state: DocumentScanState) -> tuple[DocumentScanState, list[SchedulerEffect]]:
    if state.phase is not ScanPhase.RUNNING:
        return state, []

    rerun = state.rerun
    if rerun is None:
        return DocumentScanState(request=state.request), []
    if rerun.reason.immediate:
        running = DocumentScanState(phase=ScanPhase.RUNNING, request=rerun)
        return running, [StartScan(request=rerun)]
    pending = DocumentScanState(phase=ScanPhase.PENDING, request=rerun, delay=state.delay)
    return pending, [ArmTimer(delay=state.delay)]


def advance(
    state: DocumentScanState, event: SchedulerEvent
) -> tuple[DocumentScanState, list[SchedulerEffect]]:
    """Compute the next scheduling state of one document.

    The function is pure: timers and scans are requested through the
    returned effects and carried out by :class:`ScanScheduler`.

    Args:
        state: Current state of the document.
        event: What just happened.

    Returns:
        The new state and the effects to perform, in order.
    """
    if isinstance(event, Trigger):
        return _on_trigger(state, event)

    if isinstance(event, TimerFired):
        if state.phase is ScanPhase.PENDING and state.request is not None:
            running = DocumentScanState(phase=ScanPhase.RUNNING, request=state.request)
            return running, [StartScan(request=state.request)]
        return state, []

    if isinstance(event, ScanCompleted):
        return _on_completed(state)

    if isinstance(event, (Disable, Close)):
        if state.phase is ScanPhase.PENDING:
            return DocumentScanState(request=state.request), [CancelTimer()]
        if state.phase is ScanPhase.RUNNING:
            return state.model_copy(update={"rerun": None, "discard_result": True}), []
        return state, []

    raise TypeError(f"Unknown scheduler event: {event!r}")


@dataclass
class _Slot:
    state: DocumentScanState = field(default_factory=DocumentScanState)
    timer: TimerHandle | None = None
    timer_token: int = 0
    scan_id: int | None = None
    closed: bool = False


class ScanScheduler:
    """Own one scheduling slot per document and carry out transitions.

    Args:
        loop: Provides ``call_later`` for debounce timers.
        start_scan: Starts a scan without blocking; the caller must report
            completion through :meth:`complete` with the same scan id.
    """

    def __init__(self, loop: TimerLoop, start_scan: ScanStarter) -> None:
        self._loop = loop
        self._start_scan = start_scan
        self._slots: dict[int, _Slot] = {}
        self._scan_ids: Iterator[int] = itertools.count(1)

    def trigger(self, request: ScanRequest, settings: Settings) -> None:
        slot = self._slots.get(request.document_id)
        if slot is not None:
            slot.closed = False
        event = Trigger(
            request=request,
            run_mode=settings.run_mode,
            delay=settings.debounce_seconds,
            enabled=settings.enabled,
        )
        self._dispatch(request.document_id, event)

    def complete(self, document_id: int, scan_id: int) -> None:
        """Release the document's running slot once its scan finished."""
        slot = self._slots.get(document_id)
        if slot is None or slot.scan_id != scan_id:
            logger.debug("Ignoring completion of stale scan %s for %s", scan_id, document_id)
            return
        slot.scan_id = None
        self._dispatch(document_id, ScanCompleted())
        if slot.closed and slot.state.phase is ScanPhase.IDLE:
            self._slots.pop(document_id, None)

    def disable(self) -> None:
        """Cancel every armed timer and drop results of in-flight scans."""
        for document_id in list(self._slots):
            self._dispatch(document_id, Disable())

    def forget(self, document_id: int) -> None:
        """Stop tracking a closed document."""
        if document_id not in self._slots:
            return
        slot = self._dispatch(document_id, Close())
        if slot.state.phase is ScanPhase.IDLE:
            self._slots.pop(document_id, None)
        else:
            slot.closed = True

    def phase(self, document_id: int) -> ScanPhase:
        slot = self._slots.get(document_id)
        return slot.state.phase if slot is not None else ScanPhase.IDLE

    def is_current(self, document_id: int, scan_id: int) -> bool:
        """Whether a finished scan's result may still be published."""
        slot = self._slots.get(document_id)
        return (
            slot is not None
            and slot.scan_id == scan_id
            and not slot.closed
            and not slot.state.discard_result
        )

    def _dispatch(self, document_id: int, event: SchedulerEvent) -> _Slot:
        slot = self._slots.setdefault(document_id, _Slot())
        previous: ScanPhase = slot.state.phase
        slot.state, effects = advance(slot.state, event)
        logger.debug(
            "Document %s: %s -> %s on %s",
            document_id,
            previous,
            slot.state.phase,
            type(event).__name__,
        )
        for effect in effects:
            self._apply(document_id, slot, effect)
        return slot

    def _apply(self, document_id: int, slot: _Slot, effect: SchedulerEffect) -> None:
        if isinstance(effect, CancelTimer):
            if slot.timer is not None:
                slot.timer.cancel()
                slot.timer = None
            slot.timer_token += 1
        elif isinstance(effect, ArmTimer):
            slot.timer_token += 1
            slot.timer = self._loop.call_later(
                effect.delay, self._on_timer, document_id, slot.timer_token
            )
        elif isinstance(effect, StartScan):
            scan_id: int = next(self._scan_ids)
            slot.scan_id = scan_id
            self._start_scan(effect.request, scan_id)

    def _on_timer(self, document_id: int, token: int) -> None:
        slot = self._slots.get(document_id)
        if slot is None or slot.timer_token != token:
            return
        slot.timer = None
        self._dispatch(document_id, TimerFired())
