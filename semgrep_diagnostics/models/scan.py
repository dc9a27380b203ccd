from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from semgrep_diagnostics.models.base import RunMode


class TriggerReason(StrEnum):
    EDIT = "edit"
    SAVE = "save"
    MANUAL = "manual"

    @property
    def immediate(self) -> bool:
        return self is not TriggerReason.EDIT


class ScanRequest(BaseModel):
    """Ask for one scan of one document."""

    model_config = ConfigDict(frozen=True)

    document_id: int
    path: Path
    reason: TriggerReason


class ScanPhase(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"


class DocumentScanState(BaseModel):
    """Scheduling state of a single document.

    Attributes:
        phase: Idle, waiting on a debounce timer, or scanning.
        request: Latest request seen for the document.
        rerun: Trigger that arrived while a scan was running.
        delay: Debounce delay in seconds for re-arming after a running scan.
        discard_result: Drop the in-flight scan's result when it completes.
    """

    model_config = ConfigDict(frozen=True)

    phase: ScanPhase = ScanPhase.IDLE
    request: ScanRequest | None = None
    rerun: ScanRequest | None = None
    delay: float = 0.0
    discard_result: bool = False


class Trigger(BaseModel):
    model_config = ConfigDict(frozen=True)

    request: ScanRequest
    run_mode: RunMode
    delay: float = Field(..., ge=0)
    enabled: bool = True


class TimerFired(BaseModel):
    model_config = ConfigDict(frozen=True)


class ScanCompleted(BaseModel):
    model_config = ConfigDict(frozen=True)


class Disable(BaseModel):
    model_config = ConfigDict(frozen=True)


class Close(BaseModel):
    model_config = ConfigDict(frozen=True)


SchedulerEvent = Trigger | TimerFired | ScanCompleted | Disable | Close


class ArmTimer(BaseModel):
    model_config = ConfigDict(frozen=True)

    delay: float


class CancelTimer(BaseModel):
    model_config = ConfigDict(frozen=True)


class StartScan(BaseModel):
    model_config = ConfigDict(frozen=True)

    request: ScanRequest


SchedulerEffect = ArmTimer | CancelTimer | StartScan
