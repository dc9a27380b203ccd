from .base import RunMode, SeverityLevel, StaticAnalyzerReport
from .config import Settings, build_settings, load_settings, render_settings
from .diagnostic import Diagnostic, DiagnosticUserData, RuleDetails
from .finding import Finding, FindingMetadata, ScanRecord
from .scan import ScanPhase, ScanRequest, TriggerReason

__all__ = [
    "Diagnostic",
    "DiagnosticUserData",
    "Finding",
    "FindingMetadata",
    "RuleDetails",
    "RunMode",
    "ScanPhase",
    "ScanRecord",
    "ScanRequest",
    "SeverityLevel",
    "Settings",
    "StaticAnalyzerReport",
    "TriggerReason",
    "build_settings",
    "load_settings",
    "render_settings",
]
