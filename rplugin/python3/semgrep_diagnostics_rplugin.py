from semgrep_diagnostics.entrypoints.nvim_plugin import SemgrepDiagnosticsPlugin

__all__ = ["SemgrepDiagnosticsPlugin"]
