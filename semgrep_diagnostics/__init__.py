"""Run semgrep on open buffers and show its findings as editor diagnostics."""

__version__ = "0.1.0"
