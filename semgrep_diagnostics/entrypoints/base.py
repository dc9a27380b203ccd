import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from semgrep_diagnostics.clients.console import ConsoleHost
from semgrep_diagnostics.models.config import Settings
from semgrep_diagnostics.services.diagnostics import SemgrepDiagnosticsService

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "WARNING") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


async def scan_files(
    host: ConsoleHost, paths: Sequence[Path], settings: Settings
) -> tuple[SemgrepDiagnosticsService, dict[Path, int]]:
    """Open each file in ``host`` and scan it once.

    Args:
        host: Console host receiving diagnostics and notifications.
        paths: Files to scan.
        settings: Configuration snapshot for the scans.

    Returns:
        The service that ran the scans and the buffer assigned to each path.
    """
    service = SemgrepDiagnosticsService(host, asyncio.get_running_loop(), settings)
    buffers: dict[Path, int] = {}
    for path in paths:
        buffer: int = host.open(path)
        buffers[path] = buffer
        service.run_now(buffer)
    await service.drain()
    return service, buffers
