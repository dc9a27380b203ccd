from __future__ import annotations

import logging
from collections.abc import Sequence

from semgrep_diagnostics.clients.host import HostEditor
from semgrep_diagnostics.models.diagnostic import Diagnostic
from semgrep_diagnostics.models.finding import Finding

logger = logging.getLogger(__name__)


class DiagnosticPublisher:
    """Make a document's findings visible under the plugin's namespace.

    Only the namespace created here is ever reset or written, so
    diagnostics from other sources stay untouched.
    """

    def __init__(
        self,
        host: HostEditor,
        namespace_name: str,
        source: str = "semgrep",
        annotate_rule_id: bool = True,
    ) -> None:
        self.host = host
        self.namespace: int = host.create_namespace(namespace_name)
        self.source = source
        self.annotate_rule_id = annotate_rule_id

    def to_diagnostic(self, finding: Finding) -> Diagnostic:
        return Diagnostic.from_finding(
            finding, source=self.source, annotate_rule_id=self.annotate_rule_id
        )

    def publish(self, document_id: int, findings: Sequence[Finding]) -> bool:
        """Replace the document's diagnostics with ``findings``.

        Args:
            document_id: Buffer the scan ran for.
            findings: Complete new finding set; an empty sequence clears.

        Returns:
            ``False`` when the buffer is gone and the result was discarded.
        """
        if not self.host.is_buffer_valid(document_id):
            logger.debug("Discarding findings for closed buffer %s", document_id)
            return False

        diagnostics: list[Diagnostic] = [self.to_diagnostic(f) for f in findings]
        self.host.reset_diagnostics(self.namespace, document_id)
        self.host.set_diagnostics(self.namespace, document_id, diagnostics)
        logger.debug("Published %d diagnostics for buffer %s", len(diagnostics), document_id)
        return True

    def clear(self, document_id: int) -> None:
        if self.host.is_buffer_valid(document_id):
            self.host.reset_diagnostics(self.namespace, document_id)

    def clear_all(self) -> None:
        for buffer in self.host.list_buffers():
            self.clear(buffer)

    def diagnostics_at(self, document_id: int, line: int, col: int) -> list[Diagnostic]:
        """Diagnostics of this namespace starting on ``line`` and spanning ``col``."""
        return [
            diagnostic
            for diagnostic in self.host.get_diagnostics(self.namespace, document_id, line)
            if diagnostic.covers(line, col)
        ]
