"""Convert offset-based pipeline diagnostics into LSP Diagnostic objects."""
from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol import types as lsp

from lslsp.diagnostic import Diagnostic, Severity
from lslsp.document import ParsedDocument, document_diagnostics

if TYPE_CHECKING:
    from lslsp.document import LineIndex
    from lslsp.registry import SchemaRegistry

_SEVERITIES = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
}


def to_lsp(diag: Diagnostic, lines: LineIndex) -> lsp.Diagnostic:
    return lsp.Diagnostic(
        range=lines.range(diag.from_, diag.to),
        message=diag.message,
        severity=_SEVERITIES[diag.severity],
        source='lslsp',
    )


def get_diagnostics(doc: ParsedDocument, registry: SchemaRegistry) -> list[lsp.Diagnostic]:
    """Return LSP ``Diagnostic`` objects for *doc* against the active registry."""
    outcome = document_diagnostics(doc, registry.snapshot())
    return [to_lsp(d, doc.lines) for d in outcome.diagnostics]
