"""
Per-document parse cache.

Each open document is stored as a ``ParsedDocument``.  Parsing is performed
synchronously (pipeline files are typically small) whenever the content
changes.  The parse outcome (a tree, or the parser's failure report) is kept
alongside the text so diagnostics, document symbols and hover can be
computed without re-parsing.

Positions
---------
Everything below the LSP layer works with character offsets into the
source.  :class:`LineIndex` converts between offsets and LSP
``(line, character)`` positions by counting characters, i.e. multi-byte
text is not re-encoded to UTF-16 units.
"""
from __future__ import annotations

import bisect
from dataclasses import dataclass, field

from lsprotocol import types as lsp

from lslsp.decoder import decode_failure
from lslsp.diagnostic import Diagnostic
from lslsp.parser import ParseFailure, PipelineParser, default_parser
from lslsp.registry import SchemaSnapshot
from lslsp.tree import Config
from lslsp.validate import validate


class LineIndex:
    """Offset <-> (line, character) conversion for one text."""

    def __init__(self, source: str):
        self._length = len(source)
        self._starts = [0]
        for i, ch in enumerate(source):
            if ch == '\n':
                self._starts.append(i + 1)

    def position(self, offset: int) -> lsp.Position:
        offset = max(0, min(offset, self._length))
        line = bisect.bisect_right(self._starts, offset) - 1
        return lsp.Position(line=line, character=offset - self._starts[line])

    def offset(self, position: lsp.Position) -> int:
        if position.line < 0:
            return 0
        if position.line >= len(self._starts):
            return self._length
        start = self._starts[position.line]
        end = self._starts[position.line + 1] - 1 if position.line + 1 < len(self._starts) else self._length
        return min(start + max(0, position.character), end)

    def range(self, from_: int, to: int) -> lsp.Range:
        return lsp.Range(start=self.position(from_), end=self.position(to))


@dataclass
class ParsedDocument:
    uri: str
    source: str
    version: int | None = None
    tree: Config | None = None             # None when parsing failed or was skipped
    failure: ParseFailure | None = None
    lines: LineIndex = field(init=False, repr=False)

    def __post_init__(self):
        self.lines = LineIndex(self.source)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def blank(self) -> bool:
        return not self.source.strip()


def parse_document(
    uri: str,
    source: str,
    version: int | None = None,
    parser: PipelineParser | None = None,
) -> ParsedDocument:
    """Parse *source* and return a :class:`ParsedDocument`.

    A blank document is not parsed: it has no tree and no failure.
    """
    if not source.strip():
        return ParsedDocument(uri=uri, source=source, version=version)
    from pathlib import PurePosixPath
    name = PurePosixPath(uri).name or 'pipeline'
    result = (parser or default_parser()).parse(source, name=name)
    return ParsedDocument(
        uri=uri,
        source=source,
        version=version,
        tree=result.tree,
        failure=result.failure,
    )


@dataclass(frozen=True)
class ParseOutcome:
    ok: bool
    diagnostics: list[Diagnostic]

    def to_dict(self) -> dict:
        return {'ok': self.ok, 'diagnostics': [d.to_dict() for d in self.diagnostics]}


def document_diagnostics(doc: ParsedDocument, snapshot: SchemaSnapshot) -> ParseOutcome:
    """Syntax errors for a failed parse, registry warnings for a good one."""
    if doc.failure is not None:
        return ParseOutcome(
            ok=False,
            diagnostics=decode_failure(doc.failure.report, doc.source, doc.failure.farthest),
        )
    if doc.tree is None:
        return ParseOutcome(ok=True, diagnostics=[])
    return ParseOutcome(ok=True, diagnostics=validate(doc.tree, doc.source, snapshot))


def parse_and_validate(source: str, snapshot: SchemaSnapshot, uri: str = 'pipeline') -> ParseOutcome:
    """Parse *source* and return its diagnostics in one call."""
    return document_diagnostics(parse_document(uri, source), snapshot)
