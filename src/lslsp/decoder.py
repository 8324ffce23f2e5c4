"""
Decode a parser failure report into positioned diagnostics.

The parser reports failures as text, one problem per line::

    pipeline.conf:3:7 (25): rule plugin: unexpected "=>"

i.e. an optional source tag, ``line:col``, the character offset in
parentheses, an optional ``rule X:`` marker and a free-text message.  It
may also produce a "farthest failure" report naming what it expected at the
position where it got furthest::

    parse failed at pos 3:7 [25] and [25]
     -> "}"
     -> identifier

This module is the only place that knows those formats; a different parser
only needs a different decoder.
"""
from __future__ import annotations

import re

from lslsp.diagnostic import Diagnostic, Severity, clamp_from

_ERR_LINE_RE = re.compile(
    r'^(?:\S+:)?(\d+):(\d+)\s+\((\d+)\)(?::\s*(?:rule\s+\S+:\s*)?)?(.*)$'
)
_FARTHEST_RE = re.compile(r'at pos (\d+):(\d+) \[(\d+)\] and \[(\d+)\]')

FARTHEST_FALLBACK_MESSAGE = 'parse failed at this position'


def _point(offset: int, source: str, severity: Severity, message: str) -> Diagnostic:
    """A one-character diagnostic (the parser reports points, not ranges)."""
    start = clamp_from(offset, source)
    return Diagnostic(from_=start, to=min(start + 1, len(source)), severity=severity, message=message)


def decode_report(raw: str, source: str) -> list[Diagnostic]:
    """Decode the primary failure report into error diagnostics.

    Duplicates (same start offset) keep the first message seen.  Lines that
    do not match the expected format are anchored at offset 0.
    """
    diags: list[Diagnostic] = []
    seen: set[int] = set()
    for line in (raw or '').splitlines():
        line = line.strip()
        if not line:
            continue
        m = _ERR_LINE_RE.match(line)
        if m is None:
            diag = _point(0, source, Severity.ERROR, line)
        else:
            diag = _point(int(m.group(3)), source, Severity.ERROR, m.group(4).strip() or line)
        if diag.from_ in seen:
            continue
        seen.add(diag.from_)
        diags.append(diag)
    return diags


def decode_farthest(raw: str | None, source: str) -> Diagnostic | None:
    """Decode the farthest-failure report into a single warning, if present."""
    if not raw:
        return None
    m = _FARTHEST_RE.search(raw)
    if m is None:
        return None
    expected = []
    for line in raw.splitlines():
        line = line.strip()
        if line.startswith('->'):
            expected.append(line[2:].strip())
    message = '; '.join(e for e in expected if e) or FARTHEST_FALLBACK_MESSAGE
    return _point(int(m.group(3)), source, Severity.WARNING, message)


def decode_failure(raw: str, source: str, farthest: str | None = None) -> list[Diagnostic]:
    """Turn a parser failure into a non-empty list of diagnostics.

    Never raises; malformed reports degrade to a single error on the first
    character carrying the raw text.
    """
    diags = decode_report(raw, source)
    if not diags:
        diags.append(Diagnostic(
            from_=0,
            to=min(1, len(source)),
            severity=Severity.ERROR,
            message=(raw or '').strip() or 'syntax error',
        ))
    extra = decode_farthest(farthest, source)
    if extra is not None and all(d.from_ != extra.from_ for d in diags):
        diags.append(extra)
    return diags
