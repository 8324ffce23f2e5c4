"""Offset-based diagnostics shared by the failure decoder and the validator."""
from __future__ import annotations

import enum
from dataclasses import dataclass


class Severity(str, enum.Enum):
    ERROR = 'error'
    WARNING = 'warning'


@dataclass(frozen=True)
class Diagnostic:
    from_: int
    to: int
    severity: Severity
    message: str

    def to_dict(self) -> dict:
        return {
            'from': self.from_,
            'to': self.to,
            'severity': self.severity.value,
            'message': self.message,
        }


def clamp_from(offset: int, source: str) -> int:
    """Clamp a start offset into ``[0, len-1]`` (0 for an empty document)."""
    if offset < 0:
        return 0
    if offset >= len(source):
        return max(0, len(source) - 1)
    return offset


def clamp_to(offset: int, source: str) -> int:
    """Clamp an end offset into ``[0, len]``."""
    return max(0, min(offset, len(source)))


def span(from_: int, to: int, source: str, severity: Severity, message: str) -> Diagnostic:
    """Build a diagnostic with both ends clamped and ``from_ <= to``."""
    start = clamp_from(from_, source)
    end = max(start, clamp_to(to, source))
    return Diagnostic(from_=start, to=end, severity=severity, message=message)
