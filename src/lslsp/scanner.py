"""
Cursor context classification by forward text scanning.

Completion and the context sidebar both need to know where the cursor sits
in the pipeline grammar (top level, inside a section, inside a plugin, at a
codec value) while the user is typing, i.e. while the document usually does
not parse.  Instead of a parse tree this module scans the text from the
start up to the cursor, skipping comments and strings and keeping a stack
of brace frames:

* ``input {`` / ``filter {`` / ``output {`` push a *section* frame;
* ``if ... {``, ``else {`` and any bare ``{`` push a *conditional* frame;
* ``name {`` directly inside a section or conditional pushes a *plugin*
  frame (this is how plugins are recognised without knowing the registry);
* ``=> {`` and ``name {`` anywhere else push a *hash* frame;
* ``}`` pops whatever is on top, mismatched or not.

Two variants share this machinery:

:func:`detect_context`
    The completion variant.  It first checks whether the cursor is in a
    value position (after ``=>``), and it gives up (``ContextKind.NONE``)
    when the cursor is inside a string, a comment or a hash value.

:func:`detect_structural_context`
    The sidebar variant.  It never gives up because of strings or
    comments, lets the token under the cursor be read to its end, and
    reports the enclosing plugin when the cursor is inside a hash value.

Both are pure functions of ``(source, pos)`` and never raise.
"""
from __future__ import annotations

import enum
import string
from dataclasses import dataclass

from lslsp.tree import SectionType

MAX_DEPTH = 256

_IDENT_START = frozenset(string.ascii_letters + '_')
_IDENT_CHARS = _IDENT_START | frozenset(string.digits)
_WHITESPACE = frozenset(' \t\r\n')

_SECTION_KEYWORDS = {
    'input': SectionType.INPUT,
    'filter': SectionType.FILTER,
    'output': SectionType.OUTPUT,
}
_CONDITIONAL_KEYWORDS = frozenset({'if', 'else'})


class FrameKind(enum.Enum):
    SECTION = 'section'
    PLUGIN = 'plugin'
    CONDITIONAL = 'conditional'
    HASH = 'hash'


class ContextKind(str, enum.Enum):
    SECTION = 'section'    # top level: a section keyword is expected
    PLUGIN = 'plugin'      # inside a section or conditional
    OPTION = 'option'      # inside a plugin block
    CODEC = 'codec'        # value position of a ``codec =>`` option
    NONE = 'none'


@dataclass(frozen=True)
class ScanFrame:
    kind: FrameKind
    section_type: SectionType | None = None
    plugin_name: str | None = None


@dataclass(frozen=True)
class Context:
    kind: ContextKind
    section_type: SectionType | None = None
    plugin_name: str | None = None


NO_CONTEXT = Context(ContextKind.NONE)


class _InsideLiteral(Exception):
    """The cursor lies inside a string or comment."""


class _ScanLimitExceeded(Exception):
    """Nesting deeper than MAX_DEPTH."""


def is_ident_start(ch: str) -> bool:
    return ch in _IDENT_START


def is_ident_char(ch: str) -> bool:
    return ch in _IDENT_CHARS


def _clamp(source: str, pos: int) -> int:
    return max(0, min(pos, len(source)))


# ---------------------------------------------------------------------------
# Frame stack
# ---------------------------------------------------------------------------

class _FrameStack:
    def __init__(self):
        self.frames: list[ScanFrame] = []

    def __len__(self):
        return len(self.frames)

    def push(self, kind: FrameKind, section_type: SectionType | None, plugin_name: str | None = None) -> None:
        if len(self.frames) >= MAX_DEPTH:
            raise _ScanLimitExceeded()
        self.frames.append(ScanFrame(kind, section_type, plugin_name))

    def pop(self) -> None:
        # Unbalanced '}' while typing is common; ignore it.
        if self.frames:
            self.frames.pop()

    @property
    def top(self) -> ScanFrame | None:
        return self.frames[-1] if self.frames else None

    def section_type(self) -> SectionType | None:
        for frame in reversed(self.frames):
            if frame.section_type is not None:
                return frame.section_type
        return None


def _scan(source: str, pos: int, tolerant: bool) -> _FrameStack:
    """Forward brace-nesting scan of ``source[:pos]``.

    In strict mode every token is cut at *pos* and :class:`_InsideLiteral`
    is raised when the cursor is inside a string or comment.  In tolerant
    mode a token that starts before the cursor is read to its end.
    """
    limit = len(source) if tolerant else pos
    stack = _FrameStack()
    i = 0
    while i < pos:
        ch = source[i]

        if ch == '#':
            while i < limit and source[i] != '\n':
                i += 1
            if not tolerant and i >= pos:
                raise _InsideLiteral()
            continue

        if ch == '"' or ch == "'":
            i += 1
            while i < limit and source[i] != ch:
                if source[i] == '\\':
                    i += 1
                i += 1
            if i >= limit:
                if not tolerant:
                    raise _InsideLiteral()
                continue
            i += 1
            continue

        if ch == '{':
            stack.push(FrameKind.CONDITIONAL, stack.section_type())
            i += 1
            continue

        if ch == '}':
            stack.pop()
            i += 1
            continue

        if ch == '=' and i + 1 < limit and source[i + 1] == '>':
            i += 2
            while i < limit and source[i] in _WHITESPACE:
                i += 1
            if i < limit and source[i] == '{':
                stack.push(FrameKind.HASH, stack.section_type())
                i += 1
            continue

        if is_ident_start(ch):
            start = i
            while i < limit and is_ident_char(source[i]):
                i += 1
            ident = source[start:i]
            j = i
            while j < limit and source[j] in _WHITESPACE:
                j += 1
            if j < limit and source[j] == '{':
                if ident in _SECTION_KEYWORDS:
                    stack.push(FrameKind.SECTION, _SECTION_KEYWORDS[ident])
                elif ident in _CONDITIONAL_KEYWORDS:
                    stack.push(FrameKind.CONDITIONAL, stack.section_type())
                elif stack.top is not None and stack.top.kind in (FrameKind.SECTION, FrameKind.CONDITIONAL):
                    stack.push(FrameKind.PLUGIN, stack.section_type(), ident)
                else:
                    # A key inside a plugin or hash, not a new plugin.
                    stack.push(FrameKind.HASH, stack.section_type())
                i = j + 1
            continue

        i += 1
    return stack


def _classify(stack: _FrameStack, tolerant: bool) -> Context:
    top = stack.top
    if top is None:
        return Context(ContextKind.SECTION)
    if top.kind in (FrameKind.SECTION, FrameKind.CONDITIONAL):
        if top.section_type is None:
            # A conditional outside any section.
            return NO_CONTEXT
        return Context(ContextKind.PLUGIN, top.section_type)
    if top.kind is FrameKind.PLUGIN:
        return _option_context(top)
    if tolerant:
        for frame in reversed(stack.frames[:-1]):
            if frame.kind is FrameKind.PLUGIN:
                return _option_context(frame)
    return NO_CONTEXT


def _option_context(frame: ScanFrame) -> Context:
    if frame.section_type is None:
        return NO_CONTEXT
    return Context(ContextKind.OPTION, frame.section_type, frame.plugin_name)


# ---------------------------------------------------------------------------
# Value position (completion only)
# ---------------------------------------------------------------------------

def _value_position(source: str, pos: int) -> Context | None:
    """Return the context for a cursor after ``=>``, or None if it is not."""
    p = pos - 1
    while p >= 0 and is_ident_char(source[p]):
        p -= 1
    while p >= 0 and source[p] in _WHITESPACE:
        p -= 1
    if p < 1 or source[p - 1] != '=' or source[p] != '>':
        return None
    ap = p - 2
    while ap >= 0 and source[ap] in _WHITESPACE:
        ap -= 1
    name_end = ap + 1
    while ap >= 0 and is_ident_char(source[ap]):
        ap -= 1
    if source[ap + 1:name_end] == 'codec':
        return Context(ContextKind.CODEC)
    # Arbitrary option values get no completion.
    return NO_CONTEXT


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def detect_context(source: str, pos: int) -> Context:
    """Classify *pos* for completion.

    Returns ``ContextKind.NONE`` inside strings, comments, hash values and
    non-codec option values.  The string and comment check runs before the
    ``=>`` value check, so a cursor inside an open literal is always NONE.
    """
    pos = _clamp(source, pos)
    try:
        stack = _scan(source, pos, tolerant=False)
    except _InsideLiteral:
        return NO_CONTEXT
    except _ScanLimitExceeded:
        stack = None
    value_ctx = _value_position(source, pos)
    if value_ctx is not None:
        return value_ctx
    if stack is None:
        return NO_CONTEXT
    return _classify(stack, tolerant=False)


def detect_structural_context(source: str, pos: int) -> Context:
    """Classify *pos* for the context sidebar and hover.

    Best effort: strings and comments do not stop the scan, and a cursor
    inside a hash value reports the plugin that owns it.
    """
    pos = _clamp(source, pos)
    try:
        stack = _scan(source, pos, tolerant=True)
    except _ScanLimitExceeded:
        return NO_CONTEXT
    return _classify(stack, tolerant=True)


def replace_start(source: str, pos: int) -> int:
    """Start of the identifier that ends at *pos* (the completion "from")."""
    pos = _clamp(source, pos)
    start = pos
    while start > 0 and is_ident_char(source[start - 1]):
        start -= 1
    return start


def word_at(source: str, pos: int) -> tuple[str, int, int] | None:
    """Return ``(word, start, end)`` for the identifier around *pos*."""
    pos = _clamp(source, pos)
    start = replace_start(source, pos)
    end = pos
    while end < len(source) and is_ident_char(source[end]):
        end += 1
    if start == end:
        return None
    return source[start:end], start, end
