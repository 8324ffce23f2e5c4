"""
Pipeline configuration parser.

Wraps a ``lark`` LALR grammar (``logstash.lark``) behind a narrow
interface: :meth:`PipelineParser.parse` returns a :class:`ParseResult`
holding either a :class:`~lslsp.tree.Config` tree or a
:class:`ParseFailure`.  Failures are plain text in the report formats
understood by :mod:`lslsp.decoder`; nothing downstream looks at lark's
exception objects.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.resources import files

from lark import Lark, Transformer, v_args
from lark.exceptions import (
    LarkError,
    UnexpectedCharacters,
    UnexpectedEOF,
    UnexpectedInput,
    UnexpectedToken,
    VisitError,
)

from lslsp.tree import (
    Attribute,
    Block,
    Branch,
    Config,
    Plugin,
    PluginSection,
    SectionType,
)

logger = logging.getLogger(__name__)

_GRAMMAR = (files(__package__) / 'logstash.lark').read_text(encoding='utf-8')

# Human-readable names for the regex terminals in expectation lists.
_TERMINAL_NAMES = {
    '$END': 'end of input',
    'SECTION_TYPE': 'section (input, filter or output)',
    'NAME': 'identifier',
    'STRING': 'string',
    'NUMBER': 'number',
    'SELECTOR_ELEMENT': 'field reference',
    'REGEX': 'regular expression',
    'COMPARE_OP': 'comparison operator',
    'REGEXP_OP': 'regexp operator',
    'BOOLEAN_OPERATOR': 'boolean operator',
}


@dataclass(frozen=True)
class ParseFailure:
    report: str                  # one problem per line
    farthest: str | None = None  # optional farthest-failure report


@dataclass(frozen=True)
class ParseResult:
    tree: Config | None = None
    failure: ParseFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] in '"\'' and text[-1] == text[0]:
        return text[1:-1]
    return text


@v_args(meta=True)
class _TreeBuilder(Transformer):
    """Turn the lark parse tree into :mod:`lslsp.tree` nodes."""

    def __init__(self, source: str):
        super().__init__()
        self._source = source

    def start(self, meta, children):
        return Config(sections=tuple(children))

    def section(self, meta, children):
        keyword, body = children
        return PluginSection(
            section_type=SectionType(str(keyword)),
            offset=keyword.start_pos,
            end=meta.end_pos,
            body=body,
        )

    def body(self, meta, children):
        return tuple(c for c in children if isinstance(c, (Plugin, Branch)))

    def plugin(self, meta, children):
        name, *attributes = children
        return Plugin(
            name=str(name),
            offset=name.start_pos,
            end=meta.end_pos,
            attributes=tuple(attributes),
        )

    def attribute(self, meta, children):
        name, (value_text, value_offset) = children
        return Attribute(
            name=_strip_quotes(str(name)),
            offset=name.start_pos,
            value=value_text,
            value_offset=value_offset,
        )

    def value(self, meta, children):
        return self._source[meta.start_pos:meta.end_pos], meta.start_pos

    def condition(self, meta, children):
        return self._source[meta.start_pos:meta.end_pos]

    def if_block(self, meta, children):
        condition, body = children
        return Block('if', condition, meta.start_pos, meta.end_pos, body)

    def else_if_block(self, meta, children):
        condition, body = children
        return Block('else if', condition, meta.start_pos, meta.end_pos, body)

    def else_block(self, meta, children):
        (body,) = children
        return Block('else', None, meta.start_pos, meta.end_pos, body)

    def branch(self, meta, children):
        if_block, *rest = children
        else_block = None
        if rest and rest[-1].keyword == 'else':
            else_block = rest.pop()
        return Branch(if_block=if_block, else_if_blocks=tuple(rest), else_block=else_block)


def _line_col(source: str, offset: int) -> tuple[int, int]:
    """1-based line and column of *offset*."""
    line = source.count('\n', 0, offset) + 1
    column = offset - (source.rfind('\n', 0, offset) + 1) + 1
    return line, column


class PipelineParser:
    """Parses pipeline configurations; failures are reported as text."""

    def __init__(self):
        self._lark = Lark(
            _GRAMMAR,
            parser='lalr',
            lexer='contextual',
            propagate_positions=True,
        )

    def parse(self, source: str, name: str = 'pipeline') -> ParseResult:
        try:
            tree = self._lark.parse(source)
        except UnexpectedInput as exc:
            return ParseResult(failure=self._failure(exc, source, name))
        except LarkError as exc:
            logger.warning('parser: unexpected lark error', exc_info=True)
            return ParseResult(failure=ParseFailure(report=str(exc)))
        try:
            return ParseResult(tree=_TreeBuilder(source).transform(tree))
        except VisitError as exc:
            logger.error('parser: failed to build tree', exc_info=True)
            return ParseResult(failure=ParseFailure(report=str(exc.orig_exc or exc)))

    # -- failure reports ---------------------------------------------------

    def _describe_terminal(self, name: str) -> str:
        if name in _TERMINAL_NAMES:
            return _TERMINAL_NAMES[name]
        try:
            pattern = self._lark.get_terminal(name).pattern
        except KeyError:
            return name
        if pattern.type == 'str':
            return f'"{pattern.value}"'
        return name.lower()

    def _failure(self, exc: UnexpectedInput, source: str, name: str) -> ParseFailure:
        if isinstance(exc, UnexpectedToken):
            if exc.token.type == '$END':
                offset = len(source)
                message = 'unexpected end of input'
            else:
                offset = exc.token.start_pos
                message = f'unexpected "{exc.token}"'
            expected = exc.expected
        elif isinstance(exc, UnexpectedCharacters):
            offset = exc.pos_in_stream
            message = f'invalid character {source[offset:offset + 1]!r}'
            expected = exc.allowed or ()
        elif isinstance(exc, UnexpectedEOF):
            offset = len(source)
            message = 'unexpected end of input'
            expected = exc.expected
        else:
            offset = 0
            message = str(exc)
            expected = ()

        line, column = _line_col(source, offset)
        report = f'{name}:{line}:{column} ({offset}): {message}'
        described = sorted({self._describe_terminal(t) for t in expected})
        farthest = '\n'.join(
            [f'parse failed at pos {line}:{column} [{offset}] and [{offset}]']
            + [f' -> {d}' for d in described]
        )
        logger.debug('parser: %s', report)
        return ParseFailure(report=report, farthest=farthest)


_cached_parser: PipelineParser | None = None


def default_parser() -> PipelineParser:
    """Module-level cached parser (grammar compilation is the slow part)."""
    global _cached_parser
    if _cached_parser is None:
        _cached_parser = PipelineParser()
    return _cached_parser


def parse_config(source: str, name: str = 'pipeline') -> ParseResult:
    return default_parser().parse(source, name)
