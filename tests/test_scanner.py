"""Tests for lslsp.scanner — cursor context classification."""
from __future__ import annotations

import pytest

from lslsp.scanner import (
    MAX_DEPTH,
    ContextKind,
    detect_context,
    detect_structural_context,
    replace_start,
    word_at,
)
from lslsp.tree import SectionType


def _at_end(source: str):
    return detect_context(source, len(source))


def _structural_at_end(source: str):
    return detect_structural_context(source, len(source))


class TestDetectContext:
    def test_empty_document_is_top_level(self):
        assert detect_context('', 0).kind is ContextKind.SECTION

    def test_top_level_after_section(self):
        assert _at_end('input {\n  stdin {}\n}\n').kind is ContextKind.SECTION

    def test_inside_section(self):
        ctx = _at_end('filter {\n  ')
        assert ctx.kind is ContextKind.PLUGIN
        assert ctx.section_type is SectionType.FILTER
        assert ctx.plugin_name is None

    def test_inside_plugin(self):
        ctx = _at_end('filter {\n  grok {\n    ')
        assert ctx.kind is ContextKind.OPTION
        assert ctx.section_type is SectionType.FILTER
        assert ctx.plugin_name == 'grok'

    def test_plugin_after_closed_plugin(self):
        ctx = _at_end('output {\n  stdout {}\n  ')
        assert ctx.kind is ContextKind.PLUGIN
        assert ctx.section_type is SectionType.OUTPUT

    def test_codec_value(self):
        assert _at_end('output {\n  stdout { codec => ').kind is ContextKind.CODEC

    def test_codec_value_partial_word(self):
        source = 'output {\n  stdout { codec => js'
        assert _at_end(source).kind is ContextKind.CODEC
        assert replace_start(source, len(source)) == len(source) - 2

    def test_other_option_value(self):
        assert _at_end('filter {\n  mutate { add_tag => ').kind is ContextKind.NONE

    def test_inside_string(self):
        assert _at_end('filter {\n  grok { match => "abc').kind is ContextKind.NONE

    def test_inside_string_after_codec_arrow(self):
        assert _at_end('output {\n  stdout { codec => "js').kind is ContextKind.NONE

    def test_inside_comment(self):
        assert _at_end('filter {\n  # a comment ').kind is ContextKind.NONE

    def test_after_comment(self):
        assert _at_end('filter {\n  # a { comment\n  ').kind is ContextKind.PLUGIN

    def test_braces_in_strings_are_ignored(self):
        ctx = _at_end('filter {\n  grok { match => "}{" }\n  ')
        assert ctx.kind is ContextKind.PLUGIN

    def test_escaped_quote(self):
        ctx = _at_end('filter {\n  grok { match => "a\\"b" }\n  ')
        assert ctx.kind is ContextKind.PLUGIN

    def test_single_quoted_string(self):
        ctx = _at_end("filter {\n  grok { match => 'a}b' }\n  ")
        assert ctx.kind is ContextKind.PLUGIN

    def test_inside_hash_value(self):
        assert _at_end('filter {\n  grok {\n    match => {\n      ').kind is ContextKind.NONE

    def test_nested_block_in_plugin(self):
        assert _at_end('filter {\n  grok {\n    foo {\n      ').kind is ContextKind.NONE

    def test_inside_if(self):
        ctx = _at_end('filter {\n  if [type] == "x" {\n    ')
        assert ctx.kind is ContextKind.PLUGIN
        assert ctx.section_type is SectionType.FILTER

    def test_inside_else_if_and_else(self):
        head = 'output {\n  if [a] {\n  } else if [b] {\n    '
        assert _at_end(head).section_type is SectionType.OUTPUT
        assert _at_end('output {\n  if [a] {\n  } else {\n    ').kind is ContextKind.PLUGIN

    def test_plugin_inside_conditional(self):
        ctx = _at_end('filter {\n  if [a] {\n    mutate {\n      ')
        assert ctx.kind is ContextKind.OPTION
        assert ctx.plugin_name == 'mutate'

    def test_conditional_outside_section(self):
        assert _at_end('if [a] {\n  ').kind is ContextKind.NONE

    def test_unbalanced_close_brace(self):
        assert _at_end('}\n}\n').kind is ContextKind.SECTION

    def test_cursor_is_clamped(self):
        assert detect_context('filter {', -5).kind is ContextKind.SECTION
        assert detect_context('filter {', 10_000).kind is ContextKind.PLUGIN

    def test_depth_limit_yields_none(self):
        source = 'filter {' + '{' * (MAX_DEPTH + 10)
        assert _at_end(source).kind is ContextKind.NONE
        assert _structural_at_end(source).kind is ContextKind.NONE

    def test_depth_at_limit_is_fine(self):
        source = 'filter {' + '{' * (MAX_DEPTH - 1)
        assert _at_end(source).kind is ContextKind.PLUGIN

    @pytest.mark.parametrize('source', ['', 'x', '{{{', '}}}', '"', "'", '#', '=>', 'a => {', '\\'])
    def test_never_raises(self, source):
        for pos in range(len(source) + 1):
            assert detect_context(source, pos) is not None
            assert detect_structural_context(source, pos) is not None


class TestDetectStructuralContext:
    def test_inside_string_still_classified(self):
        ctx = _structural_at_end('filter {\n  grok { match => "abc')
        assert ctx.kind is ContextKind.OPTION
        assert ctx.plugin_name == 'grok'

    def test_inside_hash_reports_enclosing_plugin(self):
        ctx = _structural_at_end('filter {\n  grok {\n    match => {\n      ')
        assert ctx.kind is ContextKind.OPTION
        assert ctx.plugin_name == 'grok'

    def test_option_value_is_still_option_context(self):
        ctx = _structural_at_end('filter {\n  mutate { add_tag => ')
        assert ctx.kind is ContextKind.OPTION

    def test_token_under_cursor_read_to_end(self):
        source = 'filter {\n  grok {\n    match => {}\n  }\n}\n'
        pos = source.index('grok') + 2
        ctx = detect_structural_context(source, pos)
        assert ctx.kind is ContextKind.OPTION
        assert ctx.plugin_name == 'grok'

    def test_top_level(self):
        assert _structural_at_end('').kind is ContextKind.SECTION

    def test_section(self):
        ctx = _structural_at_end('input {\n  ')
        assert ctx.kind is ContextKind.PLUGIN
        assert ctx.section_type is SectionType.INPUT


class TestWords:
    def test_replace_start(self):
        assert replace_start('abc def', 7) == 4
        assert replace_start('abc ', 4) == 4
        assert replace_start('', 0) == 0

    def test_word_at_middle(self):
        source = 'filter {\n  grok'
        assert word_at(source, 12) == ('grok', 11, 15)

    def test_word_at_end(self):
        assert word_at('a => json', 9) == ('json', 5, 9)

    def test_word_at_whitespace(self):
        assert word_at('a  b', 2) is None
