"""Tests for lslsp.handlers.contextinfo — the context sidebar payload."""
from __future__ import annotations

import pytest

from lslsp.handlers.contextinfo import SECTION_DESCRIPTIONS, build_context_info, get_context_info
from lslsp.registry import SchemaRegistry
from lslsp.scanner import Context, ContextKind


@pytest.fixture(scope='module')
def registry():
    return SchemaRegistry()


def _info(source: str, registry, pos: int | None = None) -> dict:
    return get_context_info(source, len(source) if pos is None else pos, registry).to_dict()


class TestContextInfo:
    def test_top_level(self, registry):
        info = _info('', registry)
        assert info['kind'] == 'top-level'
        assert [s['name'] for s in info['sections']] == ['input', 'filter', 'output']
        assert info['sections'][0]['description'] == SECTION_DESCRIPTIONS[0][1]

    def test_section(self, registry):
        info = _info('filter {\n  ', registry)
        assert info['kind'] == 'section'
        assert info['sectionType'] == 'filter'
        plugins = {p['name']: p for p in info['plugins']}
        assert plugins['grok'] == {
            'name': 'grok',
            'description': 'Parses unstructured event data into fields.',
        }
        assert plugins['aggregate'] == {'name': 'aggregate'}
        assert [p['name'] for p in info['plugins']] == sorted(plugins)

    def test_plugin(self, registry):
        info = _info('filter {\n  grok {\n    ', registry)
        assert info['kind'] == 'plugin'
        assert info['sectionType'] == 'filter'
        assert info['pluginName'] == 'grok'
        assert info['pluginDoc']['description'] == 'Parses unstructured event data into fields.'
        names = [o['name'] for o in info['options']]
        assert 'match' in names and 'add_tag' in names
        assert 'optionName' not in info

    def test_required_options_first(self, registry):
        info = _info('input {\n  beats {\n    ', registry)
        options = info['options']
        assert options[0] == {
            'name': 'port',
            'type': 'number',
            'required': True,
            'description': 'The port to listen on.',
        }
        rest = [o['name'] for o in options[1:]]
        assert rest == sorted(rest)

    def test_option_under_cursor(self, registry):
        source = 'filter {\n  grok {\n    match => {}\n  }\n}\n'
        info = _info(source, registry, source.index('match') + 2)
        assert info['kind'] == 'plugin'
        assert info['optionName'] == 'match'
        assert info['optionDoc']['type'] == 'hash'

    def test_common_option_doc(self, registry):
        source = 'filter {\n  grok { add_tag => [] }\n}\n'
        info = _info(source, registry, source.index('add_tag'))
        assert info['optionName'] == 'add_tag'
        assert info['optionDoc']['default'] == '[]'

    def test_unknown_word_under_cursor(self, registry):
        source = 'filter {\n  grok { bogus => 1 }\n}\n'
        info = _info(source, registry, source.index('bogus') + 1)
        assert info['kind'] == 'plugin'
        assert 'optionName' not in info

    def test_inside_hash_value(self, registry):
        info = _info('filter {\n  grok {\n    match => { "message" => "%{IP', registry)
        assert info['kind'] == 'plugin'
        assert info['pluginName'] == 'grok'

    def test_unknown_plugin(self, registry):
        info = _info('filter {\n  grokk {\n    ', registry)
        assert info['kind'] == 'plugin'
        assert info['pluginName'] == 'grokk'
        assert info['options'] == []
        assert 'pluginDoc' not in info

    def test_none(self, registry):
        assert _info('if [a] {\n  ', registry) == {'kind': 'none'}

    def test_codec_context(self, registry):
        info = build_context_info(Context(ContextKind.CODEC), '', 0, registry.snapshot()).to_dict()
        assert info['kind'] == 'codec'
        codecs = {c['name']: c for c in info['plugins']}
        assert 'description' in codecs['json']
        assert codecs['avro'] == {'name': 'avro'}
