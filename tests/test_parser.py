"""Tests for lslsp.parser — the lark pipeline parser adapter."""
from __future__ import annotations

import pytest

from lslsp.decoder import decode_failure, decode_report
from lslsp.parser import default_parser, parse_config
from lslsp.tree import Branch, Plugin, SectionType

PIPELINE = """\
# Apache access logs
input {
  beats { port => 5044 }
}

filter {
  grok {
    match => { "message" => "%{COMBINEDAPACHELOG}" }
  }
  if [type] == "apache" {
    mutate { add_tag => ["apache", 'web'] }
  } else if [path] =~ /error/ {
    drop {}
  } else {
    date { match => [ "timestamp", "dd/MMM/yyyy:HH:mm:ss Z" ] }
  }
}

output {
  elasticsearch {
    hosts => ["http://localhost:9200"]
    codec => json { charset => "UTF-8" }
  }
  stdout { codec => rubydebug }
}
"""


class TestParseSuccess:
    def test_sections(self):
        result = parse_config(PIPELINE)
        assert result.ok
        config = result.tree
        assert [s.section_type for s in config.sections] == [
            SectionType.INPUT, SectionType.FILTER, SectionType.OUTPUT,
        ]
        assert len(config.input) == len(config.filter) == len(config.output) == 1

    def test_section_offsets(self):
        config = parse_config(PIPELINE).tree
        assert config.filter[0].offset == PIPELINE.index('filter {')

    def test_plugins_and_branch(self):
        body = parse_config(PIPELINE).tree.filter[0].body
        assert isinstance(body[0], Plugin)
        assert body[0].name == 'grok'
        assert isinstance(body[1], Branch)
        branch = body[1]
        assert len(branch.else_if_blocks) == 1
        assert branch.else_block is not None
        assert [b.keyword for b in branch.blocks()] == ['if', 'else if', 'else']
        assert branch.if_block.condition == '[type] == "apache"'

    def test_branch_bodies(self):
        branch = parse_config(PIPELINE).tree.filter[0].body[1]
        names = [[p.name for p in block.body] for block in branch.blocks()]
        assert names == [['mutate'], ['drop'], ['date']]

    def test_attribute_offsets_and_values(self):
        beats = parse_config(PIPELINE).tree.input[0].body[0]
        (port,) = beats.attributes
        assert port.name == 'port'
        assert port.offset == PIPELINE.index('port')
        assert port.value == '5044'
        assert port.value_offset == PIPELINE.index('5044')

    def test_plugin_offset_is_name_start(self):
        beats = parse_config(PIPELINE).tree.input[0].body[0]
        assert beats.offset == PIPELINE.index('beats')
        assert PIPELINE[beats.end - 1] == '}'

    def test_codec_block_value_is_raw_text(self):
        es = parse_config(PIPELINE).tree.output[0].body[0]
        codec = es.attributes[1]
        assert codec.name == 'codec'
        assert codec.value == 'json { charset => "UTF-8" }'

    def test_bareword_value(self):
        stdout = parse_config(PIPELINE).tree.output[0].body[1]
        assert stdout.attributes[0].value == 'rubydebug'

    def test_quoted_attribute_name(self):
        source = 'filter {\n  mutate { "add_tag" => "x" }\n}\n'
        attr = parse_config(source).tree.filter[0].body[0].attributes[0]
        assert attr.name == 'add_tag'
        assert attr.offset == source.index('"add_tag"')

    def test_empty_plugin_and_section(self):
        result = parse_config('input {}\noutput { stdout {} }\n')
        assert result.ok
        assert result.tree.input[0].body == ()

    def test_repeated_sections(self):
        config = parse_config('filter { mutate {} }\nfilter { drop {} }\n').tree
        assert len(config.filter) == 2

    def test_boolean_and_in_conditions(self):
        source = (
            'filter {\n'
            '  if "x" in [tags] and ![skip] {\n'
            '    drop {}\n'
            '  } else if [a] not in ["b", "c"] or ([n] > 3) {\n'
            '    drop {}\n'
            '  }\n'
            '}\n'
        )
        assert parse_config(source).ok

    @pytest.mark.parametrize('condition', [
        '[type] in ["a", "b"] and [x]',
        '[n] in [1, 2] or [x]',
        '[a] in [b, c] and [d]',
        '[a] not in ["b", "c"] xor [d] == 1',
        '["a", "b"] nand [x]',
    ])
    def test_boolean_operator_after_array(self, condition):
        result = parse_config(f'filter {{\n  if {condition} {{\n    drop {{}}\n  }}\n}}\n')
        assert result.ok, result.failure
        (branch,) = result.tree.filter[0].body
        assert branch.if_block.condition == condition

    def test_boolean_words_still_plain_values(self):
        result = parse_config('filter {\n  mutate { add_tag => [and, or] }\n}\n')
        assert result.ok, result.failure
        (attr,) = result.tree.filter[0].body[0].attributes
        assert attr.value == '[and, or]'

        assert parse_config(source).ok

    def test_default_parser_is_cached(self):
        assert default_parser() is default_parser()


class TestParseFailure:
    def test_unclosed_block(self):
        source = 'filter {\n  grok {\n'
        result = parse_config(source)
        assert not result.ok
        assert result.tree is None
        assert result.failure.report.startswith('pipeline:')
        diags = decode_failure(result.failure.report, source, result.failure.farthest)
        assert diags[0].from_ == len(source) - 1

    def test_invalid_character(self):
        source = 'filter {\n  grok { match => @ }\n}\n'
        result = parse_config(source, name='bad.conf')
        assert result.failure.report.startswith('bad.conf:2:')
        diags = decode_report(result.failure.report, source)
        assert diags[0].from_ == source.index('@')

    def test_unexpected_token(self):
        source = 'filter {\n  grok { match }\n}\n'
        result = parse_config(source)
        diags = decode_report(result.failure.report, source)
        assert diags[0].from_ == source.index('}')

    def test_farthest_report_format(self):
        source = 'filter {\n  grok { match }\n}\n'
        farthest = parse_config(source).failure.farthest
        assert farthest.startswith('parse failed at pos 2:')
        assert '->' in farthest

    def test_unknown_section_keyword(self):
        source = 'filters {\n}\n'
        result = parse_config(source)
        assert not result.ok
        diags = decode_report(result.failure.report, source)
        assert diags[0].from_ == 0
