"""
Registry checks over a successfully parsed pipeline.

Walks every section, recursing through ``if`` / ``else if`` / ``else``
branches, and reports as warnings:

* plugins that the active registry does not know for their section type
  (once per plugin; its options are then not checked at all);
* ``codec`` values naming an unknown codec;
* options that are neither common to the section type nor specific to the
  plugin;
* options documented as deprecated.

The walk is a pure function of ``(config, source, snapshot)``: the section
type is passed down explicitly and nothing is cached between calls.
"""
from __future__ import annotations

from lslsp.diagnostic import Diagnostic, Severity, span
from lslsp.registry import SchemaSnapshot
from lslsp.tree import Attribute, Branch, BranchOrPlugin, Config, Plugin, SectionType

_CODEC_TERMINATORS = (' ', '\t', '\n', '\r', '{')


def extract_codec_name(value: str) -> str:
    """Pull the codec name out of a ``codec =>`` value.

    Handles bare words (``json``), quoted strings (``"json"``) and codec
    blocks (``json { charset => "UTF-8" }``).
    """
    s = value.strip()
    if len(s) >= 2 and s[0] in '"\'':
        s = s[1:-1] if s[-1] == s[0] else s[1:]
    for i, ch in enumerate(s):
        if ch in _CODEC_TERMINATORS:
            return s[:i]
    return s


def validate(config: Config, source: str, snapshot: SchemaSnapshot) -> list[Diagnostic]:
    """Return warning diagnostics for names unknown to *snapshot*."""
    diags: list[Diagnostic] = []
    for sections in (config.input, config.filter, config.output):
        for section in sections:
            _walk(section.body, section.section_type, source, snapshot, diags)
    return diags


def _walk(
    body: tuple[BranchOrPlugin, ...],
    section_type: SectionType,
    source: str,
    snapshot: SchemaSnapshot,
    diags: list[Diagnostic],
) -> None:
    for node in body:
        if isinstance(node, Plugin):
            _check_plugin(node, section_type, source, snapshot, diags)
        elif isinstance(node, Branch):
            for block in node.blocks():
                _walk(block.body, section_type, source, snapshot, diags)


def _check_plugin(
    plugin: Plugin,
    section_type: SectionType,
    source: str,
    snapshot: SchemaSnapshot,
    diags: list[Diagnostic],
) -> None:
    if not snapshot.is_known_plugin(section_type, plugin.name):
        diags.append(span(
            plugin.offset, plugin.offset + len(plugin.name), source,
            Severity.WARNING,
            f'unknown {section_type.value} plugin "{plugin.name}"',
        ))
        return

    known_options = snapshot.options_for(section_type, plugin.name)
    for attr in plugin.attributes:
        if attr.name == 'codec':
            _check_codec(attr, source, snapshot, diags)
            continue
        if known_options is None:
            continue
        if attr.name not in known_options:
            diags.append(span(
                attr.offset, attr.offset + len(attr.name), source,
                Severity.WARNING,
                f'unknown option "{attr.name}"',
            ))
            continue
        doc = snapshot.option_doc(section_type, plugin.name, attr.name)
        if doc is not None and doc.deprecated:
            diags.append(span(
                attr.offset, attr.offset + len(attr.name), source,
                Severity.WARNING,
                f'option "{attr.name}" is deprecated: {doc.deprecated}',
            ))


def _check_codec(attr: Attribute, source: str, snapshot: SchemaSnapshot, diags: list[Diagnostic]) -> None:
    name = extract_codec_name(attr.value)
    if not name or snapshot.known_codec(name):
        return
    lo = max(0, attr.value_offset)
    start = source.find(name, lo, lo + len(attr.value))
    if start < 0:
        # Approximate: "codec => " followed by the name.
        start = attr.offset
        end = start + len('codec => ') + len(name)
    else:
        end = start + len(name)
    diags.append(span(start, end, source, Severity.WARNING, f'unknown codec "{name}"'))
