"""
Hover handler.

When the cursor rests on a plugin name, an option name inside a plugin or
a codec name after ``codec =>``, return a Markdown string built from the
documentation carried by the active registry snapshot.  Names without
documentation produce no hover.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol import types as lsp

from lslsp.scanner import ContextKind, detect_context, detect_structural_context, word_at
from lslsp.tree import SectionType

if TYPE_CHECKING:
    from lslsp.document import ParsedDocument
    from lslsp.registry import OptionDoc, PluginDoc, SchemaRegistry, SchemaSnapshot

# Cap long descriptions to avoid enormous hover boxes
_MAX_DESCRIPTION = 800


def _clip(text: str) -> str:
    return text[:_MAX_DESCRIPTION] + ('…' if len(text) > _MAX_DESCRIPTION else '')


def _option_detail(doc: OptionDoc) -> str:
    """Short ``type, default, required`` summary for an option."""
    parts = []
    if doc.type:
        parts.append(f'`{doc.type}`')
    if doc.default:
        parts.append(f'default `{doc.default}`')
    if doc.required:
        parts.append('**required**')
    return ', '.join(parts)


def plugin_markdown(section_type: SectionType, name: str, doc: PluginDoc) -> str:
    lines = [f'### `{name}`', f'*{section_type.value} plugin*']
    if doc.description:
        lines += ['', _clip(doc.description)]
    return '\n'.join(lines)


def option_markdown(plugin: str, name: str, doc: OptionDoc) -> str:
    lines = [f'### `{name}`', f'*option of `{plugin}`*']
    detail = _option_detail(doc)
    if detail:
        lines += ['', detail]
    if doc.deprecated:
        lines += ['', f'**Deprecated:** {doc.deprecated}']
    if doc.description:
        lines += ['', _clip(doc.description)]
    return '\n'.join(lines)


def codec_markdown(name: str, doc: PluginDoc) -> str:
    lines = [f'### `{name}`', '*codec*']
    if doc.description:
        lines += ['', _clip(doc.description)]
    return '\n'.join(lines)


def hover_markdown(source: str, pos: int, snapshot: SchemaSnapshot) -> tuple[str, int, int] | None:
    """Return ``(markdown, start, end)`` for the word at *pos*, or *None*."""
    found = word_at(source, pos)
    if found is None:
        return None
    word, start, end = found

    # Classify from the start of the word so the word itself is not
    # mistaken for part of a value.
    if detect_context(source, start).kind is ContextKind.CODEC:
        doc = snapshot.codec_doc(word)
        return (codec_markdown(word, doc), start, end) if doc else None

    ctx = detect_structural_context(source, start)
    if ctx.kind is ContextKind.PLUGIN and ctx.section_type is not None:
        doc = snapshot.plugin_doc(ctx.section_type, word)
        return (plugin_markdown(ctx.section_type, word, doc), start, end) if doc else None
    if ctx.kind is ContextKind.OPTION and ctx.section_type is not None and ctx.plugin_name:
        known = snapshot.options_for(ctx.section_type, ctx.plugin_name)
        if known is None or word not in known:
            return None
        doc = snapshot.option_doc(ctx.section_type, ctx.plugin_name, word)
        return (option_markdown(ctx.plugin_name, word, doc), start, end) if doc else None
    return None


def get_hover(
    doc: ParsedDocument,
    position: lsp.Position,
    registry: SchemaRegistry,
) -> lsp.Hover | None:
    """Return LSP hover content for *position* in *doc*, or *None*."""
    result = hover_markdown(doc.source, doc.lines.offset(position), registry.snapshot())
    if result is None:
        return None
    md, start, end = result
    return lsp.Hover(
        contents=lsp.MarkupContent(kind=lsp.MarkupKind.Markdown, value=md),
        range=doc.lines.range(start, end),
    )
