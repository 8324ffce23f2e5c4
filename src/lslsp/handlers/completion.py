"""
Completion handler.

The cursor context comes from :func:`lslsp.scanner.detect_context`; the
names come from the active registry snapshot:

1. **Section keywords** (``input``, ``filter``, ``output``) at the top level.
2. **Plugin names** for the enclosing section type inside a section or
   conditional.
3. **Option names** (common + plugin-specific) inside a known plugin.
4. **Codec names** after ``codec =>``.

Nothing is offered inside strings, comments, hash values or other option
values.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lsprotocol import types as lsp

from lslsp.scanner import Context, ContextKind, detect_context, replace_start

if TYPE_CHECKING:
    from lslsp.document import ParsedDocument
    from lslsp.registry import SchemaRegistry, SchemaSnapshot

_SECTION_NAMES = ('input', 'filter', 'output')

# completion option kind -> LSP item kind
_ITEM_KINDS = {
    'keyword': lsp.CompletionItemKind.Keyword,
    'type': lsp.CompletionItemKind.Class,
    'property': lsp.CompletionItemKind.Property,
    'enum': lsp.CompletionItemKind.EnumMember,
}


@dataclass(frozen=True)
class CompletionOption:
    label: str
    kind: str
    detail: str | None = None

    def to_dict(self) -> dict:
        out = {'label': self.label, 'kind': self.kind}
        if self.detail:
            out['detail'] = self.detail
        return out


@dataclass(frozen=True)
class CompletionResult:
    from_: int
    options: list[CompletionOption] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {'from': self.from_, 'options': [o.to_dict() for o in self.options]}


def build_completions(ctx: Context, snapshot: SchemaSnapshot) -> list[CompletionOption]:
    """Return the completion options for *ctx*; names are sorted, keywords are not."""
    if ctx.kind is ContextKind.SECTION:
        return [CompletionOption(name, 'keyword', 'section') for name in _SECTION_NAMES]

    if ctx.kind is ContextKind.PLUGIN and ctx.section_type is not None:
        detail = f'{ctx.section_type.value} plugin'
        return [
            CompletionOption(name, 'type', detail)
            for name in snapshot.plugin_names(ctx.section_type)
        ]

    if ctx.kind is ContextKind.OPTION and ctx.section_type is not None:
        known = snapshot.options_for(ctx.section_type, ctx.plugin_name or '')
        if known is None:
            return []
        return [CompletionOption(name, 'property', 'option') for name in sorted(known)]

    if ctx.kind is ContextKind.CODEC:
        return [CompletionOption(name, 'enum', 'codec') for name in snapshot.codec_names()]

    return []


def complete(source: str, pos: int, snapshot: SchemaSnapshot) -> CompletionResult:
    """Completion for *pos* in *source* against one registry snapshot."""
    return CompletionResult(
        from_=replace_start(source, pos),
        options=build_completions(detect_context(source, pos), snapshot),
    )


def get_completions(source: str, pos: int, registry: SchemaRegistry) -> CompletionResult:
    return complete(source, pos, registry.snapshot())


def _documentation(option: CompletionOption, ctx: Context, snapshot: SchemaSnapshot) -> str | None:
    if ctx.kind is ContextKind.PLUGIN and ctx.section_type is not None:
        doc = snapshot.plugin_doc(ctx.section_type, option.label)
        return doc.description if doc and doc.description else None
    if ctx.kind is ContextKind.OPTION and ctx.section_type is not None:
        doc = snapshot.option_doc(ctx.section_type, ctx.plugin_name or '', option.label)
        return doc.description if doc and doc.description else None
    if ctx.kind is ContextKind.CODEC:
        doc = snapshot.codec_doc(option.label)
        return doc.description if doc and doc.description else None
    return None


def get_completion_items(
    doc: ParsedDocument,
    position: lsp.Position,
    registry: SchemaRegistry,
) -> list[lsp.CompletionItem]:
    """Return LSP completion items for *position* in *doc*."""
    snapshot = registry.snapshot()
    pos = doc.lines.offset(position)
    ctx = detect_context(doc.source, pos)
    result = CompletionResult(
        from_=replace_start(doc.source, pos),
        options=build_completions(ctx, snapshot),
    )
    edit_range = doc.lines.range(result.from_, pos)
    items: list[lsp.CompletionItem] = []
    for option in result.options:
        desc = _documentation(option, ctx, snapshot)
        items.append(lsp.CompletionItem(
            label=option.label,
            kind=_ITEM_KINDS.get(option.kind, lsp.CompletionItemKind.Text),
            detail=option.detail,
            documentation=lsp.MarkupContent(
                kind=lsp.MarkupKind.PlainText,
                value=desc,
            ) if desc else None,
            text_edit=lsp.TextEdit(range=edit_range, new_text=option.label),
        ))
    return items
