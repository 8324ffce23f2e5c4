"""Document outline: sections, conditionals, plugins and their options."""
from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol import types as lsp

from lslsp.tree import Block, Branch, BranchOrPlugin, Plugin

if TYPE_CHECKING:
    from lslsp.document import LineIndex, ParsedDocument


def _symbol(name: str, kind: lsp.SymbolKind, start: int, end: int, sel_end: int,
            lines: LineIndex, children: list[lsp.DocumentSymbol] | None = None,
            detail: str | None = None) -> lsp.DocumentSymbol:
    return lsp.DocumentSymbol(
        name=name,
        detail=detail,
        kind=kind,
        range=lines.range(start, end),
        selection_range=lines.range(start, sel_end),
        children=children or None,
    )


def _plugin_symbol(plugin: Plugin, lines: LineIndex) -> lsp.DocumentSymbol:
    options = [
        _symbol(a.name, lsp.SymbolKind.Property, a.offset, a.value_offset + len(a.value),
                a.offset + len(a.name), lines)
        for a in plugin.attributes
    ]
    return _symbol(plugin.name, lsp.SymbolKind.Class, plugin.offset, plugin.end,
                   plugin.offset + len(plugin.name), lines, options)


def _block_symbol(block: Block, lines: LineIndex) -> lsp.DocumentSymbol:
    name = block.keyword if block.condition is None else f'{block.keyword} {block.condition}'
    return _symbol(name, lsp.SymbolKind.Boolean, block.offset, block.end,
                   block.offset + len(block.keyword), lines, _body_symbols(block.body, lines))


def _body_symbols(body: tuple[BranchOrPlugin, ...], lines: LineIndex) -> list[lsp.DocumentSymbol]:
    symbols: list[lsp.DocumentSymbol] = []
    for node in body:
        if isinstance(node, Plugin):
            symbols.append(_plugin_symbol(node, lines))
        elif isinstance(node, Branch):
            symbols.extend(_block_symbol(block, lines) for block in node.blocks())
    return symbols


def get_document_symbols(doc: ParsedDocument) -> list[lsp.DocumentSymbol]:
    """Outline of *doc*; empty when the document does not parse."""
    if doc.tree is None:
        return []
    return [
        _symbol(section.section_type.value, lsp.SymbolKind.Module, section.offset, section.end,
                section.offset + len(section.section_type.value), doc.lines,
                _body_symbols(section.body, doc.lines))
        for section in doc.tree.sections
    ]
