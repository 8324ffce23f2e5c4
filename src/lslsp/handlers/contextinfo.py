"""
Context sidebar payload.

Classifies the cursor with the tolerant scan
(:func:`lslsp.scanner.detect_structural_context`) and describes what is
valid there:

``top-level``
    the three sections and what they are for;
``section``
    the plugins of that section type, with one-line descriptions;
``plugin``
    the plugin's description and full option list (required options
    first, then alphabetical), plus the documentation of the option under
    the cursor;
``codec``
    the codecs, with descriptions;
``none``
    nothing useful to say.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lslsp.registry import OptionDoc, PluginDoc
from lslsp.scanner import Context, ContextKind, detect_structural_context, word_at

if TYPE_CHECKING:
    from lslsp.registry import SchemaRegistry, SchemaSnapshot

SECTION_DESCRIPTIONS = (
    ('input', 'Defines data sources (e.g., beats, file, stdin)'),
    ('filter', 'Transforms and enriches events (e.g., mutate, grok, date)'),
    ('output', 'Sends events to destinations (e.g., elasticsearch, stdout)'),
)


@dataclass(frozen=True)
class PluginInfo:
    name: str
    description: str = ''

    def to_dict(self) -> dict:
        out = {'name': self.name}
        if self.description:
            out['description'] = self.description
        return out


@dataclass(frozen=True)
class OptionInfo:
    name: str
    type: str = ''
    required: bool = False
    default: str = ''
    description: str = ''

    def to_dict(self) -> dict:
        out: dict = {'name': self.name}
        if self.type:
            out['type'] = self.type
        if self.required:
            out['required'] = True
        if self.default:
            out['default'] = self.default
        if self.description:
            out['description'] = self.description
        return out


@dataclass(frozen=True)
class ContextInfo:
    kind: str    # 'top-level', 'section', 'plugin', 'codec' or 'none'
    section_type: str = ''
    plugin_name: str = ''
    plugin_doc: PluginDoc | None = None
    option_name: str = ''
    option_doc: OptionDoc | None = None
    plugins: list[PluginInfo] = field(default_factory=list)
    options: list[OptionInfo] = field(default_factory=list)

    def to_dict(self) -> dict:
        out: dict = {'kind': self.kind}
        if self.kind == 'top-level':
            out['sections'] = [{'name': n, 'description': d} for n, d in SECTION_DESCRIPTIONS]
        if self.section_type:
            out['sectionType'] = self.section_type
        if self.plugin_name:
            out['pluginName'] = self.plugin_name
        if self.plugin_doc is not None:
            out['pluginDoc'] = self.plugin_doc.to_dict()
        if self.option_name:
            out['optionName'] = self.option_name
        if self.option_doc is not None:
            out['optionDoc'] = self.option_doc.to_dict()
        if self.kind in ('section', 'codec'):
            out['plugins'] = [p.to_dict() for p in self.plugins]
        if self.kind == 'plugin':
            out['options'] = [o.to_dict() for o in self.options]
        return out


NO_INFO = ContextInfo(kind='none')


def _plugin_list(ctx: Context, snapshot: SchemaSnapshot) -> list[PluginInfo]:
    plugins = []
    for name in snapshot.plugin_names(ctx.section_type):
        doc = snapshot.plugin_doc(ctx.section_type, name)
        plugins.append(PluginInfo(name, doc.description if doc else ''))
    return plugins


def _codec_list(snapshot: SchemaSnapshot) -> list[PluginInfo]:
    codecs = []
    for name in snapshot.codec_names():
        doc = snapshot.codec_doc(name)
        codecs.append(PluginInfo(name, doc.description if doc else ''))
    return codecs


def _option_list(ctx: Context, known: frozenset[str], snapshot: SchemaSnapshot) -> list[OptionInfo]:
    options = []
    for name in known:
        doc = snapshot.option_doc(ctx.section_type, ctx.plugin_name, name)
        if doc is None:
            options.append(OptionInfo(name))
        else:
            options.append(OptionInfo(name, doc.type, doc.required, doc.default, doc.description))
    options.sort(key=lambda o: (not o.required, o.name))
    return options


def build_context_info(ctx: Context, source: str, pos: int, snapshot: SchemaSnapshot) -> ContextInfo:
    """Describe *ctx* using the docs in *snapshot*."""
    if ctx.kind is ContextKind.SECTION:
        return ContextInfo(kind='top-level')

    if ctx.kind is ContextKind.PLUGIN and ctx.section_type is not None:
        return ContextInfo(
            kind='section',
            section_type=ctx.section_type.value,
            plugins=_plugin_list(ctx, snapshot),
        )

    if ctx.kind is ContextKind.OPTION and ctx.section_type is not None and ctx.plugin_name:
        known = snapshot.options_for(ctx.section_type, ctx.plugin_name)
        info = ContextInfo(
            kind='plugin',
            section_type=ctx.section_type.value,
            plugin_name=ctx.plugin_name,
            plugin_doc=snapshot.plugin_doc(ctx.section_type, ctx.plugin_name),
            options=_option_list(ctx, known, snapshot) if known is not None else [],
        )
        found = word_at(source, pos)
        if found is not None and known is not None and found[0] in known:
            word = found[0]
            return ContextInfo(
                kind=info.kind,
                section_type=info.section_type,
                plugin_name=info.plugin_name,
                plugin_doc=info.plugin_doc,
                option_name=word,
                option_doc=snapshot.option_doc(ctx.section_type, ctx.plugin_name, word),
                options=info.options,
            )
        return info

    if ctx.kind is ContextKind.CODEC:
        return ContextInfo(kind='codec', plugins=_codec_list(snapshot))

    return NO_INFO


def context_info(source: str, pos: int, snapshot: SchemaSnapshot) -> ContextInfo:
    return build_context_info(detect_structural_context(source, pos), source, pos, snapshot)


def get_context_info(source: str, pos: int, registry: SchemaRegistry) -> ContextInfo:
    """Sidebar payload for *pos* in *source* against the active registry."""
    return context_info(source, pos, registry.snapshot())
