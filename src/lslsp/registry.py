"""
Versioned plugin registry.

A registry snapshot lists, for one Logstash release, the plugin names per
section type, the codec names, the options common to every plugin of a
section type and the options specific to each plugin.  Snapshots may also
carry documentation (plugin descriptions, option type/default/required);
documentation only enriches hover and the context sidebar, it never changes
what is reported as unknown.

Snapshots are immutable.  :class:`SchemaRegistry` holds the active one and
replaces it wholesale on :meth:`SchemaRegistry.switch_version`, so a
handler that captured ``registry.snapshot()`` at the start of a request
keeps seeing one consistent set of tables even if the user switches
versions while it runs.

Sources
-------
Bundled snapshots live in ``lslsp/registrydata/<version>.json``.  An extra
directory may be supplied (``--registry-dir`` or ``registry_dir`` in
``.lslsp.toml``); files there shadow bundled versions of the same name.
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from importlib.resources import files
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from lslsp.tree import SectionType

logger = logging.getLogger(__name__)

_EMPTY: Mapping = MappingProxyType({})


class RegistryError(Exception):
    """A registry snapshot could not be read."""


class RegistryNotFound(RegistryError):
    """The requested registry version does not exist."""

    def __init__(self, version: str):
        super().__init__(f'registry version {version!r} not found')
        self.version = version


# ---------------------------------------------------------------------------
# Documentation records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OptionDoc:
    type: str = ''
    required: bool = False
    default: str = ''
    description: str = ''
    deprecated: str = ''

    @classmethod
    def from_json(cls, data: dict | None) -> OptionDoc:
        data = data or {}
        return cls(
            type=str(data.get('type', '') or ''),
            required=bool(data.get('required', False)),
            default=str(data.get('default', '') or ''),
            description=str(data.get('description', '') or ''),
            deprecated=str(data.get('deprecated', '') or ''),
        )

    def to_dict(self) -> dict:
        out: dict = {}
        if self.type:
            out['type'] = self.type
        if self.required:
            out['required'] = True
        if self.default:
            out['default'] = self.default
        if self.description:
            out['description'] = self.description
        if self.deprecated:
            out['deprecated'] = self.deprecated
        return out


@dataclass(frozen=True)
class PluginDoc:
    description: str = ''
    options: Mapping[str, OptionDoc] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def from_json(cls, data: dict | None) -> PluginDoc:
        data = data or {}
        options = {
            name: OptionDoc.from_json(doc)
            for name, doc in (data.get('options') or {}).items()
        }
        return cls(
            description=str(data.get('description', '') or ''),
            options=MappingProxyType(options),
        )

    def to_dict(self) -> dict:
        out: dict = {}
        if self.description:
            out['description'] = self.description
        if self.options:
            out['options'] = {k: v.to_dict() for k, v in sorted(self.options.items())}
        return out


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

def _by_section(raw: dict | None) -> Mapping[SectionType, frozenset[str]]:
    out: dict[SectionType, frozenset[str]] = {}
    for type_name, names in (raw or {}).items():
        section_type = SectionType.from_name(type_name)
        if section_type is None:
            logger.debug('registry: ignoring unknown section type %r', type_name)
            continue
        out[section_type] = frozenset(names or ())
    return MappingProxyType(out)


@dataclass(frozen=True)
class SchemaSnapshot:
    """One immutable, versioned set of valid names plus optional docs."""
    version: str
    plugins: Mapping[SectionType, frozenset[str]] = field(default_factory=lambda: _EMPTY)
    codecs: frozenset[str] = frozenset()
    common_options: Mapping[SectionType, frozenset[str]] = field(default_factory=lambda: _EMPTY)
    plugin_options: Mapping[str, frozenset[str]] = field(default_factory=lambda: _EMPTY)
    plugin_docs: Mapping[str, PluginDoc] = field(default_factory=lambda: _EMPTY)
    codec_docs: Mapping[str, PluginDoc] = field(default_factory=lambda: _EMPTY)
    common_option_docs: Mapping[SectionType, Mapping[str, OptionDoc]] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def empty(cls, version: str = '') -> SchemaSnapshot:
        return cls(version=version)

    @classmethod
    def from_json(cls, data: dict, version: str | None = None) -> SchemaSnapshot:
        """Build a snapshot from the decoded registry JSON document."""
        if not isinstance(data, dict):
            raise RegistryError('registry document must be a JSON object')
        common_docs: dict[SectionType, Mapping[str, OptionDoc]] = {}
        for type_name, docs in (data.get('commonOptionDocs') or {}).items():
            section_type = SectionType.from_name(type_name)
            if section_type is None:
                continue
            common_docs[section_type] = MappingProxyType(
                {name: OptionDoc.from_json(doc) for name, doc in (docs or {}).items()}
            )
        return cls(
            version=version if version is not None else str(data.get('version', '')),
            plugins=_by_section(data.get('plugins')),
            codecs=frozenset(data.get('codecs') or ()),
            common_options=_by_section(data.get('commonOptions')),
            plugin_options=MappingProxyType({
                key: frozenset(opts or ())
                for key, opts in (data.get('pluginOptions') or {}).items()
            }),
            plugin_docs=MappingProxyType({
                key: PluginDoc.from_json(doc)
                for key, doc in (data.get('pluginDocs') or {}).items()
            }),
            codec_docs=MappingProxyType({
                key: PluginDoc.from_json(doc)
                for key, doc in (data.get('codecDocs') or {}).items()
            }),
            common_option_docs=MappingProxyType(common_docs),
        )

    # -- names -------------------------------------------------------------

    def is_known_plugin(self, section_type: SectionType, name: str) -> bool:
        """True if *name* is a plugin of *section_type*.

        A snapshot that lists no plugins at all for a section type does not
        constrain it: every name is accepted.
        """
        plugins = self.plugins.get(section_type)
        if plugins is None:
            return True
        return name in plugins

    def known_codec(self, name: str) -> bool:
        return name in self.codecs

    def plugin_names(self, section_type: SectionType) -> list[str]:
        return sorted(self.plugins.get(section_type, ()))

    def codec_names(self) -> list[str]:
        return sorted(self.codecs)

    def options_for(self, section_type: SectionType, name: str) -> frozenset[str] | None:
        """Return common + plugin-specific options for a plugin.

        Returns ``None`` for an unknown plugin, or when the snapshot has no
        option data for it at all; callers must then skip option checking
        instead of treating every option as invalid.
        """
        if not self.is_known_plugin(section_type, name):
            return None
        common = self.common_options.get(section_type)
        specific = self.plugin_options.get(f'{section_type.value}/{name}')
        if specific is None:
            return common
        if common is None:
            return specific
        return common | specific

    # -- docs --------------------------------------------------------------

    def plugin_doc(self, section_type: SectionType, name: str) -> PluginDoc | None:
        return self.plugin_docs.get(f'{section_type.value}/{name}')

    def codec_doc(self, name: str) -> PluginDoc | None:
        return self.codec_docs.get(name)

    def option_doc(self, section_type: SectionType, plugin: str, option: str) -> OptionDoc | None:
        """Plugin-specific option docs first, then the section's common docs."""
        pdoc = self.plugin_doc(section_type, plugin)
        if pdoc is not None and option in pdoc.options:
            return pdoc.options[option]
        return self.common_option_docs.get(section_type, _EMPTY).get(option)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def _bundled_dir():
    return files('lslsp') / 'registrydata'


def _versions_in(directory) -> dict[str, object]:
    """Map version name -> readable resource for every ``*.json`` in *directory*."""
    found: dict[str, object] = {}
    try:
        entries = list(directory.iterdir())
    except OSError:
        return found
    for entry in entries:
        name = entry.name
        if not name.endswith('.json') or not entry.is_file():
            continue
        found[name[:-len('.json')]] = entry
    return found


class SchemaRegistry:
    """Holds the active :class:`SchemaSnapshot` and switches between versions.

    Readers never lock: they take ``snapshot()`` once and use it for the
    whole operation.  Switches are serialised by ``_lock`` and publish the
    new snapshot with a single reference assignment.
    """

    def __init__(self, registry_dir: str | Path | None = None, *, load_default: bool = True):
        self._lock = threading.Lock()
        self._registry_dir = Path(registry_dir).expanduser() if registry_dir else None
        self._snapshot = SchemaSnapshot.empty()
        if load_default:
            self.load_default()

    # -- sources -------------------------------------------------------------

    @property
    def registry_dir(self) -> Path | None:
        return self._registry_dir

    def set_registry_dir(self, registry_dir: str | Path | None) -> None:
        """Change the extra snapshot directory (does not switch versions)."""
        self._registry_dir = Path(registry_dir).expanduser() if registry_dir else None

    def _sources(self) -> dict[str, object]:
        sources = _versions_in(_bundled_dir())
        if self._registry_dir is not None:
            sources.update(_versions_in(self._registry_dir))
        return sources

    def list_versions(self) -> list[str]:
        """All available versions, sorted ascending (lexicographically)."""
        return sorted(self._sources())

    # -- switching -------------------------------------------------------------

    def _read(self, version: str) -> SchemaSnapshot:
        source = self._sources().get(version)
        if source is None:
            raise RegistryNotFound(version)
        try:
            data = json.loads(source.read_text(encoding='utf-8'))
        except (OSError, ValueError) as exc:
            raise RegistryError(f'failed to read registry {version!r}: {exc}') from exc
        return SchemaSnapshot.from_json(data, version=version)

    def load_version(self, version: str) -> SchemaSnapshot:
        """Make *version* the active snapshot.

        Raises :class:`RegistryNotFound` if the version does not exist and
        :class:`RegistryError` if it cannot be read; in both cases the
        previously active snapshot is left in place.
        """
        with self._lock:
            snapshot = self._read(version)
            self._snapshot = snapshot
        logger.info('registry: switched to version %s', version)
        return snapshot

    switch_version = load_version

    def load_default(self) -> SchemaSnapshot:
        """Load the highest available version, or keep an empty snapshot."""
        versions = self.list_versions()
        if not versions:
            logger.warning('registry: no registry snapshots available')
            return self._snapshot
        try:
            return self.load_version(versions[-1])
        except RegistryError:
            logger.warning('registry: failed to load default version %s', versions[-1], exc_info=True)
            return self._snapshot

    # -- read accessors (each reads one snapshot) ------------------------------

    def snapshot(self) -> SchemaSnapshot:
        return self._snapshot

    @property
    def version(self) -> str:
        return self._snapshot.version

    def is_known_plugin(self, section_type: SectionType, name: str) -> bool:
        return self._snapshot.is_known_plugin(section_type, name)

    def known_codec(self, name: str) -> bool:
        return self._snapshot.known_codec(name)

    def options_for(self, section_type: SectionType, name: str) -> frozenset[str] | None:
        return self._snapshot.options_for(section_type, name)

    def plugin_doc(self, section_type: SectionType, name: str) -> PluginDoc | None:
        return self._snapshot.plugin_doc(section_type, name)

    def codec_doc(self, name: str) -> PluginDoc | None:
        return self._snapshot.codec_doc(name)

    def option_doc(self, section_type: SectionType, plugin: str, option: str) -> OptionDoc | None:
        return self._snapshot.option_doc(section_type, plugin, option)
