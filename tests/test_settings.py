"""Tests for lslsp.settings — project config and the version cascade."""
from __future__ import annotations

import json
import logging
from types import SimpleNamespace

import pytest

from lslsp.registry import SchemaRegistry
from lslsp.settings import (
    PROJECT_CONFIG,
    ProjectConfig,
    VersionResolver,
    _read_project_config,
    setting,
)
from lslsp.tree import SectionType

EXTRA = {'plugins': {'input': ['stdin'], 'output': ['stdout']}, 'codecs': ['plain']}


def _project(root, text: str) -> None:
    (root / PROJECT_CONFIG).write_text(text, encoding='utf-8')


@pytest.fixture
def registry():
    return SchemaRegistry()


class TestReadProjectConfig:
    def test_no_workspace(self):
        assert _read_project_config(None) == ProjectConfig()

    def test_missing_file(self, tmp_path):
        assert _read_project_config(str(tmp_path)) == ProjectConfig()

    def test_version_and_relative_dir(self, tmp_path):
        _project(tmp_path, 'schema_version = "8.18"\nregistry_dir = "schemas"\n')
        config = _read_project_config(str(tmp_path))
        assert config.schema_version == '8.18'
        assert config.registry_dir == tmp_path / 'schemas'

    def test_absolute_dir(self, tmp_path):
        target = tmp_path / 'elsewhere'
        _project(tmp_path, f'registry_dir = "{target.as_posix()}"\n')
        assert _read_project_config(str(tmp_path)).registry_dir == target

    def test_bad_toml(self, tmp_path, caplog):
        _project(tmp_path, 'schema_version = \n')
        with caplog.at_level(logging.WARNING, logger='lslsp.settings'):
            assert _read_project_config(str(tmp_path)) == ProjectConfig()
        assert 'ignoring unreadable' in caplog.text

    def test_non_string_version(self, tmp_path):
        _project(tmp_path, 'schema_version = 8.18\n')
        assert _read_project_config(str(tmp_path)).schema_version is None

    def test_empty_values(self, tmp_path):
        _project(tmp_path, 'schema_version = ""\nregistry_dir = ""\n')
        assert _read_project_config(str(tmp_path)) == ProjectConfig()


class TestSetting:
    def test_dict(self):
        assert setting({'schemaVersion': '8.18'}, 'schemaVersion') == '8.18'
        assert setting({}, 'schemaVersion') is None

    def test_object(self):
        assert setting(SimpleNamespace(logLevel='debug'), 'logLevel') == 'debug'
        assert setting(SimpleNamespace(), 'logLevel') is None

    def test_none(self):
        assert setting(None, 'schemaVersion') is None


class TestVersionResolver:
    def test_highest_by_default(self, registry):
        assert VersionResolver().resolve(registry) == '8.19'

    def test_cli_default(self, registry):
        assert VersionResolver(default_version='8.18').resolve(registry) == '8.18'

    def test_project_beats_cli_default(self, tmp_path, registry):
        _project(tmp_path, 'schema_version = "8.18"\n')
        resolver = VersionResolver(str(tmp_path), default_version='8.19')
        assert resolver.candidates() == ['8.18', '8.19']
        assert resolver.resolve(registry) == '8.18'

    def test_client_beats_project(self, tmp_path, registry):
        _project(tmp_path, 'schema_version = "8.18"\n')
        resolver = VersionResolver(str(tmp_path))
        resolver.set_client_version('8.19')
        assert resolver.resolve(registry) == '8.19'

    def test_clearing_client_version(self, tmp_path, registry):
        _project(tmp_path, 'schema_version = "8.18"\n')
        resolver = VersionResolver(str(tmp_path))
        resolver.set_client_version('8.19')
        resolver.set_client_version('')
        assert resolver.candidates() == ['8.18']

    def test_unknown_version_ignored(self, registry, caplog):
        resolver = VersionResolver(default_version='8.18')
        resolver.set_client_version('7.0')
        with caplog.at_level(logging.WARNING, logger='lslsp.settings'):
            assert resolver.resolve(registry) == '8.18'
        assert "'7.0'" in caplog.text

    def test_apply_switches(self, registry):
        assert registry.version == '8.19'
        assert VersionResolver(default_version='8.18').apply(registry) == '8.18'
        assert registry.version == '8.18'

    def test_apply_unknown_keeps_highest(self, registry):
        assert VersionResolver(default_version='1.0').apply(registry) == '8.19'

    def test_apply_project_registry_dir(self, tmp_path, registry):
        schemas = tmp_path / 'schemas'
        schemas.mkdir()
        (schemas / '9.0.json').write_text(json.dumps(EXTRA), encoding='utf-8')
        _project(tmp_path, 'registry_dir = "schemas"\n')
        assert VersionResolver(str(tmp_path)).apply(registry) == '9.0'
        assert registry.registry_dir == schemas
        assert registry.snapshot().plugin_names(SectionType.INPUT) == ['stdin']

    def test_apply_default_registry_dir(self, tmp_path, registry):
        (tmp_path / '9.0.json').write_text(json.dumps(EXTRA), encoding='utf-8')
        resolver = VersionResolver(default_version='9.0', default_registry_dir=tmp_path)
        assert resolver.apply(registry) == '9.0'

    def test_apply_unreadable_keeps_previous(self, tmp_path, registry):
        (tmp_path / '9.0.json').write_text('{not json', encoding='utf-8')
        resolver = VersionResolver(default_registry_dir=tmp_path)
        assert resolver.apply(registry) == '8.19'
        assert registry.registry_dir == tmp_path
