"""
Schema version resolution for lslsp.

Decides which registry version is active using a cascading set of sources:

1. Explicit client configuration supplied via ``initializationOptions``
   (``schemaVersion``) or ``workspace/didChangeConfiguration``
   (``lslsp.schemaVersion``).
2. A ``.lslsp.toml`` project config file in the workspace root::

       schema_version = "8.19"
       registry_dir = "schemas"      # optional, relative to the root

3. The process default given on the command line (``--schema-version``).
4. The highest available version.

A requested version that the registry does not have is logged and ignored,
so the next source in the cascade applies.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from lslsp.registry import RegistryError, SchemaRegistry

logger = logging.getLogger(__name__)

PROJECT_CONFIG = '.lslsp.toml'


# ---------------------------------------------------------------------------
# Project config file
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProjectConfig:
    schema_version: str | None = None
    registry_dir: Path | None = None


def _read_project_config(workspace_root: str | None) -> ProjectConfig:
    """Parse ``.lslsp.toml`` in *workspace_root*; missing or bad files give defaults."""
    if not workspace_root:
        return ProjectConfig()
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        import tomli as tomllib  # fallback

    config_path = Path(workspace_root) / PROJECT_CONFIG
    if not config_path.is_file():
        return ProjectConfig()

    try:
        data = tomllib.loads(config_path.read_text(encoding='utf-8'))
    except (OSError, tomllib.TOMLDecodeError):
        logger.warning('settings: ignoring unreadable %s', config_path, exc_info=True)
        return ProjectConfig()

    version = data.get('schema_version')
    if version is not None and not isinstance(version, str):
        logger.warning('settings: schema_version in %s must be a string', config_path)
        version = None
    registry_dir = data.get('registry_dir')
    if isinstance(registry_dir, str) and registry_dir:
        path = Path(registry_dir).expanduser()
        if not path.is_absolute():
            path = Path(workspace_root) / path
        registry_dir = path
    else:
        registry_dir = None
    return ProjectConfig(schema_version=version or None, registry_dir=registry_dir)


def setting(options, key: str):
    """Read *key* from a dict or from a typed options object."""
    if options is None:
        return None
    if isinstance(options, dict):
        return options.get(key)
    # Some clients send a typed object; try attribute access
    return getattr(options, key, None)


# ---------------------------------------------------------------------------
# VersionResolver
# ---------------------------------------------------------------------------

class VersionResolver:
    """Chooses the active registry version and applies it to a registry."""

    def __init__(
        self,
        workspace_root: str | None = None,
        default_version: str | None = None,
        default_registry_dir: str | Path | None = None,
    ):
        self._workspace_root = workspace_root
        self._default_version = default_version
        self._default_registry_dir = default_registry_dir
        # Explicit override set by the user/client (highest priority)
        self._client_version: str | None = None

    @property
    def workspace_root(self) -> str | None:
        return self._workspace_root

    def set_client_version(self, version: str | None) -> None:
        """Set (or clear, with *None* or ``''``) the client's explicit version."""
        self._client_version = version or None

    def candidates(self, project: ProjectConfig | None = None) -> list[str]:
        """Requested versions in priority order (highest priority first)."""
        project = project if project is not None else _read_project_config(self._workspace_root)
        return [
            v for v in (self._client_version, project.schema_version, self._default_version)
            if v
        ]

    def resolve(self, registry: SchemaRegistry, project: ProjectConfig | None = None) -> str | None:
        """Return the version the cascade selects among *registry*'s versions."""
        available = registry.list_versions()
        for requested in self.candidates(project):
            if requested in available:
                return requested
            logger.warning('settings: unknown schema version %r ignored', requested)
        return available[-1] if available else None

    def apply(self, registry: SchemaRegistry) -> str:
        """Point *registry* at the configured directory and version.

        Returns the version that is active afterwards.
        """
        project = _read_project_config(self._workspace_root)
        registry.set_registry_dir(project.registry_dir or self._default_registry_dir)

        target = self.resolve(registry, project)
        if target is None or target == registry.version:
            return registry.version
        try:
            registry.switch_version(target)
        except RegistryError:
            logger.warning('settings: failed to load schema version %s', target, exc_info=True)
        return registry.version
