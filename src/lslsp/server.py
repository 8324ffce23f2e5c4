"""
lslsp Language Server.

Registers LSP capabilities and wires the registry-backed handlers.
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

from pygls.lsp.server import LanguageServer
from lsprotocol import types as lsp

logger = logging.getLogger(__name__)

from lslsp import __version__
from lslsp.document import ParsedDocument, document_diagnostics, parse_document
from lslsp.handlers import (
    get_completion_items,
    get_context_info,
    get_diagnostics,
    get_document_symbols,
    get_hover,
)
from lslsp.registry import RegistryError, SchemaRegistry
from lslsp.settings import VersionResolver, setting

# ---------------------------------------------------------------------------
# Server instance + per-session state
# ---------------------------------------------------------------------------

server = LanguageServer(
    'lslsp', __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)

# Per-URI document store (populated on open/change).
_docs: dict[str, ParsedDocument] = {}

# Per-URI request generation; a publish computed for an older generation
# is dropped.
_generations: dict[str, int] = {}

# Registry of plugin names; switched wholesale, read via snapshot().
_registry = SchemaRegistry()

# Version cascade; rebuilt by configure() and on initialize.
_resolver = VersionResolver()

# Process defaults from the command line.
_defaults: dict[str, str | None] = {'schema_version': None, 'registry_dir': None}

# Debounce state: pending asyncio tasks for each URI.
_pending_tasks: dict[str, asyncio.Task] = {}

# Thread pool for validation (keeps the event loop free on large files).
_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix='lslsp-validate')


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def configure(schema_version: str | None = None, registry_dir: str | None = None) -> None:
    """Set the process defaults (``--schema-version`` / ``--registry-dir``)."""
    global _resolver
    _defaults['schema_version'] = schema_version
    _defaults['registry_dir'] = registry_dir
    _resolver = VersionResolver(
        workspace_root=_resolver.workspace_root,
        default_version=schema_version,
        default_registry_dir=registry_dir,
    )
    _resolver.apply(_registry)


def _next_generation(uri: str) -> int:
    generation = _generations.get(uri, 0) + 1
    _generations[uri] = generation
    return generation


def _is_current(uri: str, generation: int | None) -> bool:
    return generation is None or _generations.get(uri) == generation


def _store(uri: str, source: str, version: int | None = None) -> int:
    """Parse and store *source* for *uri*; return the new generation."""
    _docs[uri] = parse_document(uri, source, version)
    return _next_generation(uri)


def _send(uri: str, doc: ParsedDocument, diags: list[lsp.Diagnostic], generation: int | None) -> None:
    if not _is_current(uri, generation):
        logger.debug('_send: %s superseded, dropping', uri)
        return
    logger.debug('_publish_diagnostics: %s → %d diagnostics', uri, len(diags))
    server.text_document_publish_diagnostics(
        lsp.PublishDiagnosticsParams(uri=uri, diagnostics=diags, version=doc.version)
    )


def _publish_diagnostics(uri: str, generation: int | None = None) -> None:
    doc = _docs.get(uri)
    if doc is None or not _is_current(uri, generation):
        return
    _send(uri, doc, get_diagnostics(doc, _registry), generation)


def _publish_all() -> None:
    """Republish every open document (after a registry switch)."""
    for uri in list(_docs):
        _publish_diagnostics(uri)


async def _debounced_update(uri: str, generation: int, delay: float = 0.3) -> None:
    """Wait *delay* seconds, then validate in a worker thread and publish.

    Called via asyncio.create_task so it can be cancelled if the document
    changes again before the delay expires (debounce while typing).
    """
    await asyncio.sleep(delay)
    doc = _docs.get(uri)
    if doc is None or not _is_current(uri, generation):
        return
    logger.debug('_debounced_update: running for %s (generation %d)', uri, generation)
    loop = asyncio.get_running_loop()
    diags = await loop.run_in_executor(_executor, get_diagnostics, doc, _registry)
    _send(uri, doc, diags, generation)


def _schedule_update(uri: str, generation: int, delay: float = 0.3) -> None:
    """Cancel any pending update for *uri* and schedule a new debounced one."""
    existing = _pending_tasks.pop(uri, None)
    if existing is not None:
        existing.cancel()
    task = asyncio.ensure_future(_debounced_update(uri, generation, delay))
    _pending_tasks[uri] = task

    def _done(t: asyncio.Task) -> None:
        if _pending_tasks.get(uri) is t:
            del _pending_tasks[uri]

    task.add_done_callback(_done)


def _apply_log_level(raw: str | None) -> None:
    """Set the root logger level from a string like 'debug', 'warning', etc."""
    if not raw:
        return
    level = getattr(logging, str(raw).upper(), None)
    if isinstance(level, int):
        logging.getLogger().setLevel(level)
    else:
        logger.warning('ignoring unknown log level %r', raw)


def _apply_versions() -> None:
    """Re-run version resolution; republish if the active version changed."""
    before = _registry.version
    after = _resolver.apply(_registry)
    if after != before:
        logger.info('schema version %s → %s', before or '(none)', after)
        _publish_all()


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@server.feature(lsp.INITIALIZE)
def on_initialize(params: lsp.InitializeParams):
    global _resolver
    workspace_root = None
    if params.root_uri:
        # Strip the file:// scheme for local path use
        uri = params.root_uri
        workspace_root = uri[7:] if uri.startswith('file://') else uri

    _resolver = VersionResolver(
        workspace_root=workspace_root,
        default_version=_defaults['schema_version'],
        default_registry_dir=_defaults['registry_dir'],
    )

    opts = getattr(params, 'initialization_options', None)
    # Honor an explicit schema version and log level in initializationOptions
    _resolver.set_client_version(setting(opts, 'schemaVersion'))
    _apply_log_level(setting(opts, 'logLevel'))
    _resolver.apply(_registry)
    logger.info('initialized with schema version %s', _registry.version or '(none)')


@server.feature(lsp.WORKSPACE_DID_CHANGE_CONFIGURATION)
def did_change_configuration(params: lsp.DidChangeConfigurationParams):
    """Handle live config changes (e.g. user changes ``lslsp.schemaVersion``)."""
    settings = getattr(params, 'settings', None) or {}
    if not isinstance(settings, dict):
        return
    section = settings.get('lslsp', {}) or {}
    if 'schemaVersion' in section:
        _resolver.set_client_version(section.get('schemaVersion'))  # None clears the override
        _apply_versions()
    _apply_log_level(section.get('logLevel'))


# ---------------------------------------------------------------------------
# Text document synchronisation
# ---------------------------------------------------------------------------

@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams):
    td = params.text_document
    generation = _store(td.uri, td.text, td.version)
    # No debounce on open, the text comes straight from disk
    _publish_diagnostics(td.uri, generation)


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams):
    td = params.text_document
    source = params.content_changes[-1].text
    generation = _store(td.uri, source, td.version)
    # Debounce: wait for the user to pause typing before validating
    _schedule_update(td.uri, generation)


@server.feature(lsp.TEXT_DOCUMENT_DID_SAVE)
def did_save(params: lsp.DidSaveTextDocumentParams):
    uri = params.text_document.uri
    _publish_diagnostics(uri, _generations.get(uri))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams):
    uri = params.text_document.uri
    existing = _pending_tasks.pop(uri, None)
    if existing is not None:
        existing.cancel()
    _docs.pop(uri, None)
    _generations.pop(uri, None)
    server.text_document_publish_diagnostics(
        lsp.PublishDiagnosticsParams(uri=uri, diagnostics=[])
    )


# ---------------------------------------------------------------------------
# Completion, hover, outline
# ---------------------------------------------------------------------------

@server.feature(
    lsp.TEXT_DOCUMENT_COMPLETION,
    lsp.CompletionOptions(trigger_characters=['>', '{', ' ']),
)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList | None:
    doc = _docs.get(params.text_document.uri)
    if doc is None:
        return None
    items = get_completion_items(doc, params.position, _registry)
    return lsp.CompletionList(is_incomplete=False, items=items)


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(params: lsp.HoverParams) -> lsp.Hover | None:
    doc = _docs.get(params.text_document.uri)
    if doc is None:
        return None
    return get_hover(doc, params.position, _registry)


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    doc = _docs.get(params.text_document.uri)
    if doc is None:
        return []
    return get_document_symbols(doc)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

# pygls v2 handles workspace/executeCommand natively via @server.command().
# ``arguments`` are unpacked as positional args, e.g.
#   {command: 'lslsp.getContextInfo', arguments: [uri, offset]}

@server.command('lslsp.getContextInfo')
def cmd_get_context_info(uri: str, offset: int):
    """Return the context sidebar payload for *offset* in *uri*."""
    doc = _docs.get(uri)
    if doc is None:
        return {'kind': 'none'}
    return get_context_info(doc.source, int(offset), _registry).to_dict()


@server.command('lslsp.listVersions')
def cmd_list_versions():
    return {'versions': _registry.list_versions(), 'current': _registry.version}


@server.command('lslsp.switchVersion')
def cmd_switch_version(version: str):
    """Switch the active registry version and republish diagnostics.

    A failed switch leaves the previous version active.
    """
    try:
        _registry.switch_version(version)
    except RegistryError as exc:
        logger.warning('switchVersion: %s', exc)
        return {'ok': False, 'error': str(exc), 'current': _registry.version}
    # Pin the choice so a later configuration change does not undo it.
    _resolver.set_client_version(version)
    _publish_all()
    return {'ok': True, 'current': _registry.version}


@server.command('lslsp.getDiagnostics')
def cmd_get_diagnostics(uri: str):
    """Return the raw offset-based diagnostics for *uri*."""
    doc = _docs.get(uri)
    if doc is None:
        return {'ok': True, 'diagnostics': []}
    return document_diagnostics(doc, _registry.snapshot()).to_dict()
