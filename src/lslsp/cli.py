"""
lslsp – Logstash pipeline Language Server CLI entry point.

Usage
-----
    lslsp                           # stdio mode (default, for use with editors)
    lslsp --stdio                   # explicit stdio mode
    lslsp --tcp 2087                # listen on TCP port (useful for debugging)
    lslsp --schema-version 8.18     # start on a specific registry version
    lslsp --registry-dir ./schemas  # extra <version>.json snapshots
    lslsp --list-versions           # print available registry versions
"""
from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='lslsp',
        description='Language Server (LSP) for Logstash pipeline configuration files.',
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument(
        '--stdio',
        action='store_true',
        default=False,
        help='Communicate over stdin/stdout (default when no flag given)',
    )
    mode.add_argument(
        '--tcp',
        metavar='PORT',
        type=int,
        default=None,
        help='Listen for connections on the given TCP port instead of stdio',
    )
    p.add_argument(
        '--version',
        action='store_true',
        default=False,
        help='Print the lslsp version and exit',
    )
    p.add_argument(
        '--log-level',
        metavar='LEVEL',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level written to stderr (default: WARNING)',
    )
    p.add_argument(
        '--schema-version',
        metavar='VERSION',
        default=None,
        help='Registry version to use unless the client or .lslsp.toml selects one '
             '(default: highest available)',
    )
    p.add_argument(
        '--registry-dir',
        metavar='DIR',
        default=None,
        help='Directory of additional <version>.json registry snapshots',
    )
    p.add_argument(
        '--list-versions',
        action='store_true',
        default=False,
        help='Print the available registry versions and exit',
    )
    return p


def lslsp(argv: list[str] | None = None) -> None:
    """Entry point for the ``lslsp`` command."""
    import logging
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    from lslsp import __version__

    if args.version:
        print(f'lslsp {__version__}')
        sys.exit(0)

    if args.list_versions:
        from lslsp.registry import SchemaRegistry
        for v in SchemaRegistry(args.registry_dir, load_default=False).list_versions():
            print(v)
        sys.exit(0)

    from lslsp.server import configure, server
    configure(schema_version=args.schema_version, registry_dir=args.registry_dir)

    if args.tcp is not None:
        server.start_tcp('127.0.0.1', args.tcp)
    else:
        # Default (and --stdio): communicate via stdin/stdout
        server.start_io()


if __name__ == '__main__':
    lslsp()
