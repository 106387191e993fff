#!/usr/bin/env python3
"""
Dependency Install Cache - Main entry point

Usage:
    dep_install_cache install [--cache-dir=<CACHE_DIR>] [--force-refresh] [--cwd=<DIR>] \
        [<manager> [<install options>...]]...
    dep_install_cache hash [--cache-dir=<CACHE_DIR>] [--cwd=<DIR>] [<manager>...]
    dep_install_cache clean [--cache-dir=<CACHE_DIR>]
    dep_install_cache managers
    dep_install_cache serve [--cache-dir=<CACHE_DIR>] [--host=<HOST>] [--port=<PORT>]

Examples:
    dep_install_cache install                          # every manager with a manifest
    dep_install_cache install npm --production bower   # npm with extra options, then bower
    dep_install_cache install --force-refresh composer
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from application.load_dependencies import LoadDependencies
from domain.errors import CacheError
from infrastructure.cli_tools import CliTools
from infrastructure.file_system_cache_repository import FileSystemCacheRepository
from infrastructure.manager_registry import DEFAULT_DESCRIPTOR_DIR, ManagerRegistry

CACHE_DIR_ENV = "DEP_INSTALL_CACHE_DIR"

logger = logging.getLogger(__name__)


def default_cache_dir() -> str:
    return os.environ.get(CACHE_DIR_ENV) or str(Path.home() / ".package_cache")


def parse_manager_args(tokens: List[str], available: Iterable[str]) -> Dict[str, str]:
    """
    Split 'npm --production bower --allow-root' into {'npm': '--production', 'bower': '--allow-root'}.

    Every known manager name starts a new group; the tokens after it are its
    install options. With no tokens, every available manager is selected.
    """
    available = list(available)
    if not tokens:
        return {name: "" for name in available}

    if tokens[0] not in available:
        raise ValueError(f"Unsupported manager: {tokens[0]}")

    managers: Dict[str, List[str]] = {}
    current = None
    for token in tokens:
        if token in available:
            current = token
            managers.setdefault(current, [])
        else:
            managers[current].append(token)

    return {name: " ".join(options) for name, options in managers.items()}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Dependency Install Cache - restore installed dependencies keyed by manifest hash',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debug messages')
    parser.add_argument('-q', '--quiet', action='store_true', help='Only log warnings and errors')
    parser.add_argument('--descriptor-dir', help='Directory holding <name>Config.json descriptors')

    subparsers = parser.add_subparsers(dest='command', required=True)

    cache_dir_help = f'Cache root (default: ${CACHE_DIR_ENV} or ~/.package_cache)'

    install = subparsers.add_parser('install', help='Restore dependencies from cache or install and cache them')
    install.add_argument('--cache-dir', default=None, help=cache_dir_help)
    install.add_argument('--force-refresh', action='store_true',
                         help='Reinstall even when a cached archive exists')
    install.add_argument('--cwd', default=None, help='Project directory (default: current directory)')
    install.add_argument('managers', nargs=argparse.REMAINDER,
                         help='Managers, each optionally followed by extra install options')

    hash_cmd = subparsers.add_parser('hash', help='Print the cache key of each manifest')
    hash_cmd.add_argument('--cache-dir', default=None, help=cache_dir_help)
    hash_cmd.add_argument('--cwd', default=None, help='Project directory (default: current directory)')
    hash_cmd.add_argument('managers', nargs='*', help='Managers to hash (default: all)')

    clean = subparsers.add_parser('clean', help='Remove every cached archive')
    clean.add_argument('--cache-dir', default=None, help=cache_dir_help)

    subparsers.add_parser('managers', help='List available package managers')

    serve = subparsers.add_parser('serve', help='Run the HTTP API')
    serve.add_argument('--cache-dir', default=None, help=cache_dir_help)
    serve.add_argument('--host', default='127.0.0.1', help='Host to bind to (default: 127.0.0.1)')
    serve.add_argument('--port', type=int, default=8000, help='Port to listen on (default: 8000)')

    return parser


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format='%(levelname)s %(message)s')


def run_install(args, registry: ManagerRegistry, loader: LoadDependencies) -> int:
    managers = parse_manager_args(args.managers, registry.list_available())
    configs = registry.build_configs(
        managers.keys(),
        args.cache_dir,
        work_dir=args.cwd,
        force_refresh=args.force_refresh,
        install_options=managers
    )

    outcomes = asyncio.run(loader.load_all(configs))
    failed = [outcome for outcome in outcomes if not outcome.success]
    for outcome in failed:
        logger.error("%s failed: %s", outcome.manager, outcome.error)
    return 1 if failed else 0


def run_hash(args, registry: ManagerRegistry, loader: LoadDependencies) -> int:
    names = args.managers or list(registry.list_available())
    configs = registry.build_configs(names, args.cache_dir, work_dir=args.cwd)

    status = 0
    for config in configs:
        if not config.config_path.exists():
            logger.info("[%s] %s does not exist, nothing to hash", config.cli_name, config.config_path)
            continue
        try:
            info = loader.describe(config)
        except CacheError as e:
            logger.error("[%s] %s", config.cli_name, e)
            status = 1
            continue
        state = "cached" if info.cached else "not cached"
        print(f"{info.manager} {info.cli_version} {info.digest} {info.cache_path} ({state})")
    return status


def run_serve(args) -> int:
    import uvicorn

    from interfaces.api import initialize_app

    app = initialize_app(cache_dir=args.cache_dir, descriptor_dir=args.descriptor_dir)

    print(f"Starting Dependency Install Cache server on {args.host}:{args.port}")
    print(f"Cache directory: {args.cache_dir}")

    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    if hasattr(args, 'cache_dir'):
        args.cache_dir = str(Path(args.cache_dir or default_cache_dir()).expanduser().resolve())

    if args.command == 'serve':
        return run_serve(args)

    if args.command == 'clean':
        removed = FileSystemCacheRepository(Path(args.cache_dir)).clean()
        print(f"Removed {removed} cached archive(s) from {args.cache_dir}")
        return 0

    cli_tools = CliTools()
    registry = ManagerRegistry(args.descriptor_dir or DEFAULT_DESCRIPTOR_DIR, cli_tools=cli_tools)

    if args.command == 'managers':
        for name, path in registry.list_available().items():
            print(f"{name}\t{path}")
        return 0

    loader = LoadDependencies(cli_tools=cli_tools)
    try:
        if args.command == 'install':
            return run_install(args, registry, loader)
        return run_hash(args, registry, loader)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


def cli() -> None:
    sys.exit(main())


if __name__ == '__main__':
    cli()
