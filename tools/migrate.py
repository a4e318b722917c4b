#!/usr/bin/env python3
"""
SQLWeave Migration CLI
======================

Generate CREATE scripts for registered entities and apply pending migration
files against the configured database.

Connection settings come from SQLWEAVE_* environment variables (or a .env
file in SQLWEAVE_HOME), see config/secure_config.py.

Usage:
    # Write one file per entity registered by the given modules
    sqlweave-migrate generate --entities app.entities

    # Apply pending files
    SQLWEAVE_DB_DRIVER=sqlite SQLWEAVE_DB_NAME=app.db sqlweave-migrate migrate

    # Show applied / pending files
    sqlweave-migrate status
"""

import argparse
import importlib
import logging
import sys
from typing import List, Optional

from config.secure_config import get_config
from core.database_manager import DatabaseManager
from core.errors import ConfigurationError, SQLWeaveError
from core.migration import MigrationManager

logger = logging.getLogger(__name__)


def load_entity_modules(spec: Optional[str]) -> List[str]:
    """Import comma-separated modules; they register their entities on import."""
    loaded = []
    for name in (spec or '').split(','):
        name = name.strip()
        if name:
            try:
                importlib.import_module(name)
            except ImportError as e:
                raise ConfigurationError(f"Cannot import entity module '{name}': {e}",
                                         {'module': name}) from e
            loaded.append(name)
            logger.debug(f"Loaded entity module {name}")
    return loaded


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sqlweave-migrate", description="SQLWeave schema migrations")
    parser.add_argument("--driver", help="Override SQLWEAVE_DB_DRIVER (pgsql, mysql, sqlite)")
    parser.add_argument("--migrations-dir", help="Override SQLWEAVE_MIGRATIONS_DIR")
    parser.add_argument("--no-lock", action="store_true", help="Do not take the advisory migration lock")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Write CREATE scripts for registered entities")
    generate.add_argument("--entities", help="Comma-separated modules that register entities")

    subparsers.add_parser("migrate", help="Apply pending migration files")
    subparsers.add_parser("status", help="List applied and pending migration files")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    if args.driver:
        config.db_driver = args.driver
    if args.migrations_dir:
        config.migrations_dir = args.migrations_dir
    if args.no_lock:
        config.migration_lock = False

    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        with DatabaseManager(config) as manager:
            if args.command == "generate":
                load_entity_modules(args.entities)
                # generation needs the dialect only, no connection
                migrations = MigrationManager(None, manager.mappers, config.migrations_dir)
                for path in migrations.generate():
                    print(f"Generated: {path.name}")
                return 0

            migrations = MigrationManager(manager.executor, manager.mappers, config.migrations_dir,
                                          use_lock=config.migration_lock)
            if args.command == "migrate":
                applied = migrations.migrate()
                for filename in applied:
                    print(f"Applied: {filename}")
                print(f"{len(applied)} migration(s) applied")
            else:
                status = migrations.status()
                for filename in status['applied']:
                    print(f"[applied] {filename}")
                for filename in status['pending']:
                    print(f"[pending] {filename}")
            return 0
    except SQLWeaveError as e:
        logger.error(f"{e.code.value}: {e.message}")
        if e.details:
            logger.error(f"Details: {e.details}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
