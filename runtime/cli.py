"""
Runtime - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the labsync server.

- serve       Run the HTTP API and background services
- migrate     Apply pending database migrations
- replicate   Run one replication from the configured source
- db-version  Print the schema-compatibility token

============================================================
USAGE
============================================================
python app.py serve
python app.py --log-level DEBUG replicate
DATABASE_URL=postgresql://... python app.py migrate

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from core.config import AppConfig, load_config
from core.exceptions import LabSyncException
from core.logging_config import setup_logging
from database.engine import Database
from database.versioning import get_db_version, run_migrations

from .context import build_context


logger = logging.getLogger(__name__)


COMMANDS = ("serve", "migrate", "replicate", "db-version")


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="labsync",
        description="Instance coordination, replication and alerting server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  serve       - Run the HTTP API and background services (default)
  migrate     - Apply pending database migrations
  replicate   - Run one replication from REPLICATION_SOURCE
  db-version  - Print the schema version of the database

Configuration is read from the environment and a .env file.
        """,
    )

    parser.add_argument(
        "command",
        nargs="?",
        choices=COMMANDS,
        default="serve",
        help="Command to run (default: serve)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override LOG_LEVEL",
    )

    return parser


# ============================================================
# COMMANDS
# ============================================================

def cmd_serve(config: AppConfig) -> int:
    import uvicorn

    from api.app import create_app

    context = build_context(config)
    app = create_app(context)

    logger.info(f"Starting labsync {config.version} on {config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)
    return 0


async def _migrate(config: AppConfig) -> int:
    database = Database(config.database)
    await database.connect()
    try:
        await run_migrations(database.engine)
    finally:
        await database.dispose()
    return 0


async def _db_version(config: AppConfig) -> int:
    database = Database(config.database)
    await database.connect()
    try:
        version = await get_db_version(database.engine)
    finally:
        await database.dispose()

    print(version or "none")
    return 0


async def _replicate(config: AppConfig) -> int:
    context = build_context(config)
    try:
        await context.connect()
        counts = await context.run_replication()
    except LabSyncException as e:
        logger.error(f"Replication failed: {e}")
        return 1
    finally:
        await context.shutdown()

    print(json.dumps(counts, indent=2))
    return 0


# ============================================================
# MAIN
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
    except LabSyncException as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if args.log_level:
        config.logging.level = args.log_level
    setup_logging(config.logging, sql_echo=config.database.echo)

    if args.command == "serve":
        return cmd_serve(config)
    if args.command == "migrate":
        return asyncio.run(_migrate(config))
    if args.command == "replicate":
        return asyncio.run(_replicate(config))
    return asyncio.run(_db_version(config))
