"""Command line entry point for the project."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
from typing import Sequence

from dotenv import load_dotenv

from .app import run_scan_once, run_service, run_sweep_once, run_test_reminder
from .config import ConfigError, load_config
from .errors import AuthenticationFailure, DispatchFailure, StoreFailure
from .logging_config import get_category_logger, setup_logging
from .storage import SQLiteDatabase


_LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send appointment reminder push notifications")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start the scheduler (default)")
    run_parser.set_defaults(command="run")

    scan_parser = subparsers.add_parser("scan", help="Run one reminder scan and exit")
    scan_parser.set_defaults(command="scan")

    sweep_parser = subparsers.add_parser("sweep", help="Delete expired reminder markers and exit")
    sweep_parser.set_defaults(command="sweep")

    test_parser = subparsers.add_parser(
        "test-reminder", help="Send a test notification to one user"
    )
    test_parser.add_argument("--user-id", dest="user_id", default=None)
    test_parser.set_defaults(command="test-reminder")

    migrate_parser = subparsers.add_parser(
        "migrate", help="Apply database migrations and exit"
    )
    migrate_parser.set_defaults(command="migrate")

    parser.set_defaults(command="run")
    return parser


def _run_migrations(config) -> None:
    schema_logger = get_category_logger("schema")
    schema_logger.info("Ensuring schema for %s", config.storage_path)
    with SQLiteDatabase(config.storage_path) as database:
        schema_logger.info(
            "Database ready at %s (schema version %s)", config.storage_path, database.schema_version()
        )


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    setup_logging(log_file=os.getenv("LOG_FILE") or "logs/app.log")
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
    except ConfigError as exc:
        _LOGGER.error("Invalid configuration: %s", exc)
        return 2

    if args.command == "migrate":
        try:
            _run_migrations(config)
        except StoreFailure as exc:
            _LOGGER.error("Migration failed: %s", exc)
            return 1
        return 0

    if args.command == "scan":
        result = asyncio.run(run_scan_once(config))
        print(
            f"scanned={result.appointments_scanned} sent={result.reminders_sent} "
            f"skipped={result.skipped} failed={result.failed}"
        )
        return 0

    if args.command == "sweep":
        sweep = asyncio.run(run_sweep_once(config))
        print(f"deleted={sweep.deleted_count}")
        return 0

    if args.command == "test-reminder":
        try:
            outcome = asyncio.run(run_test_reminder(args.user_id, config))
        except AuthenticationFailure as exc:
            _LOGGER.warning("Test notification refused (%s): %s", exc.reason, exc)
            return 1
        except DispatchFailure as exc:
            _LOGGER.error("Test notification failed: %s", exc)
            return 1
        print(outcome.message)
        return 0

    try:
        asyncio.run(run_service(config))
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted, shutting down")
    return 0


__all__ = ["main"]
