"""
Command-line entry point.

Usage:
    archmigrate migrate --path ./OrderService --level standard --dry-run
    archmigrate migrate --path ./OrderService --config target.json
    archmigrate history --path ./OrderService --format summary

Exit codes:
    0: success, or dry run
    1: the migration failed (and was rolled back) or was refused
    2: configuration, planning or ledger error
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from archmigrate.cli import history, migrate
from archmigrate.exceptions import MigrationError

logger = logging.getLogger(__name__)

EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archmigrate",
        description="Migrate generated service projects between architecture levels.",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    verbosity.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only log errors",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    migrate_parser = commands.add_parser(
        "migrate",
        help="Migrate an existing project to a different architecture level",
    )
    migrate.add_arguments(migrate_parser)
    migrate_parser.set_defaults(handler=migrate.run)

    history_parser = commands.add_parser(
        "history",
        help="Show migration history and project evolution",
    )
    history.add_arguments(history_parser)
    history_parser.set_defaults(handler=history.run)

    return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        return asyncio.run(args.handler(args))
    except MigrationError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        if e.suggested_action:
            print(f"hint: {e.suggested_action}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
