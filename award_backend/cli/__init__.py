#!/usr/bin/env python3
"""
School Award Progression CLI

Usage:
    python -m award_backend.cli <command> [options]

Commands:
    progression   Progression maintenance (recalculate, repair-rounds, check)
    db            Database operations (init)

Environment:
    DATABASE_URL    SQLAlchemy async connection string
    LOG_LEVEL       DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from award_backend import __version__
from award_backend.cli.db_commands import DbCommand
from award_backend.cli.progression_commands import ProgressionCommand


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="award",
        description="School Award Progression CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s db init
  %(prog)s progression recalculate
  %(prog)s --dry-run progression repair-rounds
  %(prog)s progression check --school 3f2b9c1e-...
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    parser.add_argument(
        "--database-url",
        default=None,
        help="Override DATABASE_URL"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Progression commands
    progression_parser = subparsers.add_parser("progression", help="Progression maintenance")
    progression_subparsers = progression_parser.add_subparsers(dest="progression_action")

    progression_subparsers.add_parser("recalculate", help="Re-evaluate every school")
    progression_subparsers.add_parser(
        "repair-rounds",
        help="Move schools whose current round lags behind rounds completed"
    )
    check_parser = progression_subparsers.add_parser("check", help="Re-evaluate one school")
    check_parser.add_argument("--school", "-s", required=True, help="School ID")

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")
    db_subparsers.add_parser("init", help="Create missing tables")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    setup_logging(parsed.log_level)

    command_map = {
        "progression": ProgressionCommand,
        "db": DbCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](
            dry_run=parsed.dry_run,
            database_url=parsed.database_url
        )
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
