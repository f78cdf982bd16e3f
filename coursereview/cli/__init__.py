#!/usr/bin/env python3
"""
Course review CLI

Usage:
    python -m coursereview.cli <command> [options]

Commands:
    seed            Load programs, tags, dummy users and reviews (idempotent)
    export-reviews  Write all reviews to per-user JSON files
    db              Database operations (init, counts)

Environment:
    DATABASE_URL    SQLAlchemy async connection string
    LOG_LEVEL       DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from coursereview import __version__
from coursereview.cli.seed_commands import DbCommand, ExportCommand, SeedCommand
from coursereview.config import settings


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="coursereview",
        description="Course review platform CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s seed --programs-dir data/programs --reviews-dir data/reviews
  %(prog)s seed --with-dummy-users
  %(prog)s export-reviews --output data/reviews
  %(prog)s db counts
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # seed
    seed_parser = subparsers.add_parser("seed", help="Seed the database from JSON files")
    seed_parser.add_argument("--programs-dir", default=str(settings.DATA_DIR / "programs"), help="Directory of program files")
    seed_parser.add_argument("--reviews-dir", default=str(settings.DATA_DIR / "reviews"), help="Directory of review files")
    seed_parser.add_argument("--skip-reviews", action="store_true", help="Do not import reviews")
    seed_parser.add_argument("--with-dummy-users", action="store_true", help="Create one test user per program")

    # export-reviews
    export_parser = subparsers.add_parser("export-reviews", help="Export reviews to JSON files")
    export_parser.add_argument("--output", "-o", default=str(settings.DATA_DIR / "reviews"), help="Output directory")

    # db
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")
    db_subparsers.add_parser("init", help="Create missing tables")
    db_subparsers.add_parser("counts", help="Show table row counts")

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
        "seed": SeedCommand,
        "export-reviews": ExportCommand,
        "db": DbCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](dry_run=parsed.dry_run)
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
