"""Command-line interface for the obligation-graph solvency analyzer."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace

from .config import AppConfig, SnapshotConfig, load_config
from .errors import SolvencyError
from .logging_setup import configure_logging
from .services import Analyzer

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_INSOLVENT = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="ocg-solvency",
        description="Obligation-graph solvency analyzer",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    check_parser = sub.add_parser("check", help="Run a solvency check and print the summary")
    check_parser.add_argument(
        "--snapshot",
        default=None,
        help="Entity-graph snapshot file (overrides config)",
    )

    export_parser = sub.add_parser("export", help="Write the full solvency report as JSON")
    export_parser.add_argument(
        "--snapshot",
        default=None,
        help="Entity-graph snapshot file (overrides config)",
    )
    export_parser.add_argument(
        "--output",
        default=None,
        help="Output file (default: stdout)",
    )

    return parser


def _with_snapshot(config: AppConfig, snapshot: str | None) -> AppConfig:
    if snapshot is None:
        return config
    return replace(config, snapshot=SnapshotConfig(path=snapshot))


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command and return the exit status."""
    configure_logging(args.log_level)
    config = _with_snapshot(load_config(args.config), args.snapshot)
    analyzer = Analyzer(config)

    if args.command == "check":
        summary = await analyzer.check()
        print(analyzer.format_summary(summary))
        return 0 if summary.is_system_solvent else EXIT_INSOLVENT

    if args.command == "export":
        data = await analyzer.export(args.output)
        if args.output is None:
            print(json.dumps(data, indent=2))
        return 0

    build_parser().print_help()
    return EXIT_ERROR


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    try:
        status = asyncio.run(_run(args))
    except SolvencyError as e:
        logger.error("Solvency analysis failed: %s", e)
        sys.exit(EXIT_ERROR)
    sys.exit(status)
