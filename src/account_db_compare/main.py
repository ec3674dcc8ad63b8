#!/usr/bin/env python3
"""
Main entry point for the account comparison tool.

This module provides the CLI that compares the archiver's account snapshot
against every node database found under a nodes folder.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .audit.logger import CompareLogger
from .config.loader import ConfigLoader
from .core.exceptions import (
    ArchiverUnavailableError,
    ConfigurationError,
    NodesFolderNotFoundError,
)
from .reconciliation.reconciliation_manager import ReconciliationManager
from .report.reporter import Reporter, write_csv


def create_logger(config) -> CompareLogger:
    """Create logger instance from configuration."""
    logger = CompareLogger("account_db_compare")
    if hasattr(config, "logging") and config.logging:
        logger.setup_logging(config.logging)
    return logger


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="account-db-compare",
        description="Compare accounts data between archiver and node databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print mismatches and the summary
  account-db-compare -a archiver.sqlite3 -n ./instances

  # Print every comparison and export the full stream
  account-db-compare -a archiver.sqlite3 -n ./instances -v -o compare.csv
        """,
    )

    parser.add_argument(
        "-a", "--archiver-db", required=True, help="Path to archiver database file"
    )
    parser.add_argument(
        "-n",
        "--nodes-folder",
        required=True,
        help="Path to folder containing node instances",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print all data (not just mismatches)",
    )
    parser.add_argument(
        "-o", "--output", help="Optional path to write all comparisons as CSV", default=None
    )
    parser.add_argument(
        "-c", "--config", help="Optional YAML configuration file", default=None
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the account comparison tool."""
    args = parse_args(argv)

    try:
        if args.config:
            config = ConfigLoader.load_from_file(args.config)
        else:
            config = ConfigLoader.default()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    config.archiver_db = Path(args.archiver_db)
    config.nodes_folder = Path(args.nodes_folder)
    if args.verbose:
        config.report.verbose = True
    if args.output:
        config.report.output_csv = Path(args.output)

    logger = create_logger(config)
    try:
        manager = ReconciliationManager(config, logger)
        summary = manager.run_reconciliation_operations()

        reporter = Reporter(verbose=config.report.verbose)
        reporter.print_results(manager.results)
        reporter.print_summary(summary)

        if config.report.output_csv:
            rows = write_csv(manager.results, config.report.output_csv)
            logger.info(f"Wrote {rows} comparisons to {config.report.output_csv}")

        return 0

    except (ArchiverUnavailableError, NodesFolderNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: Failed to write output: {e}", file=sys.stderr)
        return 1
    finally:
        logger.close()


if __name__ == "__main__":
    sys.exit(main())
