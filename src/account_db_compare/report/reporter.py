"""
Report rendering for comparison runs.

Prints per-account comparisons and the run summary with rich, and writes the
full comparison stream to CSV.
"""

import csv
from pathlib import Path
from typing import Iterable, Optional, Union

from rich.console import Console
from rich.table import Table

from account_db_compare.config.models import RunSummary
from account_db_compare.core.models import (
    AccountSnapshot,
    ComparisonResult,
    ComparisonStatus,
    MismatchKind,
)

CSV_COLUMNS = [
    "account_id",
    "node_name",
    "archiver_balance",
    "archiver_nonce",
    "node_balance",
    "node_nonce",
    "mismatches",
    "status",
]

NOT_APPLICABLE = "N/A"
UNKNOWN = "unknown"

_MISMATCH_LABELS = {
    MismatchKind.BALANCE: "Balance mismatch",
    MismatchKind.NONCE: "Nonce mismatch",
    MismatchKind.KIND: "Account kind mismatch",
}


def format_balance(snapshot: Optional[AccountSnapshot]) -> str:
    if snapshot is None:
        return ""
    if not snapshot.balance_applicable:
        return NOT_APPLICABLE
    if snapshot.balance is None:
        return UNKNOWN
    return str(snapshot.balance)


def format_nonce(snapshot: Optional[AccountSnapshot]) -> str:
    if snapshot is None:
        return ""
    if snapshot.nonce is None:
        return UNKNOWN
    return str(snapshot.nonce)


def mismatch_flags(result: ComparisonResult) -> str:
    """Mismatch kinds in a stable order, joined with ``|``."""
    return "|".join(kind.value for kind in MismatchKind if kind in result.mismatches)


class Reporter:
    """Renders comparison results and run summaries."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        """
        Initialize the reporter.

        Args:
            console: Rich console to print to, stdout when omitted
            verbose: Print every comparison instead of only mismatches
        """
        self.console = console or Console(highlight=False, soft_wrap=True)
        self.verbose = verbose

    def _line(self, text: str = "") -> None:
        self.console.print(text, markup=False, highlight=False)

    def should_print(self, result: ComparisonResult) -> bool:
        if self.verbose:
            return True
        return result.status == ComparisonStatus.MISMATCH

    def print_result(self, result: ComparisonResult) -> None:
        """Print one comparison in the block layout operators are used to."""
        status = result.status
        if status == ComparisonStatus.MISSING_IN_NODE:
            snapshot = result.archiver_snapshot
            self._line(f"Account ID: {result.account_id} (ONLY IN ARCHIVER)")
            self._line(f"  Node: {result.node_name}")
            self._line(f"  Balance: {format_balance(snapshot)}, Nonce: {format_nonce(snapshot)}")
            self._line("  STATUS: NOT FOUND IN NODE")
            self._line()
            return
        if status == ComparisonStatus.MISSING_IN_ARCHIVER:
            snapshot = result.node_snapshot
            self._line(f"Account ID: {result.account_id} (ONLY IN NODE: {result.node_name})")
            self._line(f"  Balance: {format_balance(snapshot)}, Nonce: {format_nonce(snapshot)}")
            self._line("  STATUS: NOT FOUND IN ARCHIVER")
            self._line()
            return

        archiver, node = result.archiver_snapshot, result.node_snapshot
        self._line(f"Account ID: {result.account_id}")
        self._line(f"Node: {result.node_name}")
        self._line(
            f"  Archiver - Balance: {format_balance(archiver)}, Nonce: {format_nonce(archiver)}"
        )
        self._line(f"  Node     - Balance: {format_balance(node)}, Nonce: {format_nonce(node)}")
        if self.verbose and (archiver.account_hash or node.account_hash):
            self._line(f"  Archiver hash: {archiver.account_hash or UNKNOWN}")
            self._line(f"  Node hash:     {node.account_hash or UNKNOWN}")
        if status == ComparisonStatus.MISMATCH:
            self._line("  STATUS: MISMATCH")
            for kind in MismatchKind:
                if kind in result.mismatches:
                    self._line(f"    - {_MISMATCH_LABELS[kind]}")
        else:
            self._line("  STATUS: MATCH")
        self._line()

    def print_results(self, results: Iterable[ComparisonResult]) -> int:
        """Print the results selected by the current mode; returns how many were printed."""
        printed = 0
        self._line()
        self._line("=== ACCOUNT COMPARISON ===")
        self._line()
        for result in results:
            if self.should_print(result):
                self.print_result(result)
                printed += 1
        return printed

    def print_summary(self, summary: RunSummary) -> None:
        """Print the global totals and the per-node breakdown."""
        stats = summary.stats
        self._line("=== SUMMARY ===")
        self._line(f"Archiver accounts: {summary.archiver_accounts}")
        self._line(f"Nodes compared: {summary.total_nodes - len(summary.failed_nodes)}")
        self._line(f"Total comparisons: {stats.compared}")
        self._line(f"Mismatches found: {stats.mismatched}")
        self._line(f"  Balance mismatches: {stats.balance_mismatched}")
        self._line(f"  Nonce mismatches: {stats.nonce_mismatched}")
        self._line(f"  Kind mismatches: {stats.kind_mismatched}")
        self._line(f"Missing in node: {stats.missing_in_node}")
        self._line(f"Missing in archiver: {stats.missing_in_archiver}")
        self._line(
            f"Unparsable records: {stats.unparsable} "
            f"(archiver: {summary.archiver_unparsable})"
        )
        self._line(f"Match rate: {stats.match_rate * 100:.2f}%")
        if summary.failed_nodes:
            self._line(f"Failed nodes: {', '.join(summary.failed_nodes)}")

        if summary.node_stats:
            table = Table(title="Per-node results")
            for column in ("Node", "Compared", "Mismatched", "Missing in node",
                           "Missing in archiver", "Unparsable", "Match rate"):
                table.add_column(column, justify="left" if column == "Node" else "right")
            for node_name, node_stats in summary.node_stats.items():
                table.add_row(
                    node_name,
                    str(node_stats.compared),
                    str(node_stats.mismatched),
                    str(node_stats.missing_in_node),
                    str(node_stats.missing_in_archiver),
                    str(node_stats.unparsable),
                    f"{node_stats.match_rate * 100:.2f}%",
                )
            self.console.print(table)


def write_csv(results: Iterable[ComparisonResult], output_path: Union[str, Path]) -> int:
    """
    Write the full comparison stream to CSV.

    Args:
        results: Comparison results to write
        output_path: Destination file, parent folders are created

    Returns:
        Number of rows written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    rows = 0
    with open(output_path, "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(CSV_COLUMNS)
        for result in results:
            writer.writerow(
                [
                    result.account_id,
                    result.node_name,
                    format_balance(result.archiver_snapshot),
                    format_nonce(result.archiver_snapshot),
                    format_balance(result.node_snapshot),
                    format_nonce(result.node_snapshot),
                    mismatch_flags(result),
                    result.status.value,
                ]
            )
            rows += 1
    return rows
