"""
Base manager class with common functionality for comparison runs.

This module provides shared run bookkeeping: run identifiers, store access,
result logging and summary creation.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from account_db_compare.audit.logger import CompareLogger
from account_db_compare.config.models import (
    CompareSystemConfig,
    NodeRunResult,
    RunSummary,
)
from account_db_compare.core.models import AggregateStats
from account_db_compare.sqlite_operations import SqliteOperations


class BaseManager:
    """Base manager class with common functionality for comparison runs."""

    def __init__(
        self,
        config: CompareSystemConfig,
        logger: CompareLogger,
        run_id: Optional[str] = None,
        db_ops: Optional[SqliteOperations] = None,
    ):
        """
        Initialize the base manager.

        Args:
            config: System configuration
            logger: Logger instance
            run_id: Optional run identifier
            db_ops: Optional store access helper, built from config when omitted
        """
        self.config = config
        self.logger = logger
        self.run_id = run_id or str(uuid.uuid4())
        self.db_ops = db_ops or SqliteOperations(config.store, config.retry, logger)

    def log_run_result(self, result: NodeRunResult) -> None:
        """
        Log a single node pass.

        Args:
            result: NodeRunResult object to log
        """
        extra = {
            "run_id": self.run_id,
            "node": result.node_name,
            "status": result.status,
            "duration_seconds": result.duration_seconds,
        }
        if result.status == "success":
            stats = result.stats
            self.logger.info(
                f"Node {result.node_name}: {stats.compared} compared, "
                f"{stats.mismatched} mismatched, {stats.missing_in_node} missing in node, "
                f"{stats.missing_in_archiver} missing in archiver, {stats.unparsable} unparsable",
                extra=extra,
            )
        else:
            self.logger.error(
                f"Node {result.node_name} failed: {result.error_message}", extra=extra
            )

    def log_run_results(self, results: List[NodeRunResult]) -> None:
        """
        Log multiple node passes.

        Args:
            results: List of NodeRunResult objects to log
        """
        for result in results:
            self.log_run_result(result)

    def create_summary(
        self,
        start_time: datetime,
        results: List[NodeRunResult],
        stats: AggregateStats,
        archiver_accounts: int = 0,
        archiver_unparsable: int = 0,
    ) -> RunSummary:
        """
        Create a run summary object.

        Args:
            start_time: Run start time
            results: Node pass results
            stats: Merged global counters
            archiver_accounts: Number of indexed archiver accounts
            archiver_unparsable: Number of archiver payloads that failed to parse
        """
        end_time = datetime.now(timezone.utc)
        duration = (end_time - start_time).total_seconds()

        failed_nodes = sorted(r.node_name for r in results if r.status == "failed")
        status = "completed" if not failed_nodes else "completed_with_failures"

        summary_text = (
            f"Comparison completed in {duration:.1f}s. "
            f"Processed {len(results)} nodes ({len(failed_nodes)} failed). "
            f"Match rate: {stats.matched}/{stats.compared} ({stats.match_rate * 100:.2f}%)"
        )

        return RunSummary(
            run_id=self.run_id,
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
            duration=duration,
            status=status,
            archiver_accounts=archiver_accounts,
            archiver_unparsable=archiver_unparsable,
            total_nodes=len(results),
            failed_nodes=failed_nodes,
            stats=stats,
            node_stats={
                r.node_name: r.stats for r in sorted(results, key=lambda r: r.node_name)
                if r.status == "success"
            },
            summary=summary_text,
        )

    def log_run_summary(self, summary: RunSummary) -> None:
        """
        Log the run summary.

        Args:
            summary: Run summary to log
        """
        self.logger.info(
            summary.summary or "Comparison completed",
            extra={"run_id": summary.run_id, "status": summary.status},
        )
