"""
Reconciliation manager with concurrent execution and comprehensive logging.

This module coordinates a full comparison run: it loads the archiver
snapshot once, discovers node databases and reconciles every node on a
bounded worker pool, then merges the per-node counters.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from account_db_compare.config.models import NodeRunResult, RunSummary
from account_db_compare.core.base_manager import BaseManager
from account_db_compare.core.exceptions import NodeStoreError
from account_db_compare.core.models import AggregateStats, ComparisonResult, RecordError
from account_db_compare.sqlite_operations import NodeStore

from .aggregator import Aggregator, counted
from .reconciler import ArchiverIndex, Reconciler


class ReconciliationManager(BaseManager):
    """Manager for comparing every node database against the archiver."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.results: List[ComparisonResult] = []
        self.node_results: List[NodeRunResult] = []
        self.record_errors: List[RecordError] = []

    def run_reconciliation_operations(
        self,
        archiver_db: Optional[Union[str, Path]] = None,
        nodes_folder: Optional[Union[str, Path]] = None,
    ) -> RunSummary:
        """
        Run the comparison for all discovered nodes.

        Args:
            archiver_db: Archiver database path, defaults to the configured one
            nodes_folder: Nodes folder path, defaults to the configured one

        Returns:
            RunSummary with merged counters

        Raises:
            ArchiverUnavailableError: If the archiver database cannot be read
            NodesFolderNotFoundError: If the nodes folder does not exist
        """
        start_time = datetime.now(timezone.utc)
        archiver_db = archiver_db or self.config.archiver_db
        nodes_folder = nodes_folder or self.config.nodes_folder

        self.logger.info(f"Starting account comparison (run_id: {self.run_id})")

        archiver_rows = self.db_ops.load_archiver_rows(archiver_db)
        nodes = self.db_ops.discover_node_stores(nodes_folder)

        index = ArchiverIndex.build(archiver_rows, self.logger)
        del archiver_rows

        aggregator = Aggregator()
        aggregator.record_unparsable(len(index.errors))
        self.record_errors = list(index.errors.values())

        if not nodes:
            self.logger.warning(f"No node databases found under {nodes_folder}")

        node_outcomes = self._run_node_passes(index, nodes)

        self.results = []
        self.node_results = []
        for node_name in sorted(node_outcomes):
            node_result, node_comparisons = node_outcomes[node_name]
            self.node_results.append(node_result)
            if node_result.status != "success":
                continue
            self.results.extend(node_comparisons)
            self.record_errors.extend(node_result.record_errors)
            aggregator.merge_node(node_name, node_result.stats)

        summary = self.create_summary(
            start_time,
            self.node_results,
            aggregator.global_stats,
            archiver_accounts=len(index),
            archiver_unparsable=len(index.errors),
        )

        self.log_run_results(self.node_results)
        self.log_run_summary(summary)
        return summary

    def _run_node_passes(
        self, index: ArchiverIndex, nodes: List[NodeStore]
    ) -> Dict[str, Tuple[NodeRunResult, List[ComparisonResult]]]:
        """Reconcile every node, concurrently up to the configured worker count."""
        outcomes: Dict[str, Tuple[NodeRunResult, List[ComparisonResult]]] = {}
        if not nodes:
            return outcomes

        reconciler = Reconciler(index, self.logger)
        max_workers = min(self.config.concurrency.max_workers, len(nodes))

        self.logger.info(
            f"Comparing {len(nodes)} nodes against {len(index)} archiver accounts "
            f"using {max_workers} workers"
        )

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_node = {
                executor.submit(self._reconcile_node, reconciler, node): node
                for node in nodes
            }

            for future in as_completed(future_to_node):
                node = future_to_node[future]
                try:
                    outcomes[node.node_name] = future.result()
                except Exception as e:
                    error_msg = f"Failed to compare node {node.node_name}: {str(e)}"
                    self.logger.error(error_msg, exc_info=True)
                    outcomes[node.node_name] = (
                        self._create_failed_result(node, error_msg),
                        [],
                    )

        return outcomes

    def _reconcile_node(
        self, reconciler: Reconciler, node: NodeStore
    ) -> Tuple[NodeRunResult, List[ComparisonResult]]:
        """
        Reconcile a single node store.

        A node that cannot be read fails as a unit: its partial results are
        discarded.
        """
        start_time = datetime.now(timezone.utc)
        stats = AggregateStats()
        errors: List[RecordError] = []

        self.logger.debug(
            f"Starting comparison for node {node.node_name}",
            extra={"run_id": self.run_id, "db_path": str(node.db_path)},
        )

        try:
            comparisons = list(
                counted(
                    reconciler.reconcile(
                        self.db_ops.iter_node_rows(node), node.node_name, errors
                    ),
                    stats,
                )
            )
        except NodeStoreError as e:
            return self._create_failed_result(node, str(e), start_time), []

        stats.record_unparsable(len(errors))
        end_time = datetime.now(timezone.utc)

        return (
            NodeRunResult(
                node_name=node.node_name,
                db_path=str(node.db_path),
                status="success",
                start_time=start_time.isoformat(),
                end_time=end_time.isoformat(),
                duration_seconds=(end_time - start_time).total_seconds(),
                stats=stats,
                record_errors=errors,
            ),
            comparisons,
        )

    def _create_failed_result(
        self,
        node: NodeStore,
        error_msg: str,
        start_time: Optional[datetime] = None,
    ) -> NodeRunResult:
        """
        Create a failed NodeRunResult object with consistent structure.

        Args:
            node: Node store that failed
            error_msg: Error message
            start_time: Node pass start time
        """
        if start_time is None:
            start_time = datetime.now(timezone.utc)
        end_time = datetime.now(timezone.utc)

        return NodeRunResult(
            node_name=node.node_name,
            db_path=str(node.db_path),
            status="failed",
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
            duration_seconds=(end_time - start_time).total_seconds(),
            error_message=error_msg,
        )
