"""
Aggregation of comparison results into global and per-node counters.
"""

from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from account_db_compare.core.models import AggregateStats, ComparisonResult


class Aggregator:
    """
    Folds comparison results into one global and per-node AggregateStats.

    Node passes running on worker threads should each fold into their own
    AggregateStats and hand them to ``merge_node`` from a single thread.
    """

    def __init__(self):
        self.global_stats = AggregateStats()
        self.node_stats: Dict[str, AggregateStats] = {}

    def _node(self, node_name: str) -> AggregateStats:
        if node_name not in self.node_stats:
            self.node_stats[node_name] = AggregateStats()
        return self.node_stats[node_name]

    def record(self, result: ComparisonResult) -> None:
        self.global_stats.record(result)
        self._node(result.node_name).record(result)

    def fold(self, results: Iterable[ComparisonResult]) -> "Aggregator":
        """Single linear pass over a result stream."""
        for result in results:
            self.record(result)
        return self

    def record_unparsable(self, count: int, node_name: Optional[str] = None) -> None:
        """
        Count payloads that could not be normalized.

        Archiver failures only count globally; node failures also count
        against their node.
        """
        self.global_stats.record_unparsable(count)
        if node_name is not None:
            self._node(node_name).record_unparsable(count)

    def merge_node(self, node_name: str, stats: AggregateStats) -> None:
        """Merge the counters of a finished node pass."""
        self.node_stats[node_name] = self._node(node_name).merge(stats)
        self.global_stats = self.global_stats.merge(stats)

    def merge_all(self, node_stats: Mapping[str, AggregateStats]) -> None:
        """Merge several node passes in a deterministic order."""
        for node_name in sorted(node_stats):
            self.merge_node(node_name, node_stats[node_name])


def fold(results: Iterable[ComparisonResult]) -> Tuple[AggregateStats, Dict[str, AggregateStats]]:
    """Fold a result stream into (global stats, per-node stats)."""
    aggregator = Aggregator().fold(results)
    return aggregator.global_stats, aggregator.node_stats


def counted(results: Iterable[ComparisonResult], stats: AggregateStats) -> Iterator[ComparisonResult]:
    """Pass results through while recording them into ``stats``."""
    for result in results:
        stats.record(result)
        yield result
