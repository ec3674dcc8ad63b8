"""
Reconciler joining node account records against the archiver index.

The archiver index is built once per run and never mutated afterwards, so a
single index can be shared by node passes running on different threads.
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from account_db_compare.audit.logger import CompareLogger
from account_db_compare.core.exceptions import NormalizeError
from account_db_compare.core.models import (
    AccountSnapshot,
    ComparisonResult,
    MismatchKind,
    RecordError,
)

from .normalizer import normalize

ARCHIVER_STORE = "archiver"


def _record_error(exc: NormalizeError, account_id: str, store: str) -> RecordError:
    return RecordError(
        account_id=account_id,
        store=store,
        error_type=exc.error_type,
        reason=exc.reason,
    )


def _split_row(row) -> Tuple[str, object, Optional[int]]:
    # Readers yield (id, data) or (id, data, timestamp)
    if len(row) == 2:
        account_id, data = row
        return account_id, data, None
    account_id, data, timestamp = row[:3]
    return account_id, data, timestamp


class ArchiverIndex:
    """Read-only map from account identity to the archiver's snapshot."""

    def __init__(self, snapshots: Dict[str, AccountSnapshot], errors: Dict[str, RecordError]):
        self.snapshots: Mapping[str, AccountSnapshot] = MappingProxyType(dict(snapshots))
        self.errors: Mapping[str, RecordError] = MappingProxyType(dict(errors))

    @classmethod
    def build(
        cls, records: Iterable, logger: Optional[CompareLogger] = None
    ) -> "ArchiverIndex":
        """
        Normalize every archiver record.

        Failures are recorded once per identity and kept out of the index.
        When an identity appears twice the last successfully normalized row
        wins.
        """
        snapshots: Dict[str, AccountSnapshot] = {}
        errors: Dict[str, RecordError] = {}
        for row in records:
            account_id, data, timestamp = _split_row(row)
            try:
                snapshot = normalize(data, account_id, timestamp)
            except NormalizeError as e:
                identity = e.account_id or account_id
                errors.setdefault(identity, _record_error(e, identity, ARCHIVER_STORE))
                if logger:
                    logger.warning(
                        f"Failed to parse archiver account data for {identity}: {e.reason}"
                    )
                continue
            snapshots[snapshot.account_id] = snapshot

        for account_id in set(errors) & set(snapshots):
            del errors[account_id]

        if logger:
            logger.info(
                f"Indexed {len(snapshots)} archiver accounts "
                f"({len(errors)} unparsable)"
            )
        return cls(snapshots, errors)

    def __len__(self) -> int:
        return len(self.snapshots)

    def __contains__(self, account_id: str) -> bool:
        return account_id in self.snapshots

    def get(self, account_id: str) -> Optional[AccountSnapshot]:
        return self.snapshots.get(account_id)


def compare_snapshots(
    archiver: AccountSnapshot, node: AccountSnapshot
) -> FrozenSet[MismatchKind]:
    """
    Apply the field equality policy to a pair of snapshots.

    Unknown values never match. Balance only takes part when both sides
    carry one; a kind disagreement is reported on its own.
    """
    mismatches: Set[MismatchKind] = set()

    if archiver.kind != node.kind:
        mismatches.add(MismatchKind.KIND)

    if archiver.nonce is None or node.nonce is None or archiver.nonce != node.nonce:
        mismatches.add(MismatchKind.NONCE)

    if archiver.balance_applicable and node.balance_applicable:
        if archiver.balance is None or node.balance is None or archiver.balance != node.balance:
            mismatches.add(MismatchKind.BALANCE)

    return frozenset(mismatches)


class Reconciler:
    """Compares node record streams against a shared archiver index."""

    def __init__(self, index: ArchiverIndex, logger: Optional[CompareLogger] = None):
        self.index = index
        self.logger = logger

    def reconcile(
        self,
        node_records: Iterable,
        node_name: str,
        errors: Optional[List[RecordError]] = None,
    ) -> Iterator[ComparisonResult]:
        """
        Stream comparison results for one node.

        Yields one result per identity found in the node store, then one
        missing-in-node result for each archiver identity the node lacks.
        Node payloads that fail to normalize are appended to ``errors`` and
        yield nothing.

        Args:
            node_records: Iterable of (account_id, data[, timestamp]) rows
            node_name: Name the results are attributed to
            errors: Optional sink for per-record normalization failures
        """
        seen: Set[str] = set()
        for row in node_records:
            row_id, data, timestamp = _split_row(row)
            try:
                node_snapshot = normalize(data, row_id, timestamp)
            except NormalizeError as e:
                account_id = e.account_id or row_id
                if account_id and self._is_duplicate(account_id, seen, node_name):
                    continue
                if errors is not None:
                    errors.append(_record_error(e, account_id, node_name))
                if self.logger:
                    self.logger.warning(
                        f"Failed to parse node account data for {account_id} in {node_name}: {e.reason}"
                    )
                continue

            account_id = node_snapshot.account_id
            if self._is_duplicate(account_id, seen, node_name):
                continue

            if account_id in self.index.errors:
                # Already counted as unparsable on the archiver side
                continue

            archiver_snapshot = self.index.get(account_id)
            if archiver_snapshot is None:
                yield ComparisonResult(
                    account_id=account_id,
                    node_name=node_name,
                    node_snapshot=node_snapshot,
                )
                continue

            yield ComparisonResult(
                account_id=account_id,
                node_name=node_name,
                archiver_snapshot=archiver_snapshot,
                node_snapshot=node_snapshot,
                mismatches=compare_snapshots(archiver_snapshot, node_snapshot),
            )

        for account_id in sorted(set(self.index.snapshots) - seen):
            yield ComparisonResult(
                account_id=account_id,
                node_name=node_name,
                archiver_snapshot=self.index.snapshots[account_id],
            )

    def _is_duplicate(self, account_id: str, seen: Set[str], node_name: str) -> bool:
        if account_id in seen:
            if self.logger:
                self.logger.warning(
                    f"Duplicate account {account_id} in node {node_name}; keeping first row"
                )
            return True
        seen.add(account_id)
        return False


def reconcile(
    archiver_records: Iterable,
    node_records: Iterable,
    node_name: str,
    errors: Optional[List[RecordError]] = None,
) -> Iterator[ComparisonResult]:
    """Build an archiver index and reconcile a single node against it."""
    index = ArchiverIndex.build(archiver_records)
    if errors is not None:
        errors.extend(index.errors.values())
    return Reconciler(index).reconcile(node_records, node_name, errors)
