"""
Domain models for account reconciliation using Pydantic.

This module defines the canonical account snapshot, the per-account
comparison outcome and the running counters folded from those outcomes.
"""

from enum import Enum
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccountKind(str, Enum):
    """Enumeration of the known account payload schemas."""

    REGULAR = "regular"
    SPECIAL = "special"


class MismatchKind(str, Enum):
    """Field-level disagreement between archiver and node."""

    BALANCE = "balance_mismatch"
    NONCE = "nonce_mismatch"
    KIND = "kind_mismatch"


class ComparisonStatus(str, Enum):
    """Overall classification of one comparison result."""

    MATCH = "match"
    MISMATCH = "mismatch"
    MISSING_IN_NODE = "missing_in_node"
    MISSING_IN_ARCHIVER = "missing_in_archiver"


class AccountSnapshot(BaseModel):
    """Store-agnostic view of one account at one point in time."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    kind: AccountKind
    balance: Optional[int] = None
    balance_applicable: bool = True
    nonce: Optional[int] = None
    timestamp: Optional[int] = None
    account_hash: Optional[str] = None

    @field_validator("account_id")
    @classmethod
    def validate_account_id(cls, v):
        """Account identity is the join key and must not be empty."""
        if not v:
            raise ValueError("account_id must not be empty")
        return v


class RecordError(BaseModel):
    """A single payload that could not be normalized."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    store: str  # "archiver" or a node name
    error_type: str
    reason: str


class ComparisonResult(BaseModel):
    """Outcome of matching one account identity between a node and the archiver."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    node_name: str
    archiver_snapshot: Optional[AccountSnapshot] = None
    node_snapshot: Optional[AccountSnapshot] = None
    mismatches: FrozenSet[MismatchKind] = frozenset()

    @property
    def status(self) -> ComparisonStatus:
        if self.node_snapshot is None:
            return ComparisonStatus.MISSING_IN_NODE
        if self.archiver_snapshot is None:
            return ComparisonStatus.MISSING_IN_ARCHIVER
        if self.mismatches:
            return ComparisonStatus.MISMATCH
        return ComparisonStatus.MATCH

    @property
    def is_match(self) -> bool:
        return self.status == ComparisonStatus.MATCH


class AggregateStats(BaseModel):
    """
    Running totals for one node or for the whole run.

    Only accounts present on both sides count toward ``compared``; a result
    with several mismatching fields counts once in ``mismatched`` and once in
    each per-field bucket.
    """

    compared: int = Field(default=0, ge=0)
    mismatched: int = Field(default=0, ge=0)
    balance_mismatched: int = Field(default=0, ge=0)
    nonce_mismatched: int = Field(default=0, ge=0)
    kind_mismatched: int = Field(default=0, ge=0)
    missing_in_node: int = Field(default=0, ge=0)
    missing_in_archiver: int = Field(default=0, ge=0)
    unparsable: int = Field(default=0, ge=0)

    @property
    def matched(self) -> int:
        return self.compared - self.mismatched

    @property
    def match_rate(self) -> float:
        """Fraction of compared accounts that matched, 0.0 when nothing was compared."""
        if self.compared == 0:
            return 0.0
        return self.matched / self.compared

    def record(self, result: ComparisonResult) -> None:
        """Fold a single comparison result into the counters."""
        status = result.status
        if status == ComparisonStatus.MISSING_IN_NODE:
            self.missing_in_node += 1
            return
        if status == ComparisonStatus.MISSING_IN_ARCHIVER:
            self.missing_in_archiver += 1
            return

        self.compared += 1
        if not result.mismatches:
            return
        self.mismatched += 1
        if MismatchKind.BALANCE in result.mismatches:
            self.balance_mismatched += 1
        if MismatchKind.NONCE in result.mismatches:
            self.nonce_mismatched += 1
        if MismatchKind.KIND in result.mismatches:
            self.kind_mismatched += 1

    def record_unparsable(self, count: int = 1) -> None:
        self.unparsable += count

    def merge(self, other: "AggregateStats") -> "AggregateStats":
        """Return a new instance holding the sum of both counter sets."""
        return AggregateStats(
            **{
                name: getattr(self, name) + getattr(other, name)
                for name in AggregateStats.model_fields
            }
        )
