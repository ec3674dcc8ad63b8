"""
Reconciliation module for the account comparison tool.

This module provides the normalizer, reconciler and aggregator that compare
node account stores against the archiver snapshot.
"""

from .aggregator import Aggregator, fold
from .normalizer import normalize
from .reconciler import ArchiverIndex, Reconciler, compare_snapshots, reconcile
from .reconciliation_manager import ReconciliationManager

__all__ = [
    "Aggregator",
    "ArchiverIndex",
    "ReconciliationManager",
    "Reconciler",
    "compare_snapshots",
    "fold",
    "normalize",
    "reconcile",
]
