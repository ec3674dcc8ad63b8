"""
Account Database Comparison Tool.

Reconciles the archiver's account snapshot against the per-node account
databases of a distributed ledger and reports balance and nonce
divergences.
"""

from .reconciliation import ReconciliationManager, normalize, reconcile

__version__ = "1.0.0"

__all__ = [
    "ReconciliationManager",
    "normalize",
    "reconcile",
]
