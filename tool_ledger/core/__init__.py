"""
Core modules for tool-ledger.

This package contains the ledger collectors, per-tool aggregation,
retention policies and the background write queue.
"""

from .collector import CollectorNotInitializedError, LedgerCollector, MetricsCollector
from .issues import IssueCollector

__all__ = [
    "CollectorNotInitializedError",
    "IssueCollector",
    "LedgerCollector",
    "MetricsCollector",
]
