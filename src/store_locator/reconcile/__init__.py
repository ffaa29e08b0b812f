"""Reconciliation of new data against the curated store history.

Example:
    >>> from store_locator import DataPaths
    >>> from store_locator.reconcile import run_reconciliation
    >>>
    >>> result = run_reconciliation(DataPaths.from_root("data"))
    >>> for row in result.blocked:
    ...     print(row.record.name)

"""

from store_locator.reconcile.duplicates import FirstSeenIndex, find_duplicates
from store_locator.reconcile.history import (
    ReconciliationResult,
    find_removed,
    reconcile,
    run_reconciliation,
)
from store_locator.reconcile.junk import JunkConfig, classify_junk

__all__ = [
    "FirstSeenIndex",
    "JunkConfig",
    "ReconciliationResult",
    "classify_junk",
    "find_duplicates",
    "find_removed",
    "reconcile",
    "run_reconciliation",
]
