"""
Bounded-growth policies for ledger documents.

Trims the oldest raw records while leaving aggregate counters and
per-tool statistics untouched.
"""

from tool_ledger.storage.models import IssueLedgerDocument, LedgerDocument
from tool_ledger.storage.persistence import serialized_size

# Maximum number of issues kept in the issue ledger
MAX_ISSUES = 100

# Fraction of the remaining invocations dropped per trimming pass
TRIM_FRACTION = 0.25


def trim_invocations_for_size(document: LedgerDocument, max_size_bytes: int) -> int:
    """Drop the oldest invocations until the serialized document fits.

    Each pass removes ``max(1, floor(0.25 * remaining))`` entries from the
    front of the sequence and re-measures, so a large overshoot shrinks
    geometrically rather than one entry at a time. ``tool_stats`` and
    ``total_invocations`` are never modified.

    Args:
        document: Ledger document, modified in place
        max_size_bytes: Maximum serialized size in bytes

    Returns:
        Number of invocations removed
    """
    if max_size_bytes <= 0:
        raise ValueError("max_size_bytes must be > 0")

    removed = 0
    current_size = serialized_size(document.to_dict())
    while current_size > max_size_bytes and document.invocations:
        remove_count = max(1, int(len(document.invocations) * TRIM_FRACTION))
        del document.invocations[:remove_count]
        removed += remove_count
        current_size = serialized_size(document.to_dict())
    return removed


def trim_issues(document: IssueLedgerDocument, max_issues: int = MAX_ISSUES) -> int:
    """Cut the issue sequence to ``max_issues``, discarding the oldest.

    Issues are stored newest-first, so the oldest sit at the tail.

    Returns:
        Number of issues removed
    """
    overflow = len(document.issues) - max_issues
    if overflow <= 0:
        return 0
    del document.issues[max_issues:]
    return overflow
