"""
Per-tool usage aggregation.

Folds each new invocation into lifetime statistics for its tool.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

from tool_ledger.storage.models import InvocationRecord, ToolStats


def update_tool_stats(existing: Optional[ToolStats], invocation: InvocationRecord) -> ToolStats:
    """Return the statistics for a tool after one more invocation.

    Stats are lifetime cumulative: no decay, no windowing. The average is
    recomputed from the running total on every call so it cannot drift.

    Args:
        existing: Current stats for the tool, or None on its first invocation
        invocation: The invocation to fold in

    Returns:
        New ToolStats; ``existing`` is left untouched
    """
    if existing is None:
        return ToolStats(
            call_count=1,
            total_duration_ms=invocation.duration_ms,
            avg_duration_ms=invocation.duration_ms,
            success_count=1 if invocation.success else 0,
            error_count=0 if invocation.success else 1,
            last_used=invocation.timestamp,
        )

    call_count = existing.call_count + 1
    total_duration_ms = existing.total_duration_ms + invocation.duration_ms
    return ToolStats(
        call_count=call_count,
        total_duration_ms=total_duration_ms,
        avg_duration_ms=_round_average(total_duration_ms, call_count),
        success_count=existing.success_count + (1 if invocation.success else 0),
        error_count=existing.error_count + (0 if invocation.success else 1),
        last_used=invocation.timestamp,
    )


def apply_invocation(tool_stats: Dict[str, ToolStats], invocation: InvocationRecord) -> ToolStats:
    """Update ``tool_stats`` in place for one invocation and return the new entry."""
    stats = update_tool_stats(tool_stats.get(invocation.tool), invocation)
    tool_stats[invocation.tool] = stats
    return stats


def _round_average(total: int, count: int) -> int:
    """Integer average rounded half-up (the built-in round() rounds half to even)."""
    return int((Decimal(total) / Decimal(count)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
