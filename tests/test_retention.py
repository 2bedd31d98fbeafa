"""
Unit tests for ledger trimming.
"""

import pytest

from tool_ledger.core.aggregator import apply_invocation
from tool_ledger.core.retention import MAX_ISSUES, trim_invocations_for_size, trim_issues
from tool_ledger.storage.models import (
    InvocationRecord,
    IssueCategory,
    IssueLedgerDocument,
    IssueReport,
    IssueSeverity,
    LedgerDocument,
    utc_now_iso,
)
from tool_ledger.storage.persistence import serialized_size


def _ledger(count: int, payload_size: int = 500) -> LedgerDocument:
    document = LedgerDocument.empty("srv")
    for i in range(count):
        invocation = InvocationRecord(
            tool="search",
            timestamp=utc_now_iso(),
            duration_ms=i,
            reasoning="r",
            arguments={"i": i},
            result="x" * payload_size,
        )
        document.invocations.append(invocation)
        document.total_invocations += 1
        apply_invocation(document.tool_stats, invocation)
    return document


def _issue(n: int) -> IssueReport:
    return IssueReport(
        id=f"id-{n}",
        title=f"Issue {n}",
        description="Something went wrong",
        severity=IssueSeverity.LOW,
        category=IssueCategory.BUG,
        created_at=utc_now_iso(),
    )


class TestInvocationTrimming:
    """Test size-based trimming of raw invocations."""

    def test_under_limit_untouched(self):
        document = _ledger(3)

        removed = trim_invocations_for_size(document, 10 * 1024 * 1024)

        assert removed == 0
        assert len(document.invocations) == 3

    def test_over_limit_trims_oldest_and_keeps_aggregates(self):
        document = _ledger(100)
        stats_before = dict(document.tool_stats)
        limit = serialized_size(document.to_dict()) // 2

        removed = trim_invocations_for_size(document, limit)

        assert removed > 0
        assert len(document.invocations) == 100 - removed
        assert serialized_size(document.to_dict()) <= limit
        assert document.invocations[0].arguments == {"i": removed}
        assert document.total_invocations == 100
        assert document.tool_stats == stats_before

    def test_first_pass_removes_a_quarter(self):
        document = _ledger(100)
        size = serialized_size(document.to_dict())

        # Just over the limit, so one pass is enough
        removed = trim_invocations_for_size(document, size - 1)

        assert removed == 25

    def test_limit_below_empty_document_empties_sequence(self):
        document = _ledger(5)

        trim_invocations_for_size(document, 1)

        assert document.invocations == []
        assert document.total_invocations == 5

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            trim_invocations_for_size(_ledger(1), 0)


class TestIssueTrimming:
    """Test count-based trimming of issues."""

    def test_keeps_newest(self):
        document = IssueLedgerDocument.empty("srv")
        # Newest first
        document.issues = [_issue(n) for n in range(MAX_ISSUES + 5, 0, -1)]

        removed = trim_issues(document)

        assert removed == 5
        assert len(document.issues) == MAX_ISSUES
        assert document.issues[0].id == f"id-{MAX_ISSUES + 5}"
        assert document.issues[-1].id == "id-6"

    def test_under_cap_untouched(self):
        document = IssueLedgerDocument.empty("srv")
        document.issues = [_issue(1)]

        assert trim_issues(document) == 0
        assert len(document.issues) == 1
