"""
Unit tests for ledger data models.
"""

import pytest

from tool_ledger.storage.models import (
    InvocationRecord,
    IssueCategory,
    IssueLedgerDocument,
    IssueReport,
    IssueSeverity,
    LedgerDocument,
    ToolStats,
    utc_now_iso,
)


class TestInvocationRecord:
    """Test invocation record validation and serialization."""

    def test_empty_tool_rejected(self):
        with pytest.raises(ValueError, match="tool"):
            InvocationRecord(tool="", timestamp=utc_now_iso(), duration_ms=1, reasoning="")

    def test_negative_duration_rejected(self):
        with pytest.raises(ValueError, match="duration_ms"):
            InvocationRecord(tool="search", timestamp=utc_now_iso(), duration_ms=-1, reasoning="")

    def test_to_dict_omits_absent_error_and_result(self):
        """Successful records without a result carry no error or result keys."""
        record = InvocationRecord(
            tool="search",
            timestamp="2024-01-01T00:00:00.000Z",
            duration_ms=12,
            reasoning="find files",
            arguments={"q": "x"},
        )

        data = record.to_dict()

        assert data == {
            "tool": "search",
            "timestamp": "2024-01-01T00:00:00.000Z",
            "duration_ms": 12,
            "reasoning": "find files",
            "arguments": {"q": "x"},
            "success": True,
        }

    def test_failed_record_keeps_error(self):
        record = InvocationRecord(
            tool="search",
            timestamp=utc_now_iso(),
            duration_ms=5,
            reasoning="",
            success=False,
            error="boom",
        )

        restored = InvocationRecord.from_dict(record.to_dict())

        assert restored.success is False
        assert restored.error == "boom"
        assert restored.result is None


class TestToolStats:
    """Test tool statistics invariants."""

    def test_counts_must_add_up(self):
        with pytest.raises(ValueError, match="call_count"):
            ToolStats(
                call_count=3,
                total_duration_ms=30,
                avg_duration_ms=10,
                success_count=1,
                error_count=1,
                last_used=utc_now_iso(),
            )


class TestLedgerDocument:
    """Test ledger document parsing."""

    def test_empty_document(self):
        document = LedgerDocument.empty("my-server")

        assert document.server_name == "my-server"
        assert document.total_invocations == 0
        assert document.tool_stats == {}
        assert document.invocations == []
        assert document.created_at == document.updated_at

    def test_from_dict_requires_server_name(self):
        with pytest.raises(ValueError, match="server_name"):
            LedgerDocument.from_dict({"invocations": []})

    def test_from_dict_requires_invocation_list(self):
        with pytest.raises(ValueError, match="invocations"):
            LedgerDocument.from_dict({"server_name": "s", "invocations": {}})

    def test_total_defaults_to_retained_count(self):
        raw = {
            "server_name": "s",
            "created_at": "2024-01-01T00:00:00.000Z",
            "invocations": [
                {"tool": "a", "timestamp": "2024-01-01T00:00:00.000Z", "duration_ms": 1,
                 "reasoning": "", "arguments": {}, "success": True},
            ],
        }

        document = LedgerDocument.from_dict(raw)

        assert document.total_invocations == 1
        assert document.updated_at == "2024-01-01T00:00:00.000Z"


class TestIssueModels:
    """Test issue report serialization."""

    def test_issue_to_dict_uses_enum_values(self):
        issue = IssueReport(
            id="abc-123456",
            title="Broken search",
            description="Search returns nothing",
            severity=IssueSeverity.HIGH,
            category=IssueCategory.FEATURE_REQUEST,
            created_at="2024-01-01T00:00:00.000Z",
            environment="linux",
        )

        data = issue.to_dict()

        assert data["severity"] == "high"
        assert data["category"] == "feature_request"
        assert data["environment"] == "linux"
        assert "steps_to_reproduce" not in data

    def test_issue_document_rejects_bad_issue_list(self):
        with pytest.raises(ValueError, match="issues"):
            IssueLedgerDocument.from_dict({"server_name": "s", "issues": "nope"})

    def test_timestamp_format(self):
        stamp = utc_now_iso()

        assert stamp.endswith("Z")
        assert len(stamp) == len("2024-01-01T00:00:00.000Z")
