"""
Data models for the ledger storage layer.

Defines invocation records, per-tool statistics, issue reports and the
documents that hold them on disk.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class IssueSeverity(Enum):
    """How severe a reported issue is."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IssueCategory(Enum):
    """Type of a reported issue."""
    BUG = "bug"
    FEATURE_REQUEST = "feature_request"
    DOCUMENTATION = "documentation"
    PERFORMANCE = "performance"
    SECURITY = "security"
    OTHER = "other"


@dataclass(frozen=True)
class InvocationRecord:
    """Immutable record of a single tool invocation.

    The arguments map never contains the caller's reasoning; that is
    stored separately so usage patterns can be analysed on their own.
    """
    tool: str
    timestamp: str
    duration_ms: int
    reasoning: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    success: bool = True
    error: Optional[str] = None
    result: Any = None

    def __post_init__(self):
        """Validate the record describes a real invocation."""
        if not self.tool:
            raise ValueError("tool is required and cannot be empty")
        if self.duration_ms < 0:
            raise ValueError("duration_ms cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "tool": self.tool,
            "timestamp": self.timestamp,
            "duration_ms": self.duration_ms,
            "reasoning": self.reasoning,
            "arguments": self.arguments,
            "success": self.success,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.result is not None:
            data["result"] = self.result
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvocationRecord":
        return cls(
            tool=data["tool"],
            timestamp=data["timestamp"],
            duration_ms=int(data["duration_ms"]),
            reasoning=data.get("reasoning", ""),
            arguments=dict(data.get("arguments") or {}),
            success=bool(data["success"]),
            error=data.get("error"),
            result=data.get("result"),
        )


@dataclass(frozen=True)
class ToolStats:
    """Lifetime statistics for one tool.

    These survive trimming of the raw invocation sequence, so they are
    the only complete historical record of a tool's usage.
    """
    call_count: int
    total_duration_ms: int
    avg_duration_ms: int
    success_count: int
    error_count: int
    last_used: str

    def __post_init__(self):
        """Validate counters are consistent."""
        if self.call_count != self.success_count + self.error_count:
            raise ValueError("call_count must equal success_count + error_count")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "call_count": self.call_count,
            "total_duration_ms": self.total_duration_ms,
            "avg_duration_ms": self.avg_duration_ms,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "last_used": self.last_used,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolStats":
        if not isinstance(data, dict):
            raise ValueError("tool stats entry must be an object")
        return cls(
            call_count=int(data["call_count"]),
            total_duration_ms=int(data["total_duration_ms"]),
            avg_duration_ms=int(data["avg_duration_ms"]),
            success_count=int(data["success_count"]),
            error_count=int(data["error_count"]),
            last_used=data["last_used"],
        )


@dataclass
class LedgerDocument:
    """Complete invocation ledger as stored in ``<server_name>.json``.

    ``total_invocations`` is the all-time count and is never decremented.
    ``invocations`` is ordered oldest-first and may hold fewer entries
    once the oldest have been trimmed for size.
    """
    server_name: str
    created_at: str
    updated_at: str
    total_invocations: int = 0
    tool_stats: Dict[str, ToolStats] = field(default_factory=dict)
    invocations: List[InvocationRecord] = field(default_factory=list)

    @classmethod
    def empty(cls, server_name: str) -> "LedgerDocument":
        """Create a fresh document for a server with no history."""
        now = utc_now_iso()
        return cls(server_name=server_name, created_at=now, updated_at=now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "server_name": self.server_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "total_invocations": self.total_invocations,
            "tool_stats": {name: stats.to_dict() for name, stats in self.tool_stats.items()},
            "invocations": [record.to_dict() for record in self.invocations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerDocument":
        """Build a document from parsed JSON.

        Raises:
            ValueError: If the identifier, invocation sequence or stats map has the wrong type
            KeyError, TypeError: If an individual record is malformed
        """
        if not isinstance(data, dict):
            raise ValueError("ledger document must be a JSON object")
        if not isinstance(data.get("server_name"), str):
            raise ValueError("server_name must be a string")
        if not isinstance(data.get("invocations"), list):
            raise ValueError("invocations must be a list")

        invocations = [InvocationRecord.from_dict(item) for item in data["invocations"]]
        raw_stats = data.get("tool_stats")
        if raw_stats is None:
            raw_stats = {}
        if not isinstance(raw_stats, dict):
            raise ValueError("tool_stats must be an object")
        tool_stats = {name: ToolStats.from_dict(stats) for name, stats in raw_stats.items()}
        created_at = data.get("created_at") or utc_now_iso()
        return cls(
            server_name=data["server_name"],
            created_at=created_at,
            updated_at=data.get("updated_at") or created_at,
            total_invocations=int(data.get("total_invocations", len(invocations))),
            tool_stats=tool_stats,
            invocations=invocations,
        )


@dataclass(frozen=True)
class IssueReport:
    """Immutable user-submitted issue report."""
    id: str
    title: str
    description: str
    severity: IssueSeverity
    category: IssueCategory
    created_at: str
    steps_to_reproduce: Optional[str] = None
    expected_behavior: Optional[str] = None
    actual_behavior: Optional[str] = None
    environment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "category": self.category.value,
        }
        for key in ("steps_to_reproduce", "expected_behavior", "actual_behavior", "environment"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data["created_at"] = self.created_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IssueReport":
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            severity=IssueSeverity(data["severity"]),
            category=IssueCategory(data["category"]),
            created_at=data["created_at"],
            steps_to_reproduce=data.get("steps_to_reproduce"),
            expected_behavior=data.get("expected_behavior"),
            actual_behavior=data.get("actual_behavior"),
            environment=data.get("environment"),
        )


@dataclass
class IssueLedgerDocument:
    """Issue ledger as stored in ``<server_name>.issues.json``.

    ``issues`` is ordered newest-first.
    """
    server_name: str
    created_at: str
    updated_at: str
    total_issues: int = 0
    issues: List[IssueReport] = field(default_factory=list)

    @classmethod
    def empty(cls, server_name: str) -> "IssueLedgerDocument":
        """Create a fresh document for a server with no reports."""
        now = utc_now_iso()
        return cls(server_name=server_name, created_at=now, updated_at=now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "server_name": self.server_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "total_issues": self.total_issues,
            "issues": [issue.to_dict() for issue in self.issues],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IssueLedgerDocument":
        """Build a document from parsed JSON.

        Raises:
            ValueError: If the identifier or issue sequence has the wrong type
            KeyError, TypeError: If an individual report is malformed
        """
        if not isinstance(data, dict):
            raise ValueError("issue document must be a JSON object")
        if not isinstance(data.get("server_name"), str):
            raise ValueError("server_name must be a string")
        if not isinstance(data.get("issues"), list):
            raise ValueError("issues must be a list")

        issues = [IssueReport.from_dict(item) for item in data["issues"]]
        created_at = data.get("created_at") or utc_now_iso()
        return cls(
            server_name=data["server_name"],
            created_at=created_at,
            updated_at=data.get("updated_at") or created_at,
            total_issues=int(data.get("total_issues", len(issues))),
            issues=issues,
        )
