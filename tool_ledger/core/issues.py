"""
Issue report collection.

Stores user-submitted issue reports newest-first, capped at a fixed
count, alongside the invocation ledger.
"""

import logging
import random
import string
import time
from typing import Any, Dict, Optional, Union

from tool_ledger.storage.models import (
    IssueCategory,
    IssueLedgerDocument,
    IssueReport,
    IssueSeverity,
    utc_now_iso,
)
from tool_ledger.storage.persistence import DEFAULT_METRICS_DIR, PathLike, issues_file_path

from .collector import CollectorNotInitializedError, LedgerCollector
from .retention import MAX_ISSUES, trim_issues

logger = logging.getLogger(__name__)

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_issue_id() -> str:
    """Generate a short issue id such as ``"lz3k9q1a-4f8x2c"``.

    A base-36 millisecond timestamp followed by a random base-36 suffix.
    Unique enough within one ledger file; not cryptographically unique.
    """
    timestamp = _to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(random.choices(_BASE36_DIGITS, k=6))
    return f"{timestamp}-{suffix}"


class IssueCollector(LedgerCollector):
    """Collects issue reports into ``<server_name>.issues.json``.

    Unlike invocation telemetry, reporting an issue has a user-visible
    success contract, so using the collector before initialize() raises.
    """

    def __init__(
        self,
        server_name: str,
        metrics_dir: PathLike = DEFAULT_METRICS_DIR,
        max_issues: int = MAX_ISSUES,
    ):
        if max_issues <= 0:
            raise ValueError("max_issues must be > 0")
        self.max_issues = max_issues
        super().__init__(server_name, issues_file_path(server_name, metrics_dir))

    @property
    def data(self) -> IssueLedgerDocument:
        return self._data

    def report(
        self,
        title: str,
        description: str,
        severity: Union[IssueSeverity, str] = IssueSeverity.MEDIUM,
        category: Union[IssueCategory, str] = IssueCategory.BUG,
        steps_to_reproduce: Optional[str] = None,
        expected_behavior: Optional[str] = None,
        actual_behavior: Optional[str] = None,
        environment: Optional[str] = None,
    ) -> IssueReport:
        """Record a new issue report.

        The report is added to the in-memory ledger immediately and a
        write to disk is scheduled. The created report is returned before
        the write completes so its id can be shown to the user.

        Args:
            title: Brief, descriptive title
            description: Detailed description of the issue
            severity: Severity level or its string value
            category: Issue category or its string value
            steps_to_reproduce: Optional reproduction steps
            expected_behavior: Optional expected behavior
            actual_behavior: Optional actual behavior
            environment: Optional environment details

        Returns:
            The created IssueReport

        Raises:
            CollectorNotInitializedError: If initialize() has not been called
            ValueError: If severity or category is not a known value
        """
        if not self._initialized:
            raise CollectorNotInitializedError("IssueCollector not initialized")

        now = utc_now_iso()
        issue = IssueReport(
            id=generate_issue_id(),
            title=title,
            description=description,
            severity=IssueSeverity(severity),
            category=IssueCategory(category),
            created_at=now,
            steps_to_reproduce=steps_to_reproduce,
            expected_behavior=expected_behavior,
            actual_behavior=actual_behavior,
            environment=environment,
        )

        self._data.issues.insert(0, issue)
        self._data.total_issues += 1
        self._data.updated_at = now

        dropped = trim_issues(self._data, self.max_issues)
        if dropped:
            logger.debug("Discarded %d oldest issues from %s", dropped, self._path.name)

        self._schedule_flush()
        return issue

    def _empty_document(self) -> IssueLedgerDocument:
        return IssueLedgerDocument.empty(self.server_name)

    def _parse_document(self, raw: Dict[str, Any]) -> IssueLedgerDocument:
        return IssueLedgerDocument.from_dict(raw)
