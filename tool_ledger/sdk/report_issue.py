"""
Built-in report_issue tool.

Lets users report bugs, feature requests or other issues, which are
saved locally next to the invocation ledger.
"""

import logging
from typing import Any, Dict, Optional

from tool_ledger.core.issues import IssueCollector
from tool_ledger.storage.models import IssueCategory, IssueSeverity

from .tools import REASONING_PARAMETER, ToolInputError, ToolResult, WrappedTool

logger = logging.getLogger(__name__)

REPORT_ISSUE_TOOL = "report_issue"

REPORT_ISSUE_DESCRIPTION = (
    "Report a bug, feature request, or other issue with the server. "
    "Issues are saved locally for the server maintainer to review."
)

REPORT_ISSUE_PARAMETERS = {
    "title": "A brief, descriptive title for the issue",
    "description": "Detailed description of the issue or request",
    "severity": "How severe is this issue? (low, medium, high, critical)",
    "category": (
        "Type of issue: bug, feature_request, documentation, performance, security, or other"
    ),
    "steps_to_reproduce": "Step-by-step instructions to reproduce the issue (for bugs)",
    "expected_behavior": "What you expected to happen",
    "actual_behavior": "What actually happened",
    "environment": "Environment details like OS, Python version, or other relevant context",
    REASONING_PARAMETER: "Explain why you are reporting this issue - helps track usage patterns",
}

# (min, max) lengths; None means no minimum
_LENGTH_LIMITS = {
    "title": (5, 200),
    "description": (10, 5000),
    "steps_to_reproduce": (None, 2000),
    "expected_behavior": (None, 1000),
    "actual_behavior": (None, 1000),
    "environment": (None, 500),
}


def validate_issue_arguments(
    title: str,
    description: str,
    severity: str = IssueSeverity.MEDIUM.value,
    category: str = IssueCategory.BUG.value,
    steps_to_reproduce: Optional[str] = None,
    expected_behavior: Optional[str] = None,
    actual_behavior: Optional[str] = None,
    environment: Optional[str] = None,
) -> Dict[str, Any]:
    """Validate report_issue arguments and convert enums.

    Returns:
        Keyword arguments ready for IssueCollector.report

    Raises:
        ToolInputError: If any argument is out of range or not a known value
    """
    values = {
        "title": title,
        "description": description,
        "steps_to_reproduce": steps_to_reproduce,
        "expected_behavior": expected_behavior,
        "actual_behavior": actual_behavior,
        "environment": environment,
    }
    for key, (min_length, max_length) in _LENGTH_LIMITS.items():
        value = values[key]
        if value is None and min_length is None:
            continue
        if not isinstance(value, str):
            raise ToolInputError(f"'{key}' must be a string")
        if min_length is not None and len(value) < min_length:
            raise ToolInputError(f"'{key}' must be at least {min_length} characters")
        if len(value) > max_length:
            raise ToolInputError(f"'{key}' must be at most {max_length} characters")

    try:
        values["severity"] = IssueSeverity(severity)
    except ValueError:
        raise ToolInputError(f"'severity' must be one of: {[s.value for s in IssueSeverity]}")
    try:
        values["category"] = IssueCategory(category)
    except ValueError:
        raise ToolInputError(f"'category' must be one of: {[c.value for c in IssueCategory]}")
    return values


def _category_label(category: IssueCategory) -> str:
    if category is IssueCategory.FEATURE_REQUEST:
        return "Feature request"
    return category.value.capitalize()


def report_issue_tool(collector: IssueCollector, server_name: str) -> WrappedTool:
    """Build the report_issue tool bound to an issue collector.

    Failures to save are turned into a labeled error result rather than
    raised, so the user always learns whether the report was kept.

    Args:
        collector: Initialized issue collector
        server_name: Server name shown in the success message

    Returns:
        The report_issue tool
    """
    def handle_report_issue(
        title: str,
        description: str,
        severity: str = IssueSeverity.MEDIUM.value,
        category: str = IssueCategory.BUG.value,
        steps_to_reproduce: Optional[str] = None,
        expected_behavior: Optional[str] = None,
        actual_behavior: Optional[str] = None,
        environment: Optional[str] = None,
        reasoning: Optional[str] = None,
    ) -> ToolResult:
        params = validate_issue_arguments(
            title=title,
            description=description,
            severity=severity,
            category=category,
            steps_to_reproduce=steps_to_reproduce,
            expected_behavior=expected_behavior,
            actual_behavior=actual_behavior,
            environment=environment,
        )
        logger.debug(
            "Creating new issue report: title=%r severity=%s category=%s",
            title, params["severity"].value, params["category"].value,
        )

        try:
            issue = collector.report(**params)
        except Exception as e:
            logger.error("Failed to save issue report: %s", e)
            return ToolResult(
                text=(
                    f"Failed to save issue report: {e}\n\n"
                    "Please try again or report the issue manually to the server maintainer."
                ),
                is_error=True,
            )

        logger.info(
            "Issue reported successfully: id=%s severity=%s category=%s",
            issue.id, issue.severity.value, issue.category.value,
        )
        return ToolResult(text=(
            "Issue reported successfully!\n\n"
            f"**Issue ID:** {issue.id}\n"
            f"**Type:** {_category_label(issue.category)}\n"
            f"**Severity:** {issue.severity.value}\n"
            f"**Title:** {issue.title}\n\n"
            "Your issue has been saved to:\n"
            f"{collector.file_path}\n\n"
            "The server maintainer will review reported issues. "
            f"Thank you for helping improve {server_name}!"
        ))

    return WrappedTool(
        name=REPORT_ISSUE_TOOL,
        description=REPORT_ISSUE_DESCRIPTION,
        handler=handle_report_issue,
        parameters=dict(REPORT_ISSUE_PARAMETERS),
    )
