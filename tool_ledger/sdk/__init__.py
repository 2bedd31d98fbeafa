"""
SDK for tool ledger.

Wraps tool handlers so each call is recorded, and provides the built-in
report_issue and style tools.
"""

from .report_issue import report_issue_tool
from .style_tools import style_tools
from .tools import (
    ToolInputError,
    ToolResult,
    WrappedTool,
    create_identity_wrapper,
    create_metrics_wrapper,
)

__all__ = [
    "ToolInputError",
    "ToolResult",
    "WrappedTool",
    "create_identity_wrapper",
    "create_metrics_wrapper",
    "report_issue_tool",
    "style_tools",
]
