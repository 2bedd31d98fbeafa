"""
Ledger context for a tool server.

Wires settings, collectors, wrappers and the built-in tools together and
dispatches tool calls by name.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tool_ledger.config.loader import LedgerSettings
from tool_ledger.config.styles import StyleConfigStore
from tool_ledger.core.collector import MetricsCollector
from tool_ledger.core.issues import IssueCollector
from tool_ledger.sdk.report_issue import report_issue_tool
from tool_ledger.sdk.style_tools import style_tools
from tool_ledger.sdk.tools import (
    REASONING_PARAMETER,
    ToolInputError,
    ToolResult,
    WrappedTool,
    WrapToolFn,
    create_identity_wrapper,
    create_metrics_wrapper,
)

logger = logging.getLogger(__name__)


@dataclass
class LedgerContext:
    """Everything a running server needs to serve and record tool calls."""
    settings: LedgerSettings
    style_store: StyleConfigStore
    wrap_tool: WrapToolFn
    metrics_collector: Optional[MetricsCollector] = None
    issue_collector: Optional[IssueCollector] = None
    tools: Dict[str, WrappedTool] = field(default_factory=dict)

    @property
    def tool_names(self) -> List[str]:
        return list(self.tools)

    def register(self, tool: WrappedTool) -> None:
        """Register a tool; a later tool with the same name replaces it."""
        if tool.name in self.tools:
            logger.warning("Tool %r registered twice, replacing", tool.name)
        self.tools[tool.name] = tool

    def add_tool(self, name: str, description: str, parameters: Dict[str, str], handler) -> WrappedTool:
        """Wrap a handler with the active wrapper and register it."""
        tool = self.wrap_tool(name, description, parameters, handler)
        self.register(tool)
        return tool

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Call a registered tool by name.

        Invalid arguments and exceptions raised by a handler become an
        error ToolResult; a wrapped handler has already recorded them.

        Args:
            name: Registered tool name
            arguments: Keyword arguments for the handler

        Returns:
            The tool's result
        """
        tool = self.tools.get(name)
        if tool is None:
            return ToolResult(text=f"Unknown tool: {name}", is_error=True)

        try:
            result = tool(**(arguments or {}))
            if inspect.isawaitable(result):
                result = await result
        except ToolInputError as e:
            return _invalid_arguments(name, e)
        except TypeError as e:
            if not _arguments_fit(tool, arguments or {}):
                return _invalid_arguments(name, e)
            logger.error("Tool %s failed: %s", name, e)
            return ToolResult(text=f"Tool {name} failed: {e}", is_error=True)
        except Exception as e:
            logger.error("Tool %s failed: %s", name, e)
            return ToolResult(text=f"Tool {name} failed: {e}", is_error=True)

        if isinstance(result, ToolResult):
            return result
        return ToolResult(text=str(result))

    async def flush(self) -> None:
        """Wait for pending ledger writes."""
        for collector in self._collectors():
            await collector.flush()

    async def close(self) -> None:
        """Drain pending ledger writes and stop the background writers."""
        for collector in self._collectors():
            await collector.close()

    def _collectors(self):
        return [c for c in (self.metrics_collector, self.issue_collector) if c is not None]


def _invalid_arguments(name: str, error: Exception) -> ToolResult:
    logger.debug("Invalid arguments for %s: %s", name, error)
    return ToolResult(text=f"Invalid arguments for {name}: {error}", is_error=True)


def _arguments_fit(tool: WrappedTool, arguments: Dict[str, Any]) -> bool:
    """Whether the arguments bind to the handler's signature.

    A metrics-wrapped handler consumes ``reasoning`` itself, so it is
    left out when binding against the original handler.
    """
    handler = getattr(tool.handler, "__wrapped__", None)
    if handler is None:
        handler = tool.handler
    else:
        arguments = {k: v for k, v in arguments.items() if k != REASONING_PARAMETER}
    try:
        signature = inspect.signature(handler)
    except ValueError:
        return True
    try:
        signature.bind(**arguments)
    except TypeError:
        return False
    return True


def create_ledger_context(
    settings: LedgerSettings,
    style_store: Optional[StyleConfigStore] = None,
) -> LedgerContext:
    """Build a ledger context from settings.

    With metrics enabled, both collectors are created and initialized,
    every tool is wrapped to record its calls and report_issue is
    registered. With metrics disabled no collector exists and no ledger
    file is touched. The style tools are registered either way.

    Args:
        settings: Ledger settings
        style_store: Style store to use (defaults to one rooted at the working directory)

    Returns:
        A ready LedgerContext
    """
    style_store = style_store if style_store is not None else StyleConfigStore()

    if settings.metrics_enabled:
        metrics_collector = MetricsCollector(
            settings.server_name,
            max_size_bytes=settings.max_size_bytes,
            metrics_dir=settings.metrics_dir,
        )
        metrics_collector.initialize()
        issue_collector = IssueCollector(settings.server_name, metrics_dir=settings.metrics_dir)
        issue_collector.initialize()

        context = LedgerContext(
            settings=settings,
            style_store=style_store,
            wrap_tool=create_metrics_wrapper(metrics_collector),
            metrics_collector=metrics_collector,
            issue_collector=issue_collector,
        )
        context.register(report_issue_tool(issue_collector, settings.server_name))
        logger.info("Metrics enabled, writing to %s", metrics_collector.file_path)
    else:
        context = LedgerContext(
            settings=settings,
            style_store=style_store,
            wrap_tool=create_identity_wrapper(),
        )
        logger.info("Metrics disabled")

    for tool in style_tools(style_store, context.wrap_tool):
        context.register(tool)

    logger.debug("Registered tools: %s", ", ".join(context.tool_names))
    return context
