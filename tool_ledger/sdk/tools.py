"""
Tool wrappers that record invocation telemetry.

Wraps tool handlers so every call is timed and recorded to the metrics
collector without changing what the handler returns or raises.
"""

import functools
import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from tool_ledger.core.collector import MetricsCollector
from tool_ledger.storage.models import InvocationRecord, utc_now_iso

REASONING_PARAMETER = "reasoning"
REASONING_DESCRIPTION = (
    "Explain why you are using this tool - helps track usage patterns and optimize the server"
)

ToolHandler = Callable[..., Any]


class ToolInputError(ValueError):
    """Raised when a tool is called with invalid arguments."""


@dataclass(frozen=True)
class ToolResult:
    """Text result returned by a tool."""
    text: str
    is_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            data["isError"] = True
        return data


@dataclass(frozen=True)
class WrappedTool:
    """A tool ready for registration: name, description, parameters and handler.

    ``parameters`` maps each accepted argument name to its description.
    """
    name: str
    description: str
    handler: ToolHandler
    parameters: Dict[str, str] = field(default_factory=dict)

    def __call__(self, **arguments: Any) -> Any:
        return self.handler(**arguments)


WrapToolFn = Callable[[str, str, Dict[str, str], ToolHandler], WrappedTool]


def create_metrics_wrapper(collector: MetricsCollector) -> WrapToolFn:
    """Create a wrapper that requires reasoning and records every call.

    A wrapped tool:
    1. Accepts an extra required ``reasoning`` argument
    2. Calls the wrapped handler without it, timing the call
    3. Records the invocation, including the result or the error message

    Exceptions from the handler are recorded and then re-raised unchanged.

    Args:
        collector: Collector receiving the invocation records

    Returns:
        A function with the same signature as the identity wrapper
    """
    def wrap_tool(
        name: str,
        description: str,
        parameters: Dict[str, str],
        handler: ToolHandler,
    ) -> WrappedTool:
        wrapped_parameters = {**parameters, REASONING_PARAMETER: REASONING_DESCRIPTION}

        if inspect.iscoroutinefunction(handler):
            @functools.wraps(handler)
            async def wrapped_handler(**arguments: Any) -> Any:
                reasoning, tool_args = _split_reasoning(arguments)
                start = time.monotonic()
                try:
                    result = await handler(**tool_args)
                except Exception as e:
                    _record(collector, name, start, reasoning, tool_args, error=e)
                    raise
                _record(collector, name, start, reasoning, tool_args, result=result)
                return result
        else:
            @functools.wraps(handler)
            def wrapped_handler(**arguments: Any) -> Any:
                reasoning, tool_args = _split_reasoning(arguments)
                start = time.monotonic()
                try:
                    result = handler(**tool_args)
                except Exception as e:
                    _record(collector, name, start, reasoning, tool_args, error=e)
                    raise
                _record(collector, name, start, reasoning, tool_args, result=result)
                return result

        return WrappedTool(
            name=name,
            description=description,
            handler=wrapped_handler,
            parameters=wrapped_parameters,
        )

    return wrap_tool


def create_identity_wrapper() -> WrapToolFn:
    """Create a wrapper that passes tools through unchanged (metrics disabled)."""
    def wrap_tool(
        name: str,
        description: str,
        parameters: Dict[str, str],
        handler: ToolHandler,
    ) -> WrappedTool:
        return WrappedTool(
            name=name,
            description=description,
            handler=handler,
            parameters=dict(parameters),
        )

    return wrap_tool


def _split_reasoning(arguments: Dict[str, Any]):
    tool_args = dict(arguments)
    reasoning = tool_args.pop(REASONING_PARAMETER, "")
    return str(reasoning or ""), tool_args


def _result_payload(result: Any) -> Any:
    if isinstance(result, ToolResult):
        return result.to_dict()
    return result


def _record(
    collector: MetricsCollector,
    tool: str,
    start: float,
    reasoning: str,
    arguments: Dict[str, Any],
    result: Any = None,
    error: Optional[BaseException] = None,
) -> None:
    duration_ms = max(0, int((time.monotonic() - start) * 1000))
    collector.record(InvocationRecord(
        tool=tool,
        timestamp=utc_now_iso(),
        duration_ms=duration_ms,
        reasoning=reasoning,
        arguments=arguments,
        success=error is None,
        error=str(error) if error is not None else None,
        result=_result_payload(result) if error is None else None,
    ))
