"""
Logging setup.

All log output goes to stderr; stdout is reserved for tool and CLI output.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(level: str) -> Optional[int]:
    """Map a level name to a logging level; ``"silent"`` maps to None."""
    name = level.strip().lower()
    if name == "silent":
        return None
    if name not in _LEVELS:
        raise ValueError(f"Unknown log level: {level!r}")
    return _LEVELS[name]


def configure_logging(level: str = "info") -> logging.Logger:
    """Configure the ``tool_ledger`` logger to write to stderr via rich.

    Safe to call more than once; the previous handler is replaced.

    Args:
        level: debug, info, warn, warning, error or silent

    Returns:
        The configured package logger
    """
    package_logger = logging.getLogger("tool_ledger")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_tool_ledger_handler", False):
            package_logger.removeHandler(handler)

    numeric_level = resolve_level(level)
    if numeric_level is None:
        package_logger.setLevel(logging.CRITICAL + 1)
        return package_logger

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler._tool_ledger_handler = True
    handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(numeric_level)
    return package_logger
