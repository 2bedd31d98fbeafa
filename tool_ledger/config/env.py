"""
Environment variable access.

Typed getters that fall back to defaults for unset or invalid values.
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes")
_FALSE_VALUES = ("false", "0", "no")


def _raw(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return None
    return value


def get_env(name: str, default: str) -> str:
    """Get an environment variable, falling back to ``default`` when unset or blank."""
    value = _raw(name)
    return default if value is None else value


def get_optional_env(name: str) -> Optional[str]:
    """Get an environment variable, or None when unset or blank."""
    return _raw(name)


def get_env_as_number(name: str, default: float) -> float:
    """Get an environment variable as a number.

    Integers come back as ``int``. An unparseable value logs a warning
    and returns ``default``.
    """
    value = _raw(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        logger.warning(
            "Environment variable %s is not a valid number, using default (value=%r, default=%r)",
            name,
            value,
            default,
        )
        return default


def get_env_as_bool(name: str, default: bool) -> bool:
    """Get an environment variable as a boolean.

    Recognizes true/1/yes and false/0/no, case-insensitively. Anything
    else logs a warning and returns ``default``.
    """
    value = _raw(name)
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning(
        "Environment variable %s is not a valid boolean, using default (value=%r, default=%r)",
        name,
        value,
        default,
    )
    return default

