"""
Configuration management and loading.

Handles ledger settings from an optional YAML file and environment variables.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from tool_ledger.storage.persistence import DEFAULT_METRICS_DIR, issues_file_path, metrics_file_path

from .env import get_env, get_env_as_bool, get_env_as_number, get_optional_env

DEFAULT_SERVER_NAME = "tool-ledger"
DEFAULT_SERVER_VERSION = "1.0.0"
DEFAULT_MAX_SIZE_BYTES = 1024 * 1024

LOG_LEVELS = ("debug", "info", "warn", "warning", "error", "silent")

# Environment overrides, applied on top of the file
ENV_METRICS_ENABLED = "MCP_METRICS_ENABLED"
ENV_MAX_SIZE_BYTES = "MCP_METRICS_MAX_SIZE_BYTES"
ENV_METRICS_DIR = "MCP_METRICS_DIR"
ENV_LOG_LEVEL = "LOG_LEVEL"


@dataclass(frozen=True)
class LedgerSettings:
    """Settings for the ledger subsystem.

    When ``metrics_enabled`` is false no collector is created and no
    ledger file is touched.
    """
    server_name: str = DEFAULT_SERVER_NAME
    server_version: str = DEFAULT_SERVER_VERSION
    metrics_enabled: bool = True
    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES
    metrics_dir: Path = field(default_factory=lambda: DEFAULT_METRICS_DIR)
    log_level: str = "info"

    def __post_init__(self):
        """Validate settings values."""
        if not self.server_name or not self.server_name.strip():
            raise ValueError("server_name cannot be empty")
        if "/" in self.server_name or "\\" in self.server_name:
            raise ValueError("server_name cannot contain path separators")
        if self.max_size_bytes <= 0:
            raise ValueError("max_size_bytes must be > 0")
        if self.log_level.lower() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {list(LOG_LEVELS)}")

    @property
    def metrics_file(self) -> Path:
        """Path of the invocation ledger."""
        return metrics_file_path(self.server_name, self.metrics_dir)

    @property
    def issues_file(self) -> Path:
        """Path of the issue ledger."""
        return issues_file_path(self.server_name, self.metrics_dir)


def load_ledger_settings(path: Optional[str] = None) -> LedgerSettings:
    """Load ledger settings from an optional YAML file and the environment.

    Environment variables win over the file, which wins over defaults:

        MCP_METRICS_ENABLED         -> metrics_enabled
        MCP_METRICS_MAX_SIZE_BYTES  -> max_size_bytes
        MCP_METRICS_DIR             -> metrics_dir
        LOG_LEVEL                   -> log_level

    Args:
        path: Optional path to a YAML settings file

    Returns:
        Validated LedgerSettings

    Raises:
        FileNotFoundError: If ``path`` is given but does not exist
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the file or an override holds an invalid value
    """
    settings = LedgerSettings()
    if path is not None:
        settings = _load_from_yaml(path)
    return _apply_env_overrides(settings)


def _load_from_yaml(path: str) -> LedgerSettings:
    """Load and strictly validate a YAML settings file.

    Unknown keys are rejected so a typo never silently falls back to a
    default.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Ledger settings file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in settings file {path}: {e}")

    if not raw_config:
        raise ValueError("Settings file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Settings file must contain a mapping")

    allowed_keys = {
        'server_name', 'server_version', 'metrics_enabled',
        'max_size_bytes', 'metrics_dir', 'log_level',
    }
    unknown_keys = set(raw_config.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown settings keys: {unknown_keys}")

    values: Dict[str, Any] = {}
    for key in ('server_name', 'server_version', 'log_level'):
        if key in raw_config:
            if not isinstance(raw_config[key], str):
                raise ValueError(f"'{key}' must be a string")
            values[key] = raw_config[key]

    if 'metrics_enabled' in raw_config:
        if not isinstance(raw_config['metrics_enabled'], bool):
            raise ValueError("'metrics_enabled' must be true or false")
        values['metrics_enabled'] = raw_config['metrics_enabled']

    if 'max_size_bytes' in raw_config:
        max_size = raw_config['max_size_bytes']
        if isinstance(max_size, bool) or not isinstance(max_size, int) or max_size <= 0:
            raise ValueError("'max_size_bytes' must be a positive integer")
        values['max_size_bytes'] = max_size

    if 'metrics_dir' in raw_config:
        if not isinstance(raw_config['metrics_dir'], str):
            raise ValueError("'metrics_dir' must be a string")
        values['metrics_dir'] = Path(raw_config['metrics_dir']).expanduser()

    return LedgerSettings(**values)


def _apply_env_overrides(settings: LedgerSettings) -> LedgerSettings:
    max_size = get_env_as_number(ENV_MAX_SIZE_BYTES, settings.max_size_bytes)
    if max_size <= 0:
        raise ValueError(f"{ENV_MAX_SIZE_BYTES} must be > 0")

    metrics_dir = settings.metrics_dir
    override_dir = get_optional_env(ENV_METRICS_DIR)
    if override_dir is not None:
        metrics_dir = Path(override_dir).expanduser()

    return replace(
        settings,
        metrics_enabled=get_env_as_bool(ENV_METRICS_ENABLED, settings.metrics_enabled),
        max_size_bytes=int(max_size),
        metrics_dir=metrics_dir,
        log_level=get_env(ENV_LOG_LEVEL, settings.log_level).lower(),
    )
