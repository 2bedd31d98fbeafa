"""
Ledger collectors for tool usage telemetry.

Keeps the authoritative ledger in memory, updates it synchronously on
every event and persists it in the background through a write queue.
"""

import logging
from pathlib import Path
from typing import Any, Dict

from tool_ledger.storage.models import InvocationRecord, LedgerDocument, utc_now_iso
from tool_ledger.storage.persistence import (
    DEFAULT_METRICS_DIR,
    LoadStatus,
    PathLike,
    load_document_with_status,
    metrics_file_path,
    save_document,
    serialize_document,
    write_text_atomic,
)

from .aggregator import apply_invocation
from .retention import trim_invocations_for_size
from .write_queue import WriteQueue

logger = logging.getLogger(__name__)

# Default cap on the serialized invocation ledger (1 MiB)
DEFAULT_MAX_SIZE_BYTES = 1024 * 1024


class CollectorNotInitializedError(RuntimeError):
    """Raised when a collector with a user-visible contract is used before initialize()."""


class LedgerCollector:
    """Base class for a ledger document owned by one running process.

    The in-memory document is the source of truth. Mutations happen
    synchronously and each one schedules a flush; a failed flush is
    logged and never rolls back in-memory state, so a crash loses only
    the changes since the last successful write.

    Subclasses provide the empty document, the parser and, optionally,
    a trimming step run before each flush.
    """

    def __init__(self, server_name: str, file_path: PathLike):
        if not server_name or not server_name.strip():
            raise ValueError("server_name is required and cannot be empty")
        self.server_name = server_name
        self._path = Path(file_path)
        self._data = self._empty_document()
        self._initialized = False
        self._write_queue = WriteQueue(str(self._path), self._snapshot, self._write_snapshot)

    @property
    def data(self):
        """The live in-memory document."""
        return self._data

    @property
    def file_path(self) -> Path:
        """Path of the backing JSON file."""
        return self._path

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def write_queue(self) -> WriteQueue:
        return self._write_queue

    def initialize(self) -> None:
        """Load the backing document, creating or replacing it as needed.

        A missing file is created with an empty document. A corrupted
        file is replaced by an empty document, in memory and on disk.
        Must be called once before any mutation.
        """
        if self._initialized:
            logger.warning("%s for %r already initialized", type(self).__name__, self.server_name)
            return

        document, status = load_document_with_status(
            self._path, self._parse_document, self._empty_document
        )
        self._data = document
        if status is not LoadStatus.LOADED:
            try:
                save_document(self._path, document)
            except OSError:
                logger.exception("Failed to create ledger file %s", self._path)
        self._initialized = True
        logger.debug("%s initialized from %s (%s)", type(self).__name__, self._path, status.value)

    async def flush(self) -> None:
        """Wait until every scheduled write has reached disk (or failed)."""
        await self._write_queue.join()

    async def close(self) -> None:
        """Drain pending writes and stop the background writer."""
        await self._write_queue.close()

    def _schedule_flush(self) -> None:
        self._write_queue.submit()

    def _snapshot(self) -> str:
        self._before_flush()
        return serialize_document(self._data.to_dict())

    def _write_snapshot(self, content: str) -> None:
        write_text_atomic(self._path, content)

    def _before_flush(self) -> None:
        """Hook run on the event loop right before a snapshot is taken."""

    def _empty_document(self):
        raise NotImplementedError

    def _parse_document(self, raw: Dict[str, Any]):
        raise NotImplementedError


class MetricsCollector(LedgerCollector):
    """Collects tool invocation records and per-tool statistics.

    Telemetry is best-effort: recording before initialize() logs a
    warning and drops the event instead of raising.
    """

    def __init__(
        self,
        server_name: str,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        metrics_dir: PathLike = DEFAULT_METRICS_DIR,
    ):
        """Initialize a collector for ``<metrics_dir>/<server_name>.json``.

        Args:
            server_name: Server identifier, used as the file name stem
            max_size_bytes: Maximum serialized ledger size before trimming
            metrics_dir: Directory holding the ledger files

        Raises:
            ValueError: If server_name is empty or max_size_bytes is not positive
        """
        if max_size_bytes <= 0:
            raise ValueError("max_size_bytes must be > 0")
        self.max_size_bytes = max_size_bytes
        super().__init__(server_name, metrics_file_path(server_name, metrics_dir))

    @property
    def data(self) -> LedgerDocument:
        return self._data

    def record(self, invocation: InvocationRecord) -> None:
        """Record a tool invocation.

        Updates the in-memory ledger and tool statistics immediately and
        schedules a write to disk. Returns without waiting for the write.
        """
        if not self._initialized:
            logger.warning("MetricsCollector not initialized, skipping record of %r", invocation.tool)
            return

        self._data.invocations.append(invocation)
        self._data.total_invocations += 1
        self._data.updated_at = utc_now_iso()
        apply_invocation(self._data.tool_stats, invocation)
        self._schedule_flush()

    def _before_flush(self) -> None:
        removed = trim_invocations_for_size(self._data, self.max_size_bytes)
        if removed:
            logger.debug(
                "Trimmed %d oldest invocations from %s (%d retained)",
                removed,
                self._path.name,
                len(self._data.invocations),
            )

    def _empty_document(self) -> LedgerDocument:
        return LedgerDocument.empty(self.server_name)

    def _parse_document(self, raw: Dict[str, Any]) -> LedgerDocument:
        return LedgerDocument.from_dict(raw)
