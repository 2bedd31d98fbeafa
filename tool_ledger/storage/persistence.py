"""
File persistence for ledger documents.

Reads and writes whole JSON documents and recovers to an empty default
when a file is missing or corrupted.
"""

import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Tuple, TypeVar, Union

from .models import IssueLedgerDocument, LedgerDocument

logger = logging.getLogger(__name__)

# Directory name for ledger files in the user's home directory
METRICS_DIR_NAME = ".mcp-metrics"

DEFAULT_METRICS_DIR = Path.home() / METRICS_DIR_NAME

PathLike = Union[str, Path]
Document = TypeVar("Document", LedgerDocument, IssueLedgerDocument)


class LoadStatus(Enum):
    """How a document came out of :func:`load_document_with_status`."""
    LOADED = "loaded"
    MISSING = "missing"
    RECOVERED = "recovered"


def metrics_file_path(server_name: str, metrics_dir: PathLike = DEFAULT_METRICS_DIR) -> Path:
    """Path of the invocation ledger, e.g. ``~/.mcp-metrics/my-server.json``."""
    return Path(metrics_dir) / f"{server_name}.json"


def issues_file_path(server_name: str, metrics_dir: PathLike = DEFAULT_METRICS_DIR) -> Path:
    """Path of the issue ledger, e.g. ``~/.mcp-metrics/my-server.issues.json``."""
    return Path(metrics_dir) / f"{server_name}.issues.json"


def ensure_directory_exists(path: PathLike) -> None:
    """Create the parent directory of ``path`` if it does not exist."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def file_size_bytes(path: PathLike) -> int:
    """Size of the file at ``path`` in bytes, or 0 if it does not exist."""
    try:
        return Path(path).stat().st_size
    except OSError:
        return 0


def serialize_document(payload: Dict[str, Any]) -> str:
    """Serialize a document exactly as it is written to disk.

    Result payloads are opaque, so anything JSON cannot represent
    natively is stored as its string form.
    """
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def serialized_size(payload: Dict[str, Any]) -> int:
    """Byte size of ``payload`` once serialized for disk."""
    return len(serialize_document(payload).encode("utf-8"))


def write_text_atomic(path: PathLike, content: str) -> None:
    """Replace the file at ``path`` with ``content``.

    The content goes to a temporary file in the same directory first and
    is then renamed over the target, so readers never observe a
    half-written document.

    Raises:
        OSError: If the directory cannot be created or the write fails
    """
    target = Path(path)
    ensure_directory_exists(target)
    fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def save_document(path: PathLike, document: Union[LedgerDocument, IssueLedgerDocument]) -> None:
    """Write a complete document to disk, overwriting any previous content.

    Raises:
        OSError: If the file cannot be written
    """
    write_text_atomic(path, serialize_document(document.to_dict()))
    logger.debug("Saved %s to %s", type(document).__name__, path)


def load_document_with_status(
    path: PathLike,
    parse: Callable[[Dict[str, Any]], Document],
    default_factory: Callable[[], Document],
) -> Tuple[Document, LoadStatus]:
    """Load a document, falling back to a fresh default on any failure.

    Never raises. Missing files give ``LoadStatus.MISSING``; unreadable,
    malformed or structurally invalid files give ``LoadStatus.RECOVERED``
    and are logged at error level.

    Args:
        path: Document file path
        parse: Builds the document from decoded JSON, raising on bad shape
        default_factory: Builds an empty document

    Returns:
        Tuple of the document and how it was obtained
    """
    file_path = Path(path)
    if not file_path.exists():
        return default_factory(), LoadStatus.MISSING

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return parse(raw), LoadStatus.LOADED
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.error("Ledger file %s is corrupted, starting a new one: %s", file_path, e)
        return default_factory(), LoadStatus.RECOVERED


def load_metrics(path: PathLike, server_name: str) -> LedgerDocument:
    """Load the invocation ledger, or an empty one if it is missing or corrupted."""
    document, _ = load_document_with_status(
        path, LedgerDocument.from_dict, lambda: LedgerDocument.empty(server_name)
    )
    return document


def load_issues(path: PathLike, server_name: str) -> IssueLedgerDocument:
    """Load the issue ledger, or an empty one if it is missing or corrupted."""
    document, _ = load_document_with_status(
        path, IssueLedgerDocument.from_dict, lambda: IssueLedgerDocument.empty(server_name)
    )
    return document
