"""
manager.py - Read and write flow documents on disk.

FlowDocumentManager is the component that writes flow files. It provides:
- Schema validation on read and a round-trip check before every write
- Atomic writes with optional .bak backup
- ETag-based concurrency control (sha256 of the file bytes)

Usage:
    manager = FlowDocumentManager()
    graph, etag = manager.read("flows/main.ygtc")
    ...
    new_etag = manager.save("flows/main.ygtc", updated_graph, etag=etag)
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Tuple, Union

from .errors import ConcurrencyError
from .loader import confirm_round_trip, dump_flow, load_flow_from_str
from .types import FlowGraph

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FlowDocumentManager:
    """Read/save flow documents with ETag checks and atomic writes."""

    def __init__(self, backup_on_write: bool = True):
        """Initialize the manager.

        Args:
            backup_on_write: If True, create .bak files before overwriting.
        """
        self._backup_on_write = backup_on_write

    # =========================================================================
    # ETag Computation
    # =========================================================================

    @staticmethod
    def compute_etag(content: Union[str, bytes]) -> str:
        """Compute SHA256 ETag from content."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        return hashlib.sha256(content).hexdigest()

    def file_etag(self, path: PathLike) -> Optional[str]:
        """ETag of a file's current bytes, or None if it does not exist."""
        path = Path(path)
        if not path.exists():
            return None
        return self.compute_etag(path.read_bytes())

    # =========================================================================
    # Reading
    # =========================================================================

    def read(self, path: PathLike) -> Tuple[FlowGraph, str]:
        """Load a flow document.

        Returns:
            (graph, etag) where etag identifies the bytes that were read.

        Raises:
            FileNotFoundError: If the document does not exist.
            DocumentError, SchemaError: If the document is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Flow document not found: {path}")
        content = path.read_bytes()
        graph = load_flow_from_str(content.decode("utf-8"), source_label=str(path))
        etag = self.compute_etag(content)
        logger.debug("Read flow %s from %s (etag: %s)", graph.id, path, etag[:16])
        return graph, etag

    # =========================================================================
    # Writing
    # =========================================================================

    def _atomic_write(self, path: Path, content: str) -> None:
        """Write content via temp file + rename, backing up the old file."""
        path.parent.mkdir(parents=True, exist_ok=True)

        if self._backup_on_write and path.exists():
            backup_path = path.with_suffix(path.suffix + ".bak")
            shutil.copy2(path, backup_path)
            logger.debug("Created backup: %s", backup_path)

        # Same directory so the rename stays on one filesystem
        fd, tmp_path = tempfile.mkstemp(
            suffix=".tmp",
            prefix=path.stem + "_",
            dir=path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, path)
            logger.debug("Atomic write complete: %s", path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def save(self, path: PathLike, graph: FlowGraph, etag: Optional[str] = None) -> str:
        """Serialize and write a graph.

        Args:
            path: Target document path.
            graph: Graph to write.
            etag: If provided, must match the file's current ETag.

        Returns:
            New ETag after save.

        Raises:
            SchemaError: The graph does not serialize to a schema-valid document.
            ConcurrencyError: The file changed since `etag` was read.
        """
        path = Path(path)
        confirm_round_trip(graph)

        if etag is not None:
            current_etag = self.file_etag(path)
            if current_etag is not None and current_etag != etag:
                raise ConcurrencyError(str(path), etag, current_etag)

        content = dump_flow(graph)
        self._atomic_write(path, content)

        new_etag = self.compute_etag(content)
        logger.info("Saved flow %s to %s (etag: %s)", graph.id, path, new_etag[:16])
        return new_etag
