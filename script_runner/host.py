"""
Host document-store context.

The engine only talks to the host through ``HostContext``: it asks for the
active document's directory, and creates or deletes the files it materializes.
Logical paths are POSIX-style and relative to the host root.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Protocol

from .core.exceptions import RunnerIOError
from .core.logging import get_logger

logger = get_logger(__name__)


class HostContext(Protocol):
    root_directory: Path
    active_document: str | None

    def get_active_document_directory(self) -> str | None:
        """Root-relative directory of the active document, or None when no document is open."""

    def create_or_overwrite_file(self, logical_path: str, content: str) -> Path:
        """Write ``content`` at the root-relative ``logical_path``; return the concrete file."""

    def delete_file(self, handle: Path) -> None:
        """Delete a file previously returned by ``create_or_overwrite_file``."""


class FilesystemHost:
    """``HostContext`` backed by a directory on the local filesystem."""

    def __init__(self, root_directory: Path, active_document: str | None = None):
        self.root_directory = Path(root_directory).resolve()
        self.active_document = active_document

    def get_active_document_directory(self) -> str | None:
        if self.active_document is None:
            return None
        parent = PurePosixPath(self.active_document).parent
        return "" if str(parent) == "." else str(parent)

    def read_active_document(self) -> str:
        if self.active_document is None:
            raise RunnerIOError("No active document")
        path = self.root_directory / self.active_document
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise RunnerIOError(f"Failed to read document: {exc}", str(path)) from exc

    def create_or_overwrite_file(self, logical_path: str, content: str) -> Path:
        path = self.root_directory / logical_path
        existed = path.exists()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise RunnerIOError(f"Failed to write script file: {exc}", str(path)) from exc
        logger.debug("%s execution file %s", "Modified" if existed else "Created", path)
        return path

    def delete_file(self, handle: Path) -> None:
        try:
            handle.unlink(missing_ok=True)
        except OSError as exc:
            raise RunnerIOError(f"Failed to delete script file: {exc}", str(handle)) from exc
        logger.debug("Deleted execution file %s", handle)
