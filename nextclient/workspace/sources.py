"""Workspace source access: file enumeration plus a live-buffer overlay.

Buffer content (unsaved editor edits) always wins over what is on disk.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Iterator

from nextclient.boundary.resolver import canonical_path
from nextclient.config import SKIP_DIRS, SOURCE_EXTENSIONS
from nextclient.errors import SourceReadError

logger = logging.getLogger(__name__)


class WorkspaceSources:
    """Enumerates and reads module sources under one workspace root."""

    def __init__(
        self,
        root: str | os.PathLike[str],
        extensions: tuple[str, ...] = SOURCE_EXTENSIONS,
        skip_dirs: frozenset[str] = SKIP_DIRS,
    ) -> None:
        self._root = Path(canonical_path(root))
        self._extensions = extensions
        self._skip_dirs = skip_dirs
        self._buffers: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def root(self) -> str:
        """Canonical workspace root."""
        return str(self._root)

    def enumerate(self) -> Iterator[str]:
        """Yield canonical paths of every source file in the workspace.

        Skips dependency/build output directories and hidden directories.
        """
        yield from self._walk(self._root)

    def _walk(self, directory: Path) -> Iterator[str]:
        try:
            entries = sorted(directory.iterdir())
        except FileNotFoundError:
            # Removed between listing its parent and now
            return
        except OSError as e:
            logger.warning("directory_unreadable path=%s error=%s", directory, e)
            return

        for entry in entries:
            if entry.is_dir():
                if entry.name not in self._skip_dirs and not entry.name.startswith("."):
                    yield from self._walk(entry)
            elif entry.is_file() and entry.suffix in self._extensions:
                yield canonical_path(entry)

    def is_source_file(self, path: str | os.PathLike[str]) -> bool:
        """Whether a path would be enumerated (extension and directory rules)."""
        candidate = Path(canonical_path(path))
        if candidate.suffix not in self._extensions:
            return False
        try:
            relative = candidate.relative_to(self._root)
        except ValueError:
            return False
        for part in relative.parts[:-1]:
            if part in self._skip_dirs or part.startswith("."):
                return False
        return True

    def read(self, path: str) -> str | None:
        """Read module text, preferring an open buffer.

        Returns:
            The text, or None if the file does not exist.

        Raises:
            SourceReadError: On any other I/O or decoding failure.
        """
        with self._lock:
            buffered = self._buffers.get(path)
        if buffered is not None:
            return buffered

        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("source_missing path=%s", path)
            return None
        except IsADirectoryError as e:
            raise SourceReadError(path, "is a directory") from e
        except (OSError, UnicodeDecodeError) as e:
            raise SourceReadError(path, str(e)) from e

    def open_buffer(self, path: str, text: str) -> None:
        """Record the live content of an edited document."""
        with self._lock:
            self._buffers[path] = text

    def close_buffer(self, path: str) -> None:
        """Forget a document's live content (closed or saved)."""
        with self._lock:
            self._buffers.pop(path, None)

    def is_dirty(self, path: str) -> bool:
        """Whether a live buffer overrides the file on disk."""
        with self._lock:
            return path in self._buffers
