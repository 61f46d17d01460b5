"""File-system watching for changes made outside the editor.

Translates watchdog events (git checkout, codegen, another editor) into
BoundaryAnalyzer updates. Buffer edits do not come through here.
"""

from __future__ import annotations

import logging

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileSystemMovedEvent,
)
from watchdog.observers import Observer

from nextclient.workspace.coordinator import BoundaryAnalyzer

logger = logging.getLogger(__name__)


class AnalyzerEventHandler(FileSystemEventHandler):
    """Forwards source-file events to a BoundaryAnalyzer.

    A move is a delete of the old path plus a create of the new one.
    Directory deletions are forwarded so every module under them goes.
    """

    def __init__(self, analyzer: BoundaryAnalyzer) -> None:
        super().__init__()
        self._analyzer = analyzer

    def _is_source(self, path: str) -> bool:
        return self._analyzer.sources.is_source_file(path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_source(str(event.src_path)):
            self._analyzer.file_created(str(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_source(str(event.src_path)):
            self._analyzer.file_changed_on_disk(str(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory or self._is_source(str(event.src_path)):
            self._analyzer.file_deleted(str(event.src_path))

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        src = str(event.src_path)
        dest = str(event.dest_path)
        if event.is_directory:
            # Module paths under the new location are unknown; rescan
            self._analyzer.file_deleted(src)
            self._analyzer.scan()
            return
        if self._is_source(src):
            self._analyzer.file_deleted(src)
        if self._is_source(dest):
            self._analyzer.file_created(dest)


class WorkspaceWatcher:
    """Owns a watchdog observer for one analyzer's workspace root."""

    def __init__(self, analyzer: BoundaryAnalyzer) -> None:
        self._analyzer = analyzer
        self._handler = AnalyzerEventHandler(analyzer)
        self._observer: Observer | None = None

    @property
    def running(self) -> bool:
        """Whether the observer thread is active."""
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        """Begin watching the workspace root recursively."""
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self._handler, self._analyzer.root, recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info("workspace_watch_started root=%s", self._analyzer.root)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop watching and wait for the observer thread."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout)
        self._observer = None
        logger.info("workspace_watch_stopped root=%s", self._analyzer.root)
