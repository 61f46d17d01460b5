"""BoundaryAnalyzer: the single owner of one workspace's module graph.

Orchestrates source reading, extraction, graph mutation and propagation,
and keeps every cache in step with the graph:

- full scans parse in parallel, then merge in one sequential rebuild;
- buffer edits are debounced per document and reprocessed one at a time;
- file creation/deletion drops the resolver memo, since earlier misses may
  now resolve and earlier hits may now dangle;
- every graph change drops the propagation memo.

All graph mutations and graph queries go through one re-entrant lock, so
a query never observes a half-applied update.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable

from nextclient.boundary.extractor import ModuleExtractor
from nextclient.boundary.graph import ModuleGraph
from nextclient.boundary.propagation import BoundaryPropagator
from nextclient.boundary.resolver import SpecifierResolver, canonical_path
from nextclient.config import AnalyzerSettings
from nextclient.errors import ExtractionError, SourceReadError
from nextclient.models.module import HighlightSet, ModuleRecord
from nextclient.models.types import ChangeKind
from nextclient.workspace.debounce import Debouncer
from nextclient.workspace.sources import WorkspaceSources

logger = logging.getLogger(__name__)

# Receives the paths whose modules changed; an empty set means "everything"
ChangeListener = Callable[[frozenset[str]], None]


@dataclass
class _LoadResult:
    """Outcome of reading and extracting one file during a scan."""

    path: str
    record: ModuleRecord | None
    parse_failed: bool = False


def _is_superseded(path: str, touched: set[str]) -> bool:
    """Whether an incremental update to path, or a deletion above it, beat the scan."""
    if path in touched:
        return True
    return any(path.startswith(other + os.sep) for other in touched)


class BoundaryAnalyzer:
    """Maintains the client boundary classification for one workspace.

    Lifecycle: construct on workspace open, scan() once, feed change events,
    close() on workspace close. Queries before the first scan completes
    return None ("no data yet"), never False.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        settings: AnalyzerSettings | None = None,
        sources: WorkspaceSources | None = None,
    ) -> None:
        """Initialize the analyzer.

        Args:
            root: Workspace root directory.
            settings: Analyzer settings. Defaults to AnalyzerSettings().
            sources: Source reader. Defaults to a WorkspaceSources on root.
        """
        self._settings = settings or AnalyzerSettings()
        self._sources = sources or WorkspaceSources(
            root,
            extensions=self._settings.extensions,
            skip_dirs=self._settings.skip_dirs,
        )
        self._resolver = SpecifierResolver(
            self._sources.root,
            extensions=self._settings.extensions,
            alias_prefix=self._settings.alias_prefix,
        )
        self._extractor = ModuleExtractor(
            self._resolver,
            directive=self._settings.directive,
            grammars=self._settings.grammars,
        )
        self._graph = ModuleGraph()
        self._propagator = BoundaryPropagator(
            self._graph,
            blocking_names=self._settings.blocking_names,
            extensions=self._settings.extensions,
            max_steps=self._settings.max_propagation_steps,
        )
        self._debouncer = Debouncer(self._settings.debounce_seconds)

        self._lock = threading.RLock()
        self._scan_lock = threading.Lock()
        self._ready = False
        self._closed = False
        self._enabled = True
        self._listeners: list[ChangeListener] = []
        # Paths updated incrementally while a scan is reading; None outside scans
        self._touched_during_scan: set[str] | None = None

    # -- state -----------------------------------------------------------

    @property
    def root(self) -> str:
        """Canonical workspace root."""
        return self._sources.root

    @property
    def sources(self) -> WorkspaceSources:
        """The source reader (buffer overlay included)."""
        return self._sources

    @property
    def ready(self) -> bool:
        """Whether the initial scan has completed."""
        return self._ready

    @property
    def enabled(self) -> bool:
        """Whether highlights are produced. The graph is maintained either way."""
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        if value == self._enabled:
            return
        self._enabled = value
        logger.info("highlighting_toggled enabled=%s", value)
        self._notify(frozenset())

    @property
    def graph_version(self) -> int:
        """Changes whenever the module graph does."""
        with self._lock:
            return self._graph.version

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback fired after the graph changes."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        """Unregister a callback."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -- full scan -------------------------------------------------------

    def scan(self) -> int:
        """Parse the whole workspace and replace the graph.

        Parsing runs in parallel outside the graph lock, so modules from a
        previous scan stay queryable until the merge. A module reprocessed
        or deleted while the scan was reading keeps its current graph state
        at the merge, since the scan may have read older content.

        Scanning a closed analyzer reopens it.

        Returns:
            Number of modules in the new graph.
        """
        with self._scan_lock:
            logger.info("workspace_scan_started root=%s", self.root)
            with self._lock:
                self._closed = False
                self._touched_during_scan = set()
            self._resolver.invalidate()
            paths = list(self._sources.enumerate())
            logger.info("workspace_files_found count=%d", len(paths))

            with ThreadPoolExecutor(max_workers=self._settings.scan_workers) as pool:
                results = list(pool.map(self._load, paths))

            with self._lock:
                touched = self._touched_during_scan or set()
                self._touched_during_scan = None

                records: dict[str, ModuleRecord] = {}
                for result in results:
                    if _is_superseded(result.path, touched):
                        continue
                    if result.record is not None:
                        records[result.path] = result.record
                    elif result.parse_failed:
                        # Keep what the last good parse said
                        previous = self._graph.get(result.path)
                        if previous is not None:
                            records[result.path] = previous
                for path in touched:
                    current = self._graph.get(path)
                    if current is not None:
                        records[path] = current
                if touched:
                    logger.debug("scan_merge_kept_newer modules=%d", len(touched))

                self._graph.rebuild(records.values())
                self._propagator.invalidate()
                self._ready = True
                count = len(self._graph)

        logger.info("workspace_scan_complete modules=%d", count)
        self._notify(frozenset())
        return count

    def _load(self, path: str) -> _LoadResult:
        """Read and extract one file. Never raises."""
        try:
            content = self._sources.read(path)
        except SourceReadError as e:
            logger.warning("source_read_failed path=%s reason=%s", e.source_path, e.reason)
            return _LoadResult(path=path, record=None)
        if content is None:
            return _LoadResult(path=path, record=None)

        try:
            return _LoadResult(path=path, record=self._extractor.extract(path, content))
        except ExtractionError as e:
            logger.info("module_parse_failed path=%s reason=%s", e.source_path, e.reason)
            return _LoadResult(path=path, record=None, parse_failed=True)

    # -- incremental updates ---------------------------------------------

    def apply(self, kind: ChangeKind, path: str | os.PathLike[str], text: str | None = None) -> None:
        """Dispatch one change notification."""
        if kind == ChangeKind.CONTENT_CHANGED:
            if text is None:
                raise ValueError("CONTENT_CHANGED requires the buffer text")
            self.content_changed(path, text)
        elif kind == ChangeKind.CREATED:
            self.file_created(path)
        elif kind == ChangeKind.CHANGED_ON_DISK:
            self.file_changed_on_disk(path)
        elif kind == ChangeKind.DELETED:
            self.file_deleted(path)
        else:
            raise ValueError(f"Unsupported change kind: {kind}")

    def content_changed(self, path: str | os.PathLike[str], text: str) -> None:
        """Record a live buffer edit and schedule a debounced reprocess."""
        module_path = canonical_path(path)
        if not self._sources.is_source_file(module_path):
            return
        self._sources.open_buffer(module_path, text)
        self._debouncer.schedule(module_path, lambda: self.reprocess(module_path))

    def document_closed(self, path: str | os.PathLike[str]) -> None:
        """Drop a document's buffer; disk content becomes authoritative again."""
        module_path = canonical_path(path)
        self._debouncer.cancel(module_path)
        if self._sources.is_dirty(module_path):
            self._sources.close_buffer(module_path)
            self.reprocess(module_path)

    def flush(self, path: str | os.PathLike[str]) -> bool:
        """Run a pending debounced reprocess immediately."""
        return self._debouncer.flush(canonical_path(path))

    def reprocess(self, path: str | os.PathLike[str]) -> bool:
        """Re-extract one module and apply the result to the graph.

        Read, extract and apply all happen under the graph lock, so two
        reprocesses of one module can not land out of order. A file that is
        missing or unreadable is removed. Does nothing once closed.

        Returns:
            True if the graph changed.
        """
        module_path = canonical_path(path)
        with self._lock:
            if self._closed:
                logger.debug("reprocess_skipped_closed path=%s", module_path)
                return False
            self._mark_touched(module_path)

            try:
                content = self._sources.read(module_path)
            except SourceReadError as e:
                logger.warning(
                    "source_read_failed_removing path=%s reason=%s", e.source_path, e.reason
                )
                content = None

            if content is None:
                changed = self._graph.remove(module_path)
            else:
                try:
                    record = self._extractor.extract(module_path, content)
                except ExtractionError as e:
                    logger.info(
                        "module_parse_failed_keeping_previous path=%s reason=%s",
                        e.source_path,
                        e.reason,
                    )
                    return False
                changed = self._graph.upsert(record)

            if changed:
                self._propagator.invalidate()

        if changed:
            logger.debug("module_reprocessed path=%s", module_path)
            self._notify(frozenset({module_path}))
        return changed

    def file_created(self, path: str | os.PathLike[str]) -> bool:
        """Parse and insert a newly created file."""
        module_path = canonical_path(path)
        if not self._sources.is_source_file(module_path):
            return False
        logger.debug("file_created path=%s", module_path)
        self._resolver.invalidate()
        return self.reprocess(module_path)

    def file_changed_on_disk(self, path: str | os.PathLike[str]) -> bool:
        """Reprocess a file changed outside the edit stream.

        Ignored while a dirty buffer exists; buffer edits own that module.
        """
        module_path = canonical_path(path)
        if not self._sources.is_source_file(module_path):
            return False
        if self._sources.is_dirty(module_path):
            logger.debug("disk_change_ignored_dirty_buffer path=%s", module_path)
            return False
        return self.reprocess(module_path)

    def file_deleted(self, path: str | os.PathLike[str]) -> bool:
        """Remove a deleted file, or every module under a deleted directory."""
        module_path = canonical_path(path)
        self._debouncer.cancel(module_path)
        self._sources.close_buffer(module_path)

        with self._lock:
            self._resolver.invalidate()
            # A scan in flight may already have read the file or files under it
            self._mark_touched(module_path)
            # Unparsed files can still be import targets
            if module_path in self._graph or self._graph.importers_of(module_path):
                removed = [module_path]
            else:
                removed = self._graph.paths_under(module_path)

            for removed_path in removed:
                self._graph.remove(removed_path)
            if removed:
                self._propagator.invalidate()

        if removed:
            logger.debug("modules_deleted path=%s count=%d", module_path, len(removed))
            self._notify(frozenset(removed))
        return bool(removed)

    def bulk_changed(self, paths: Iterable[str | os.PathLike[str]]) -> None:
        """Apply many external changes at once (checkout, pull, codegen).

        Large batches fall back to a full scan.
        """
        changed = [canonical_path(p) for p in paths]
        if len(changed) > self._settings.bulk_change_threshold:
            logger.info("bulk_change_rescan files=%d", len(changed))
            self.scan()
            return

        self._resolver.invalidate()
        for module_path in changed:
            if os.path.exists(module_path):
                self.file_changed_on_disk(module_path)
            else:
                self.file_deleted(module_path)

    # -- queries ---------------------------------------------------------

    def is_client(self, path: str | os.PathLike[str]) -> bool | None:
        """Client status of a module, or None before the first scan."""
        module_path = canonical_path(path)
        with self._lock:
            if not self._ready:
                return None
            return self._propagator.is_client(module_path)

    def client_modules(self) -> set[str] | None:
        """All client modules, or None before the first scan."""
        with self._lock:
            if not self._ready:
                return None
            return self._propagator.client_modules()

    def record(self, path: str | os.PathLike[str]) -> ModuleRecord | None:
        """Stored record for a module."""
        with self._lock:
            return self._graph.get(canonical_path(path))

    def importers_of(self, path: str | os.PathLike[str]) -> frozenset[str]:
        """Modules directly importing path."""
        with self._lock:
            return self._graph.importers_of(canonical_path(path))

    def highlights(
        self, path: str | os.PathLike[str], text: str | None = None
    ) -> HighlightSet | None:
        """Ranges to highlight in a view of one module.

        Definitions are highlighted when the module itself declares the
        directive. Tag usages are highlighted when the tag's import resolves
        to a client module; both the opening and closing tag names count.

        Args:
            path: Module shown in the view.
            text: Live view text. Read from sources when omitted.

        Returns:
            The highlight set, or None before the first scan.
        """
        module_path = canonical_path(path)
        if not self._ready:
            return None
        if not self._enabled:
            return HighlightSet()

        content = text
        if content is None:
            try:
                content = self._sources.read(module_path)
            except SourceReadError as e:
                logger.warning("source_read_failed path=%s reason=%s", e.source_path, e.reason)
                return HighlightSet()
        if content is None:
            return HighlightSet()

        try:
            outline = self._extractor.outline(module_path, content)
        except ExtractionError as e:
            logger.debug("highlight_parse_failed path=%s reason=%s", e.source_path, e.reason)
            return HighlightSet()

        highlights = HighlightSet()
        with self._lock:
            record = self._graph.get(module_path)
            if record is not None and record.has_boundary_directive:
                highlights.definitions.extend(d.range for d in outline.definitions)

            for usage in outline.usages:
                if usage.specifier is None:
                    continue
                target = self._resolver.resolve(usage.specifier, module_path)
                if target is None or not self._propagator.is_client(target):
                    continue
                highlights.usages.append(usage.opening)
                if usage.closing is not None:
                    highlights.usages.append(usage.closing)

        logger.debug(
            "highlights_computed path=%s definitions=%d usages=%d",
            module_path,
            len(highlights.definitions),
            len(highlights.usages),
        )
        return highlights

    # -- teardown --------------------------------------------------------

    def close(self) -> None:
        """Cancel pending work and drop the graph.

        A debounced reprocess already running when close() is called finds
        the analyzer closed and leaves the graph empty.
        """
        self._debouncer.cancel_all()
        with self._lock:
            self._closed = True
            self._graph.clear()
            self._propagator.invalidate()
            self._resolver.invalidate()
            self._ready = False
        logger.info("analyzer_closed root=%s", self.root)

    def _mark_touched(self, path: str) -> None:
        """Record an incremental update for a scan in flight. Caller holds the lock."""
        if self._touched_during_scan is not None:
            self._touched_during_scan.add(path)

    def _notify(self, paths: frozenset[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(paths)
            except Exception:
                logger.exception("change_listener_failed")
