"""Tests for watchdog event translation."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from watchdog.events import (
    DirDeletedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from nextclient.config import AnalyzerSettings
from nextclient.workspace.coordinator import BoundaryAnalyzer
from nextclient.workspace.watcher import AnalyzerEventHandler, WorkspaceWatcher


@pytest.fixture
def analyzer(tmp_path: Path, write_files) -> BoundaryAnalyzer:
    """Scanned analyzer over a two-module app."""
    write_files(
        {
            "components/Button.tsx": '"use client";\nimport "./Icon";\n',
            "components/Icon.tsx": "export const Icon = () => null;\n",
        }
    )
    analyzer = BoundaryAnalyzer(tmp_path, settings=AnalyzerSettings(debounce_seconds=30.0))
    analyzer.scan()
    yield analyzer
    analyzer.close()


@pytest.fixture
def handler(analyzer: BoundaryAnalyzer) -> AnalyzerEventHandler:
    """Handler bound to the analyzer."""
    return AnalyzerEventHandler(analyzer)


class TestEventHandler:
    """Tests for AnalyzerEventHandler dispatch."""

    def test_created(
        self, handler: AnalyzerEventHandler, analyzer: BoundaryAnalyzer, write_files
    ) -> None:
        """A new source file joins the graph."""
        paths = write_files({"components/Card.tsx": '"use client";\n'})
        handler.dispatch(FileCreatedEvent(paths["components/Card.tsx"]))

        assert analyzer.is_client(paths["components/Card.tsx"]) is True

    def test_modified(
        self, handler: AnalyzerEventHandler, analyzer: BoundaryAnalyzer, write_files
    ) -> None:
        """A disk change is reprocessed."""
        paths = write_files({"components/Button.tsx": "export const Button = 1;\n"})
        handler.dispatch(FileModifiedEvent(paths["components/Button.tsx"]))

        assert analyzer.is_client(paths["components/Button.tsx"]) is False

    def test_deleted(
        self, handler: AnalyzerEventHandler, analyzer: BoundaryAnalyzer, module_path
    ) -> None:
        """A deleted file leaves the graph."""
        icon = module_path("components/Icon.tsx")
        os.remove(icon)
        handler.dispatch(FileDeletedEvent(icon))

        assert analyzer.record(icon) is None
        assert analyzer.record(module_path("components/Button.tsx")).imports == frozenset()

    def test_directory_deleted(
        self, handler: AnalyzerEventHandler, analyzer: BoundaryAnalyzer, module_path
    ) -> None:
        """Every module under a deleted directory leaves the graph."""
        handler.dispatch(DirDeletedEvent(module_path("components")))

        assert analyzer.client_modules() == set()
        assert analyzer.record(module_path("components/Button.tsx")) is None

    def test_file_moved(
        self, handler: AnalyzerEventHandler, analyzer: BoundaryAnalyzer, module_path
    ) -> None:
        """A rename is a delete plus a create."""
        src = module_path("components/Icon.tsx")
        dest = module_path("components/Glyph.tsx")
        os.rename(src, dest)
        handler.dispatch(FileMovedEvent(src, dest))

        assert analyzer.record(src) is None
        assert analyzer.record(dest) is not None

    def test_directory_moved_rescans(
        self, handler: AnalyzerEventHandler, analyzer: BoundaryAnalyzer, module_path
    ) -> None:
        """Moving a directory rescans so its modules appear under the new path."""
        src = module_path("components")
        dest = module_path("ui")
        os.rename(src, dest)
        handler.dispatch(DirMovedEvent(src, dest))

        assert analyzer.record(module_path("components/Button.tsx")) is None
        assert analyzer.is_client(module_path("ui/Icon.tsx")) is True

    def test_non_source_events_ignored(
        self,
        handler: AnalyzerEventHandler,
        analyzer: BoundaryAnalyzer,
        write_files,
    ) -> None:
        """Events for other file types leave the graph untouched."""
        version = analyzer.graph_version
        paths = write_files({"README.md": "# app\n", "node_modules/x/index.js": ""})
        handler.dispatch(FileCreatedEvent(paths["README.md"]))
        handler.dispatch(FileModifiedEvent(paths["node_modules/x/index.js"]))

        assert analyzer.graph_version == version


class TestWorkspaceWatcher:
    """Tests for observer lifecycle."""

    def test_start_stop(self, analyzer: BoundaryAnalyzer) -> None:
        """The observer thread starts and stops cleanly, idempotently."""
        watcher = WorkspaceWatcher(analyzer)
        assert watcher.running is False

        watcher.start()
        watcher.start()
        assert watcher.running is True

        watcher.stop()
        watcher.stop()
        assert watcher.running is False
