"""Workspace integration: sources, debouncing, coordination and watching."""

from nextclient.workspace.coordinator import BoundaryAnalyzer
from nextclient.workspace.debounce import Debouncer
from nextclient.workspace.sources import WorkspaceSources
from nextclient.workspace.watcher import WorkspaceWatcher

__all__ = [
    "BoundaryAnalyzer",
    "Debouncer",
    "WorkspaceSources",
    "WorkspaceWatcher",
]
