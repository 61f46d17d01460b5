"""Module import graph storage.

Owns every ModuleRecord and the import edges between them. Forward edges
live in a networkx DiGraph (a -> b means "a imports b"); the importer index
is the DiGraph's predecessor view, so the two directions are always the
same set of edges.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Iterator

import networkx as nx

from nextclient.models.module import ModuleRecord

logger = logging.getLogger(__name__)


class ModuleGraph:
    """Authoritative store of module records plus the importer index.

    Graph nodes are module paths. A node may exist without a record when a
    parsed module imports a file that has not been parsed (or failed to
    parse); such placeholder nodes are pruned once nothing imports them.
    """

    def __init__(self) -> None:
        """Initialize an empty module graph."""
        self._graph: nx.DiGraph = nx.DiGraph()
        self._records: dict[str, ModuleRecord] = {}
        self._version = 0

    def upsert(self, record: ModuleRecord) -> bool:
        """Insert or replace a module record.

        Only the difference between the old and new import sets touches
        the edge set: stale edges are removed, new ones added.

        Args:
            record: The freshly extracted record.

        Returns:
            True if the graph changed (new module, directive flip, or edges).
        """
        path = record.path
        if path in record.imports:
            record = record.without_import(path)

        previous = self._records.get(path)
        if previous == record:
            return False

        old_imports = previous.imports if previous is not None else frozenset()
        stale = old_imports - record.imports
        added = record.imports - old_imports

        self._graph.add_node(path)
        for target in stale:
            self._graph.remove_edge(path, target)
        for target in added:
            self._graph.add_edge(path, target)
        self._records[path] = record
        self._prune(stale)
        self._version += 1

        logger.debug(
            "module_upserted path=%s directive=%s added=%d removed=%d",
            path,
            record.has_boundary_directive,
            len(added),
            len(stale),
        )
        return True

    def remove(self, path: str) -> bool:
        """Delete a module and every edge that mentions it.

        Importers keep their records but lose the import of path.

        Returns:
            True if anything was removed.
        """
        if path not in self._graph:
            return False

        importers = list(self._graph.predecessors(path))
        targets = list(self._graph.successors(path))

        for importer in importers:
            record = self._records.get(importer)
            if record is not None:
                self._records[importer] = record.without_import(path)

        self._graph.remove_node(path)
        self._records.pop(path, None)
        self._prune(targets)
        self._version += 1

        logger.debug("module_removed path=%s importers=%d", path, len(importers))
        return True

    def rebuild(self, records: Iterable[ModuleRecord]) -> None:
        """Replace the whole graph with a fresh set of records.

        Used for full scans. Builds the new structures first and swaps them
        in, so a failure while iterating records leaves the old graph.
        """
        graph: nx.DiGraph = nx.DiGraph()
        by_path: dict[str, ModuleRecord] = {}

        for record in records:
            if record.path in record.imports:
                record = record.without_import(record.path)
            by_path[record.path] = record

        for path, record in by_path.items():
            graph.add_node(path)
            for target in record.imports:
                graph.add_edge(path, target)

        self._graph = graph
        self._records = by_path
        self._version += 1

        logger.info(
            "module_graph_rebuilt modules=%d edges=%d",
            len(self._records),
            self._graph.number_of_edges(),
        )

    def clear(self) -> None:
        """Drop every record and edge."""
        self._graph.clear()
        self._records.clear()
        self._version += 1

    def get(self, path: str) -> ModuleRecord | None:
        """Current record for path, or None."""
        return self._records.get(path)

    def importers_of(self, path: str) -> frozenset[str]:
        """Modules that directly import path."""
        if path not in self._graph:
            return frozenset()
        return frozenset(self._graph.predecessors(path))

    def imports_of(self, path: str) -> frozenset[str]:
        """Modules that path directly imports."""
        if path not in self._graph:
            return frozenset()
        return frozenset(self._graph.successors(path))

    def iter_importers(self, path: str) -> Iterator[str]:
        """Iterate direct importers without copying (hot path for propagation)."""
        if path in self._graph:
            yield from self._graph.predecessors(path)

    def paths(self) -> list[str]:
        """Paths of every module with a record."""
        return list(self._records)

    def paths_under(self, directory: str) -> list[str]:
        """Every node below directory, placeholders included."""
        prefix = directory.rstrip(os.sep) + os.sep
        return [node for node in self._graph.nodes if node.startswith(prefix)]

    def records(self) -> list[ModuleRecord]:
        """Every stored record."""
        return list(self._records.values())

    def is_consistent(self) -> bool:
        """Check that records and edges describe the same graph."""
        for path, record in self._records.items():
            if path not in self._graph:
                return False
            if frozenset(self._graph.successors(path)) != record.imports:
                return False
        for node in self._graph.nodes:
            if node not in self._records and self._graph.out_degree(node) > 0:
                return False
        return True

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def __len__(self) -> int:
        return len(self._records)

    @property
    def version(self) -> int:
        """Counter bumped on every mutation."""
        return self._version

    @property
    def edge_count(self) -> int:
        """Return the number of import edges."""
        return self._graph.number_of_edges()

    def _prune(self, candidates: Iterable[str]) -> None:
        """Drop placeholder nodes left with no record and no importers."""
        for node in candidates:
            if (
                node in self._graph
                and node not in self._records
                and self._graph.in_degree(node) == 0
            ):
                self._graph.remove_node(node)
