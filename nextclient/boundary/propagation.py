"""Client boundary propagation over the importer index.

A module is on the client side of the boundary when:

1. it carries the boundary directive itself, or
2. it is not a boundary-blocking module (page, layout, ...) and at least
   one module importing it is on the client side.

Answers are computed lazily per query and memoized. Any change to the
module graph invalidates the whole memo; the next query recomputes.
"""

from __future__ import annotations

import logging
import os

from nextclient.boundary.graph import ModuleGraph
from nextclient.config import BOUNDARY_BLOCKING_NAMES, MAX_PROPAGATION_STEPS, SOURCE_EXTENSIONS

logger = logging.getLogger(__name__)


def is_boundary_blocking(
    path: str,
    blocking_names: frozenset[str] = BOUNDARY_BLOCKING_NAMES,
    extensions: tuple[str, ...] = SOURCE_EXTENSIONS,
) -> bool:
    """Check whether a module file has a framework-reserved routing role.

    Examples:
        app/dashboard/page.tsx -> True
        app/layout.js          -> True
        components/Page.tsx    -> False (stems are case-sensitive)
    """
    stem, ext = os.path.splitext(os.path.basename(path))
    return ext in extensions and stem in blocking_names


class BoundaryPropagator:
    """Answers "is this module client-side?" against a ModuleGraph.

    Each query walks importer edges upward from the queried module with an
    explicit worklist and a per-query visited set. A module seen twice in
    one walk contributes nothing the second time, which is what makes
    import cycles terminate. Blocking modules are visited but never
    expanded: taint can not travel up through them.

    Memo entries are only written for answers the walk actually proved:
    - a hit marks every module on the path back to the query as client;
    - an exhausted walk marks every visited module as not client, since
      everything reachable above them was explored.
    """

    def __init__(
        self,
        graph: ModuleGraph,
        blocking_names: frozenset[str] = BOUNDARY_BLOCKING_NAMES,
        extensions: tuple[str, ...] = SOURCE_EXTENSIONS,
        max_steps: int = MAX_PROPAGATION_STEPS,
    ) -> None:
        """Initialize the propagator.

        Args:
            graph: The module graph to query.
            blocking_names: File stems that stop upward propagation.
            extensions: Source extensions a blocking file may carry.
            max_steps: Ceiling on nodes expanded by a single query.
        """
        self._graph = graph
        self._blocking_names = blocking_names
        self._extensions = extensions
        self._max_steps = max_steps
        self._memo: dict[str, bool] = {}

    def is_client(self, path: str) -> bool:
        """Whether the module at path runs on the client side.

        Unknown modules are not client.
        """
        cached = self._memo.get(path)
        if cached is not None:
            return cached

        record = self._graph.get(path)
        if record is None:
            return False
        if record.has_boundary_directive:
            self._memo[path] = True
            return True
        if self.is_blocking(path):
            self._memo[path] = False
            return False

        return self._walk(path)

    def is_blocking(self, path: str) -> bool:
        """Whether path is a boundary-blocking module."""
        return is_boundary_blocking(path, self._blocking_names, self._extensions)

    def client_modules(self) -> set[str]:
        """Every module in the graph that is client-side."""
        return {path for path in self._graph.paths() if self.is_client(path)}

    def invalidate(self) -> None:
        """Drop every memoized answer."""
        if self._memo:
            logger.debug("propagation_memo_cleared entries=%d", len(self._memo))
        self._memo.clear()

    @property
    def memo_size(self) -> int:
        """Number of memoized answers."""
        return len(self._memo)

    def _walk(self, origin: str) -> bool:
        """Search importer edges upward from origin for a client module.

        origin is known to exist, carry no directive, and not be blocking.
        """
        # parent[x] = the module whose importer x is, on the walk from origin
        parent: dict[str, str | None] = {origin: None}
        worklist = [origin]
        steps = 0

        while worklist:
            steps += 1
            if steps > self._max_steps:
                logger.error(
                    "propagation_step_limit_exceeded path=%s steps=%d",
                    origin,
                    self._max_steps,
                )
                return False

            current = worklist.pop()
            for importer in self._graph.iter_importers(current):
                if importer in parent:
                    # Revisit: already explored or pending on this walk
                    continue
                parent[importer] = current

                if self._proves_client(importer):
                    self._mark_path(importer, parent)
                    return True
                if self._memo.get(importer) is False:
                    continue
                if self.is_blocking(importer):
                    continue
                worklist.append(importer)

        for visited in parent:
            self._memo[visited] = False
        return False

    def _proves_client(self, path: str) -> bool:
        """Client status known without further walking."""
        if self._memo.get(path) is True:
            return True
        record = self._graph.get(path)
        return record is not None and record.has_boundary_directive

    def _mark_path(self, found: str, parent: dict[str, str | None]) -> None:
        """Memoize the chain from a client module back to the query."""
        node: str | None = found
        while node is not None:
            self._memo[node] = True
            node = parent[node]
