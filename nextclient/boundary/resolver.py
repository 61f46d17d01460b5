"""Import specifier resolution for building the module graph.

Turns the raw string of an import declaration into the canonical absolute
path of the module it names. Only workspace-local specifiers resolve;
package imports never become graph edges.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass

from nextclient.config import ALIAS_PREFIX, SOURCE_EXTENSIONS

logger = logging.getLogger(__name__)


def canonical_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path into the module identity used across the graph."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


@dataclass
class ResolveResult:
    """Result of a specifier resolution attempt, for debugging."""

    specifier: str
    base_path: str | None  # None when the specifier is a package import
    resolved: str | None


class SpecifierResolver:
    """Resolves import specifiers to canonical module paths.

    Handles:
    - Relative: "./Button" from app/page.tsx -> <root>/app/Button.tsx
    - Alias:    "@/lib/auth" -> <root>/lib/auth.ts
    - Index:    "./components" -> <root>/app/components/index.tsx
    - Packages: "react" -> None (never part of the graph)

    Lookups are memoized per candidate base path, misses included. The memo
    must be dropped whenever a file appears or disappears, since either
    can flip an earlier answer.
    """

    def __init__(
        self,
        workspace_root: str | os.PathLike[str],
        extensions: tuple[str, ...] = SOURCE_EXTENSIONS,
        alias_prefix: str = ALIAS_PREFIX,
    ) -> None:
        """Initialize the resolver.

        Args:
            workspace_root: Directory alias specifiers resolve against.
            extensions: Source extensions tried in order after the bare path.
            alias_prefix: Prefix marking a workspace-root specifier.
        """
        self._root = canonical_path(workspace_root)
        self._extensions = extensions
        self._alias_prefix = alias_prefix
        self._memo: dict[str, str | None] = {}
        self._lock = threading.Lock()

    @property
    def workspace_root(self) -> str:
        """Canonical workspace root."""
        return self._root

    def resolve(self, specifier: str, importer_path: str) -> str | None:
        """Resolve a specifier imported by importer_path.

        Args:
            specifier: Raw import source string, without quotes.
            importer_path: Canonical path of the importing module.

        Returns:
            Canonical path of the imported module, or None if unresolved.
        """
        return self.resolve_with_details(specifier, importer_path).resolved

    def resolve_with_details(self, specifier: str, importer_path: str) -> ResolveResult:
        """Resolve and report the candidate base path that was probed."""
        base = self._base_path(specifier, importer_path)
        if base is None:
            return ResolveResult(specifier=specifier, base_path=None, resolved=None)
        return ResolveResult(
            specifier=specifier,
            base_path=base,
            resolved=self._resolve_base(base),
        )

    def invalidate(self) -> None:
        """Drop every memoized lookup."""
        with self._lock:
            dropped = len(self._memo)
            self._memo.clear()
        logger.debug("resolver_memo_cleared entries=%d", dropped)

    @property
    def memo_size(self) -> int:
        """Number of memoized base paths."""
        with self._lock:
            return len(self._memo)

    def _base_path(self, specifier: str, importer_path: str) -> str | None:
        """Map a specifier to the absolute base path to probe."""
        if not specifier:
            return None

        if specifier in (".", "..") or specifier.startswith(("./", "../")):
            importer_dir = os.path.dirname(importer_path)
            return os.path.normpath(os.path.join(importer_dir, specifier))

        if self._alias_prefix and specifier.startswith(self._alias_prefix):
            remainder = specifier[len(self._alias_prefix) :]
            return os.path.normpath(os.path.join(self._root, remainder))

        # Bare package names, node: builtins, URLs
        return None

    def _resolve_base(self, base: str) -> str | None:
        """Probe candidates for a base path, memoizing the outcome."""
        with self._lock:
            if base in self._memo:
                return self._memo[base]

        resolved = self._probe(base)

        with self._lock:
            self._memo[base] = resolved
        return resolved

    def _probe(self, base: str) -> str | None:
        """Return the first candidate that is a regular file.

        Order: bare path, base + each extension, then base/index + each
        extension (index with no extension first).
        """
        candidates = [base]
        candidates.extend(base + ext for ext in self._extensions)
        index = os.path.join(base, "index")
        candidates.append(index)
        candidates.extend(index + ext for ext in self._extensions)

        for candidate in candidates:
            try:
                if os.path.isfile(candidate):
                    return candidate
            except (OSError, ValueError):
                # Unprobeable path (e.g. embedded NUL); treat as a miss
                continue
        return None
