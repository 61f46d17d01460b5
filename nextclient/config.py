"""Analyzer constants and the per-workspace settings bundle.

The extension table below decides which files join the module graph and
which tree-sitter grammar parses them. Supporting another source flavor
means adding one row.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from nextclient.models.types import GrammarKind

# Literal marker that puts a module on the client side of the boundary
BOUNDARY_DIRECTIVE: str = "use client"

# Recognized source extensions, in resolution order
SOURCE_EXTENSIONS: tuple[str, ...] = (".js", ".jsx", ".ts", ".tsx")

SOURCE_GRAMMARS: dict[str, GrammarKind] = {
    # JSX is valid in .js files, so plain JS goes through the TSX grammar
    ".js": GrammarKind.TSX,
    ".jsx": GrammarKind.TSX,
    # Angle-bracket casts (<T>value) only parse with the plain grammar
    ".ts": GrammarKind.TYPESCRIPT,
    ".tsx": GrammarKind.TSX,
}

# Workspace-root alias: "@/components/Button" -> <root>/components/Button
ALIAS_PREFIX: str = "@/"

# File stems reserved by the App Router. Upward taint stops at these.
BOUNDARY_BLOCKING_NAMES: frozenset[str] = frozenset(
    {
        "page",
        "layout",
        "template",
        "default",
        "route",
        "loading",
        "not-found",
    }
)

# Dependency and build output directories never scanned
SKIP_DIRS: frozenset[str] = frozenset(
    {
        "node_modules",
        ".next",
        "out",
        "dist",
        "build",
        "coverage",
        ".git",
        ".turbo",
        ".vercel",
    }
)

DEBOUNCE_SECONDS: float = 0.2  # Quiet period before re-parsing an edited buffer
BULK_CHANGE_THRESHOLD: int = 25  # More changed files than this -> full rescan
MAX_PROPAGATION_STEPS: int = 1_000_000  # Last-resort ceiling per taint query
SCAN_WORKERS: int = 8  # Parallel parsers during a full scan


@dataclass(frozen=True)
class AnalyzerSettings:
    """Immutable settings for one workspace analyzer.

    Defaults come from the module constants; an editor integration builds
    its own instance from user configuration.
    """

    directive: str = BOUNDARY_DIRECTIVE
    extensions: tuple[str, ...] = SOURCE_EXTENSIONS
    alias_prefix: str = ALIAS_PREFIX
    blocking_names: frozenset[str] = BOUNDARY_BLOCKING_NAMES
    skip_dirs: frozenset[str] = SKIP_DIRS
    debounce_seconds: float = DEBOUNCE_SECONDS
    bulk_change_threshold: int = BULK_CHANGE_THRESHOLD
    max_propagation_steps: int = MAX_PROPAGATION_STEPS
    scan_workers: int = SCAN_WORKERS
    grammars: dict[str, GrammarKind] = field(
        default_factory=lambda: dict(SOURCE_GRAMMARS)
    )
