"""Module records and the positional summaries derived from module text.

ModuleRecord is what the graph stores. ModuleOutline and HighlightSet are
computed on demand for open views and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


@dataclass(frozen=True)
class ModuleRecord:
    """Structural summary of one module, keyed by canonical absolute path.

    imports never contains path itself and holds only resolved targets.
    """

    path: str
    has_boundary_directive: bool
    imports: frozenset[str] = frozenset()

    def without_import(self, target: str) -> ModuleRecord:
        """Copy of this record with one import edge dropped."""
        return ModuleRecord(
            path=self.path,
            has_boundary_directive=self.has_boundary_directive,
            imports=self.imports - {target},
        )


@dataclass(frozen=True, order=True)
class SourceRange:
    """Half-open character range [start, end) into the module text."""

    start: int
    end: int


@dataclass(frozen=True)
class ComponentDefinition:
    """A top-level, capitalized, function-valued declaration."""

    name: str
    kind: Literal["function", "class", "variable"]
    range: SourceRange  # identifier span


@dataclass(frozen=True)
class TagUsage:
    """A capitalized JSX tag and the import specifier its name is bound to."""

    name: str
    specifier: str | None
    opening: SourceRange
    closing: SourceRange | None = None  # None for self-closing tags


@dataclass
class ModuleOutline:
    """Definitions and tag usages found in one module text."""

    definitions: list[ComponentDefinition] = field(default_factory=list)
    usages: list[TagUsage] = field(default_factory=list)


@dataclass
class HighlightSet:
    """Ranges an editor view should highlight, split by origin."""

    definitions: list[SourceRange] = field(default_factory=list)
    usages: list[SourceRange] = field(default_factory=list)

    @property
    def ranges(self) -> list[SourceRange]:
        """All ranges, ordered by start offset."""
        return sorted(self.definitions + self.usages)

    def __len__(self) -> int:
        return len(self.definitions) + len(self.usages)
