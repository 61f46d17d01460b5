"""Data models for module graph analysis."""

from nextclient.models.module import (
    ComponentDefinition,
    HighlightSet,
    ModuleOutline,
    ModuleRecord,
    SourceRange,
    TagUsage,
)
from nextclient.models.types import ChangeKind, GrammarKind

__all__ = [
    "ChangeKind",
    "ComponentDefinition",
    "GrammarKind",
    "HighlightSet",
    "ModuleOutline",
    "ModuleRecord",
    "SourceRange",
    "TagUsage",
]
