"""Core enums: grammar selection and workspace change kinds."""

from __future__ import annotations

from enum import Enum


class GrammarKind(Enum):
    """Which tree-sitter-typescript grammar parses a file.

    TSX accepts JSX but rejects angle-bracket type assertions, so plain
    .ts files keep the TYPESCRIPT grammar.
    """

    TYPESCRIPT = "typescript"
    TSX = "tsx"


class ChangeKind(Enum):
    """Change notifications delivered by the editor or file system."""

    CONTENT_CHANGED = "content_changed"  # live buffer edit, debounced
    CREATED = "created"
    CHANGED_ON_DISK = "changed_on_disk"  # e.g. git checkout, external editor
    DELETED = "deleted"
