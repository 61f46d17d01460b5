"""Shared fixtures: throwaway Next.js style workspaces."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from nextclient.boundary.resolver import canonical_path

WriteFiles = Callable[[dict[str, str]], dict[str, str]]


@pytest.fixture
def write_files(tmp_path: Path) -> WriteFiles:
    """Write {relative path: content} under tmp_path.

    Returns a mapping of relative path -> canonical module path.
    """

    def _write(files: dict[str, str]) -> dict[str, str]:
        paths: dict[str, str] = {}
        for relative, content in files.items():
            target = tmp_path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
            paths[relative] = canonical_path(target)
        return paths

    return _write


@pytest.fixture
def module_path(tmp_path: Path) -> Callable[[str], str]:
    """Canonical module path for a workspace-relative name."""

    def _path(relative: str) -> str:
        return canonical_path(tmp_path / relative)

    return _path
