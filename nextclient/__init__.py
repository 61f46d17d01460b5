"""Next.js client boundary analysis for editor highlighting."""

from nextclient.config import AnalyzerSettings
from nextclient.workspace.coordinator import BoundaryAnalyzer

__all__ = ["AnalyzerSettings", "BoundaryAnalyzer"]
