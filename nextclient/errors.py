"""Error hierarchy for module graph analysis.

Nothing here is fatal to the host process. Each class documents how the
coordinator recovers, so callers know whether the graph was touched.
"""

from __future__ import annotations


class BoundaryAnalysisError(Exception):
    """Base error for module graph analysis.

    All analyzer-specific errors inherit from this.
    """

    pass


# =============================================================================
# Source Errors
# =============================================================================


class SourceReadError(BoundaryAnalysisError):
    """A source file exists but could not be read.

    Attributes:
        source_path: The file that failed to read
        reason: Human-readable error description

    Recovery: Logged. The module is left absent from the graph, on a full
    scan and on an incremental update alike. A missing file is not an
    error and never raises this.
    """

    def __init__(self, source_path: str, reason: str) -> None:
        self.source_path = source_path
        self.reason = reason
        super().__init__(f"Failed to read {source_path}: {reason}")


# =============================================================================
# Extraction Errors
# =============================================================================


class ExtractionError(BoundaryAnalysisError):
    """Module text could not be parsed into a usable syntax tree.

    Attributes:
        source_path: The module that failed to parse
        reason: Human-readable error description

    Recovery: Local. The previous record for the module is preserved and
    no cache is invalidated. The next edit retries naturally.
    """

    def __init__(self, source_path: str, reason: str) -> None:
        self.source_path = source_path
        self.reason = reason
        super().__init__(f"Failed to extract {source_path}: {reason}")
