"""Terrain Bounded Context - Error Hierarchy.

Custom exceptions for DEM fetching, parsing and heightmap construction.

Parsing and fetch errors abort the pipeline and reach the caller as typed
failures. A flat elevation range is not an error: it is reported through
DegenerateRangeWarning and resolved locally.
"""

from __future__ import annotations


class TerrainError(Exception):
    """Base error for terrain operations."""


class MalformedGridError(TerrainError):
    """ASCII grid header missing/unparseable, or sample count mismatch."""


class AllNoDataError(MalformedGridError):
    """Grid contains 100% NoData samples - unusable."""


class FetchFailure(TerrainError):
    """DEM download failed or returned an empty payload.

    Attributes:
        status_code: HTTP status if the server answered, else None
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class InsufficientMemoryError(TerrainError):
    """Operation requires more memory than allowed or available."""


class DegenerateRangeWarning(UserWarning):
    """Grid has max_height == min_height; heightmap is flat (all zeros)."""
