"""Domain Port(s) for DEM I/O.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from typing import Protocol

from .value_objects import BoundingBox, HeightModel


class DemRepository(Protocol):
    """Port for obtaining ASCII grid text for a geographic extent.

    Implementations live in infrastructure (OpenTopography API, local
    files). A failed fetch may be reported by raising FetchFailure or by
    returning None/empty text; the pipeline treats both as terminal.
    """

    def fetch_ascii_grid(
        self, bounds: BoundingBox, height_model: HeightModel
    ) -> str | None:
        """Return the ASCII grid covering bounds, or None on failure."""
        ...
