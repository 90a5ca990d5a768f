"""Infrastructure adapters for the terrain bounded context.

This module provides the infrastructure layer implementations of the
DemRepository port: the OpenTopography HTTP client and the local ASCII grid
file adapter.
"""

from .ascii_grid_adapter import AsciiGridFileAdapter
from .opentopography_adapter import OpenTopographyDemAdapter

__all__ = ["AsciiGridFileAdapter", "OpenTopographyDemAdapter"]
