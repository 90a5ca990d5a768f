"""Glacier AR Terrain Domain Layer.

This package contains the core logic organized by bounded contexts:
- geodesy: WGS84/ECEF/ENU transforms, headings, scene placement
- terrain: ASCII grid parsing, heightmap resampling, normalization, delivery
"""

# Imports alphabetized per project style (isort)
from domain import geodesy, terrain

__all__ = ["geodesy", "terrain"]
