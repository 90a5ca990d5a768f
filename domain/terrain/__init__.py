"""Terrain Bounded Context.

Responsible for turning DEM downloads into renderable heightmaps:
- Value Objects: BoundingBox, HeightModel, RawGrid, NormalizedHeightmap
- Services: ASCII grid parsing, bilinear resampling, normalization/rotation,
  banded heightmap build, chunked delivery, DemPipeline
"""
