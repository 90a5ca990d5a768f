"""Terrain Bounded Context - Value Objects.

Immutable data structures for the DEM pipeline: the request extent, the
parsed ASCII grid and the normalized heightmap handed to the renderer.
All validation occurs at construction time via Pydantic; arrays are copied
into owned, read-only buffers so a Value Object never changes under its
consumer.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.geodesy.value_objects import GeoPoint

# ---------------------------------------------------------------------------
# Numeric Constants
# ---------------------------------------------------------------------------
# Tolerance for the [0, 1] range check of normalized heightmaps
NORMALIZED_TOLERANCE = 1e-9


def _freeze(array: NDArray, dtype: type = np.float64) -> NDArray:
    """Owned, C-contiguous, read-only copy of array."""
    frozen = np.array(array, dtype=dtype, copy=True, order="C")
    frozen.flags.writeable = False
    return frozen


# ---------------------------------------------------------------------------
# Height Models
# ---------------------------------------------------------------------------
class HeightModel(str, Enum):
    """Global DEM products served by OpenTopography."""

    SRTMGL3 = "SRTMGL3"  # SRTM GL3, ~90 m
    SRTMGL1 = "SRTMGL1"  # SRTM GL1, ~30 m

    @property
    def api_reference(self) -> str:
        """Value of the ``demtype`` query parameter."""
        return self.value

    @property
    def cell_size_m(self) -> int:
        """Nominal grid cell size in metres."""
        return _CELL_SIZES_M[self]


_CELL_SIZES_M: dict[HeightModel, int] = {
    HeightModel.SRTMGL3: 90,
    HeightModel.SRTMGL1: 30,
}


# ---------------------------------------------------------------------------
# BoundingBox
# ---------------------------------------------------------------------------
class BoundingBox(BaseModel):
    """Geographic extent in decimal degrees (Value Object).

    Invariants are enforced at construction time - invalid BoundingBox
    cannot be instantiated.
    """

    south: float  # Southern boundary (latitude)
    north: float  # Northern boundary (latitude)
    west: float  # Western boundary (longitude)
    east: float  # Eastern boundary (longitude)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_bounds(self) -> "BoundingBox":
        # Latitude range
        if not (-90 <= self.south <= 90):
            raise ValueError(f"south latitude out of range: {self.south}")
        if not (-90 <= self.north <= 90):
            raise ValueError(f"north latitude out of range: {self.north}")
        # Longitude range
        if not (-180 <= self.west <= 180):
            raise ValueError(f"west longitude out of range: {self.west}")
        if not (-180 <= self.east <= 180):
            raise ValueError(f"east longitude out of range: {self.east}")
        # Ordering
        if not (self.south < self.north):
            raise ValueError(
                f"Invalid latitude ordering: south={self.south} >= north={self.north}"
            )
        if not (self.west < self.east):
            raise ValueError(
                f"Invalid longitude ordering: west={self.west} >= east={self.east}"
            )
        return self

    def contains(self, point: GeoPoint) -> bool:
        """Check if point is within bounds (inclusive)."""
        return (
            self.south <= point.latitude <= self.north
            and self.west <= point.longitude <= self.east
        )

    def center(self) -> GeoPoint:
        """Midpoint of the extent at altitude 0."""
        return GeoPoint(
            latitude=(self.south + self.north) / 2,
            longitude=(self.west + self.east) / 2,
        )


# ---------------------------------------------------------------------------
# DemMetadata
# ---------------------------------------------------------------------------
class DemMetadata(BaseModel):
    """Header of an ASCII grid (Value Object).

    Invariants:
        ncols > 0, nrows > 0, cellsize > 0
    """

    ncols: int = Field(gt=0)
    nrows: int = Field(gt=0)
    xllcorner: float  # Lower-left x (longitude of the corner or cell centre)
    yllcorner: float  # Lower-left y (latitude of the corner or cell centre)
    cellsize: float = Field(gt=0)  # Cell size in grid units (degrees)
    nodata_value: float = -9999.0
    corner_is_center: bool = False  # Header used xllcenter/yllcenter

    model_config = ConfigDict(frozen=True)

    @property
    def sample_count(self) -> int:
        return self.nrows * self.ncols


# ---------------------------------------------------------------------------
# RawGrid
# ---------------------------------------------------------------------------
class RawGrid(BaseModel):
    """Parsed elevation samples, nrows x ncols, row-major north-to-south.

    The data array is read-only; ``aspect_scaling_factor`` and
    ``cell_size_m`` are derived from the header and the height model.
    """

    data: NDArray[np.float64]
    metadata: DemMetadata
    height_model: HeightModel
    nodata_count: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_grid(self) -> "RawGrid":
        if self.data.ndim != 2:
            raise ValueError(f"Data must be 2D, got {self.data.ndim}D")
        expected = (self.metadata.nrows, self.metadata.ncols)
        if self.data.shape != expected:
            raise ValueError(
                f"Data shape {self.data.shape} does not match header {expected}"
            )
        if not np.isfinite(self.data).all():
            raise ValueError("Elevation samples must be finite")
        object.__setattr__(self, "data", _freeze(self.data))
        return self

    @property
    def nrows(self) -> int:
        return self.metadata.nrows

    @property
    def ncols(self) -> int:
        return self.metadata.ncols

    @property
    def aspect_scaling_factor(self) -> float:
        """Column scaling for a square terrain: 1 / (ncols / nrows)."""
        desired_aspect_ratio = 1.0
        return desired_aspect_ratio / (self.ncols / self.nrows)

    @property
    def cell_size_m(self) -> int:
        return self.height_model.cell_size_m

    @property
    def physical_size_m(self) -> float:
        """Side length of the square footprint after aspect correction."""
        return float(self.nrows * self.cell_size_m)


# ---------------------------------------------------------------------------
# NormalizedHeightmap
# ---------------------------------------------------------------------------
class NormalizedHeightmap(BaseModel):
    """Square heightmap in [0, 1] with the data needed to de-normalize it.

    Invariants:
        heights is square and 2D
        all values in [0, 1]
        min_height <= max_height
        physical_size_m > 0
    """

    heights: NDArray[np.float64]
    min_height: float
    max_height: float
    physical_size_m: float = Field(gt=0)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_heightmap(self) -> "NormalizedHeightmap":
        if self.heights.ndim != 2:
            raise ValueError(f"Heights must be 2D, got {self.heights.ndim}D")
        rows, cols = self.heights.shape
        if rows != cols or rows == 0:
            raise ValueError(f"Heightmap must be square and non-empty: {self.heights.shape}")
        if self.min_height > self.max_height:
            raise ValueError(
                f"min_height ({self.min_height}) > max_height ({self.max_height})"
            )
        if not np.isfinite(self.heights).all():
            raise ValueError("Heights must be finite")
        if (
            self.heights.min() < -NORMALIZED_TOLERANCE
            or self.heights.max() > 1.0 + NORMALIZED_TOLERANCE
        ):
            raise ValueError("Normalized heights must lie in [0, 1]")
        object.__setattr__(self, "heights", _freeze(self.heights))
        return self

    @property
    def resolution(self) -> int:
        return int(self.heights.shape[0])

    @property
    def height_range(self) -> float:
        """Vertical extent in metres (terrain size along the up axis)."""
        return self.max_height - self.min_height

    def to_elevations(self) -> NDArray[np.float64]:
        """Reconstruct absolute elevations in metres (new writable array)."""
        return self.heights * self.height_range + self.min_height

    def elevation_at(self, row: int, col: int) -> float:
        """Absolute elevation in metres of a single heightmap sample."""
        return float(self.heights[row, col] * self.height_range + self.min_height)


# ---------------------------------------------------------------------------
# Chunked delivery
# ---------------------------------------------------------------------------
class HeightmapChunk(BaseModel):
    """Rectangular sub-buffer of a heightmap, positioned by its offsets.

    ``x_offset`` is the first column and ``y_offset`` the first row of the
    chunk inside the destination buffer.
    """

    x_offset: int = Field(ge=0)
    y_offset: int = Field(ge=0)
    heights: NDArray[np.float64]

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_chunk(self) -> "HeightmapChunk":
        if self.heights.ndim != 2 or 0 in self.heights.shape:
            raise ValueError(f"Chunk must be a non-empty 2D array: {self.heights.shape}")
        object.__setattr__(self, "heights", _freeze(self.heights))
        return self

    @property
    def width(self) -> int:
        return int(self.heights.shape[1])

    @property
    def height(self) -> int:
        return int(self.heights.shape[0])


class ChunkProgress(BaseModel):
    """Progress report emitted after each applied chunk."""

    completed: int = Field(ge=0)
    total: int = Field(gt=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_progress(self) -> "ChunkProgress":
        if self.completed > self.total:
            raise ValueError(f"completed ({self.completed}) > total ({self.total})")
        return self

    @property
    def fraction(self) -> float:
        return self.completed / self.total

    @property
    def done(self) -> bool:
        return self.completed == self.total


class BuildProgress(ChunkProgress):
    """Progress report emitted between row bands while a heightmap is built.

    ``completed``/``total`` count band steps over both stages: every band is
    resampled once and then normalized and rotated once.
    """

    stage: Literal["resample", "normalize"]
