"""Terrain Bounded Context - Heightmap Normalization and Rotation.

Converts resampled elevations (metres) into the [0, 1] range a terrain
consumer expects and rotates the buffer 90 degrees counter-clockwise to
match the consumer's axis convention.

The rotation is an explicit index transform on the buffer,

    out[W - 1 - j, i] = src[i, j]

so it can be tested in isolation; applying it four times is the identity.
"""

from __future__ import annotations

import logging
import warnings

import numpy as np
from numpy.typing import NDArray

from domain.terrain.errors import DegenerateRangeWarning
from domain.terrain.value_objects import NormalizedHeightmap

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Range
# ---------------------------------------------------------------------------
def height_range(data: NDArray) -> tuple[float, float]:
    """Return (min_height, max_height) over all samples."""
    if data.size == 0:
        raise ValueError("Cannot compute the range of an empty grid")
    return float(np.min(data)), float(np.max(data))


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------
def warn_flat_range(min_height: float, stacklevel: int = 2) -> None:
    """Report a flat elevation range (max == min) as warning and log record."""
    warnings.warn(
        f"Flat elevation range ({min_height} m); heightmap set to 0",
        DegenerateRangeWarning,
        stacklevel=stacklevel + 1,
    )
    logger.warning("Flat elevation range (%.3f m); heightmap set to 0", min_height)


def normalize_heights(
    data: NDArray, min_height: float, max_height: float
) -> NDArray[np.float64]:
    """Map [min_height, max_height] linearly onto [0, 1].

    A flat range (max_height == min_height) yields an all-zero buffer and a
    DegenerateRangeWarning instead of a division by zero.
    """
    if max_height == min_height:
        warn_flat_range(min_height)
        return np.zeros(data.shape, dtype=np.float64)

    normalized = (np.asarray(data, dtype=np.float64) - min_height) / (
        max_height - min_height
    )
    # Rounding can leave values a few ulps outside [0, 1]
    return np.clip(normalized, 0.0, 1.0)


# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------
def rotation_index(row: int, col: int, width: int) -> tuple[int, int]:
    """Destination (row, col) of source cell (row, col) after one CCW turn."""
    return width - 1 - col, row


def rotate_ccw(buffer: NDArray) -> NDArray:
    """Rotate a 2D buffer 90 degrees counter-clockwise into a new buffer.

    An H x W source becomes a W x H destination.
    """
    if buffer.ndim != 2:
        raise ValueError(f"Buffer must be 2D, got {buffer.ndim}D")
    height, width = buffer.shape
    rows, cols = np.indices((height, width))
    dst_rows, dst_cols = rotation_index(rows, cols, width)

    rotated = np.empty((width, height), dtype=buffer.dtype)
    rotated[dst_rows, dst_cols] = buffer
    return rotated


# ---------------------------------------------------------------------------
# Heightmap
# ---------------------------------------------------------------------------
def normalize_and_rotate(
    resampled: NDArray, physical_size_m: float
) -> NormalizedHeightmap:
    """Build the NormalizedHeightmap handed to the terrain consumer.

    Args:
        resampled: Square R x R elevation grid in metres
        physical_size_m: Side length of the terrain footprint in metres

    Returns:
        NormalizedHeightmap with the range needed to de-normalize it
    """
    min_height, max_height = height_range(resampled)
    normalized = normalize_heights(resampled, min_height, max_height)
    heightmap = NormalizedHeightmap(
        heights=rotate_ccw(normalized),
        min_height=min_height,
        max_height=max_height,
        physical_size_m=physical_size_m,
    )
    logger.debug(
        "Heightmap: %dx%d, range %.1f-%.1f m, footprint %.0f m",
        heightmap.resolution,
        heightmap.resolution,
        min_height,
        max_height,
        physical_size_m,
    )
    return heightmap
