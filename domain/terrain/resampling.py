"""Terrain Bounded Context - Heightmap Resampling.

Bilinear resampling of a (generally non-square) elevation grid onto the
square R x R lattice expected by terrain engines (R = 2^n + 1).

Destination cell (row r, col c) maps to the continuous source position

    x = c / (R - 1) * (W - 1)        (column, west-to-east)
    y = r / (R - 1) * (H - 1)        (row, north-to-south)

and interpolates between the floor/ceil neighbours, with the ceil index
clamped at the last valid column/row. Orientation is preserved, so
resampling a square grid to its own size is the identity.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

# Maximum heightmap resolution of common terrain engines
DEFAULT_HEIGHTMAP_RESOLUTION = 4097


def _axis_weights(
    resolution: int, source_length: int
) -> tuple[NDArray[np.intp], NDArray[np.intp], NDArray[np.float64]]:
    """Floor index, clamped ceil index and fractional weight along one axis."""
    positions = np.arange(resolution, dtype=np.float64) / (resolution - 1)
    positions *= source_length - 1
    lower = np.floor(positions).astype(np.intp)
    upper = np.minimum(lower + 1, source_length - 1)
    weight = positions - lower
    return lower, upper, weight


def _check(data: NDArray, resolution: int) -> None:
    if data.ndim != 2 or 0 in data.shape:
        raise ValueError(f"Source grid must be a non-empty 2D array: {data.shape}")
    if resolution < 2:
        raise ValueError(f"resolution must be >= 2, got {resolution}")


def resample_rows(
    data: NDArray, resolution: int, start: int, stop: int
) -> NDArray[np.float64]:
    """Resample destination rows [start, stop) of an R x R bilinear resampling.

    Splitting the O(R^2) work into bands lets a caller interleave other work
    between bands; concatenating all bands equals resample_bilinear().

    Args:
        data: Source grid (H x W)
        resolution: Destination size R
        start: First destination row (inclusive)
        stop: Last destination row (exclusive)

    Returns:
        (stop - start) x R float64 array
    """
    _check(data, resolution)
    if not (0 <= start <= stop <= resolution):
        raise ValueError(f"Invalid row band [{start}, {stop}) for resolution {resolution}")

    source = np.asarray(data, dtype=np.float64)
    height, width = source.shape

    x0, x1, xw = _axis_weights(resolution, width)
    y0, y1, yw = _axis_weights(resolution, height)
    y0, y1, yw = y0[start:stop], y1[start:stop], yw[start:stop, np.newaxis]

    top_left = source[np.ix_(y0, x0)]
    top_right = source[np.ix_(y0, x1)]
    bottom_left = source[np.ix_(y1, x0)]
    bottom_right = source[np.ix_(y1, x1)]

    top = top_left * (1 - xw) + top_right * xw
    bottom = bottom_left * (1 - xw) + bottom_right * xw
    return top * (1 - yw) + bottom * yw


def resample_bilinear(
    data: NDArray, resolution: int = DEFAULT_HEIGHTMAP_RESOLUTION
) -> NDArray[np.float64]:
    """Resample a 2D grid to resolution x resolution with bilinear weights.

    Args:
        data: Source grid (H x W), any real dtype
        resolution: Destination size R (>= 2)

    Returns:
        New R x R float64 array

    Raises:
        ValueError: data is not a non-empty 2D array, or resolution < 2
    """
    return resample_rows(data, resolution, 0, resolution)
