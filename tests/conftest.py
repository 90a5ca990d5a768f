"""Root pytest configuration for all tests.

Provides ASCII grid builders and common GPS fixes so that domain tests can
construct inputs directly, without touching the file system or network.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import numpy as np
import pytest

from domain.geodesy.value_objects import GeoPoint

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def make_ascii_grid(
    data: Sequence[Sequence[float]] | np.ndarray,
    *,
    xllcorner: float = 8.0,
    yllcorner: float = 46.0,
    cellsize: float = 3.0 / 3600.0,
    nodata_value: float | None = -9999.0,
) -> str:
    """Render a 2D array as canonical ASCII grid text."""
    array = np.asarray(data, dtype=np.float64)
    nrows, ncols = array.shape
    lines = [
        f"ncols        {ncols}",
        f"nrows        {nrows}",
        f"xllcorner    {xllcorner!r}",
        f"yllcorner    {yllcorner!r}",
        f"cellsize     {cellsize!r}",
    ]
    if nodata_value is not None:
        lines.append(f"NODATA_value  {nodata_value!r}")
    lines.extend(" ".join(repr(float(v)) for v in row) for row in array)
    return "\n".join(lines) + "\n"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def swiss_reference() -> GeoPoint:
    """Reference point in the Bernese Alps (46.5 N, 8.0 E, sea level)."""
    return GeoPoint(latitude=46.5, longitude=8.0, altitude=0.0, name="reference")
