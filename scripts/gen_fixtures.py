#!/usr/bin/env python3
"""Generate synthetic ASCII grid fixtures for the terrain tests.

Valid grids are written through GDAL's AAIGrid driver (via rasterio), so the
parser is tested against the same layout the OpenTopography API produces.
Malformed grids are derived by editing generated text, since GDAL refuses to
write them. Fixtures are tiny synthetic rasters - not real terrain data.

Usage:
    python scripts/gen_fixtures.py

Requirements:
    pip install rasterio affine numpy

Output:
    tests/fixtures/*.asc

Dependencies:
    This script imports from shared/fixtures_expected.py, never from tests/.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import rasterio
from affine import Affine
from numpy.typing import NDArray

from shared.fixtures_expected import EXPECTED_FIXTURE_COUNT, EXPECTED_FIXTURES

# Output directory
FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"

# =============================================================================
# Standard Grid Configuration
# =============================================================================
# All fixtures sit in the Bernese Alps with 3 arc-second cells (SRTMGL3
# spacing), lower-left corner at 46.0 N, 8.0 E.
LL_LON, LL_LAT = 8.0, 46.0
CELLSIZE = 3.0 / 3600.0
NODATA = -9999.0


def ensure_dir() -> None:
    """Ensure fixtures directory exists."""
    FIXTURES_DIR.mkdir(parents=True, exist_ok=True)
    print(f"Output directory: {FIXTURES_DIR}")


# =============================================================================
# Helper: write_grid
# =============================================================================
def write_grid(path: Path, data: NDArray[Any], nodata: float | None = NODATA) -> None:
    """Write a single-band ASCII grid using rasterio's AAIGrid driver.

    Side files GDAL may emit (.prj, .aux.xml) are removed so only the .asc
    remains.
    """
    height, width = data.shape
    top = LL_LAT + height * CELLSIZE
    transform = Affine.translation(LL_LON, top) * Affine.scale(CELLSIZE, -CELLSIZE)

    kwargs: dict[str, Any] = {
        "driver": "AAIGrid",
        "height": height,
        "width": width,
        "count": 1,
        "dtype": "float32",
        "transform": transform,
    }
    if nodata is not None:
        kwargs["nodata"] = nodata

    with rasterio.open(path, "w", **kwargs) as dst:
        dst.write(data.astype(np.float32), 1)

    for side in (path.with_suffix(".prj"), Path(f"{path}.aux.xml")):
        side.unlink(missing_ok=True)


def write_text(path: Path, text: str) -> None:
    path.write_text(text, encoding="ascii")


# =============================================================================
# Valid grids
# =============================================================================
def gen_dem_4x3_known_values() -> None:
    """4 columns x 3 rows; row r, col c holds 100 * (r + 1) + 10 * c."""
    path = FIXTURES_DIR / "dem_4x3_known_values.asc"
    rows, cols = np.indices((3, 4))
    write_grid(path, 100.0 * (rows + 1) + 10.0 * cols)
    print(f"  Created: {path.name} (4x3)")


def gen_dem_5x5_ramp() -> None:
    """5 x 5; row r, col c holds 1000 + 100 * r + 10 * c."""
    path = FIXTURES_DIR / "dem_5x5_ramp.asc"
    rows, cols = np.indices((5, 5))
    write_grid(path, 1000.0 + 100.0 * rows + 10.0 * cols)
    print(f"  Created: {path.name} (5x5)")


def gen_dem_flat() -> None:
    """3 x 3 grid at a constant 1500 m."""
    path = FIXTURES_DIR / "dem_flat.asc"
    write_grid(path, np.full((3, 3), 1500.0))
    print(f"  Created: {path.name} (3x3, flat)")


def gen_dem_with_nodata() -> None:
    """4 x 4 ramp 500..650 m with two NoData voids."""
    path = FIXTURES_DIR / "dem_with_nodata.asc"
    data = np.arange(500.0, 660.0, 10.0).reshape(4, 4)
    data[0, 1] = NODATA
    data[3, 2] = NODATA
    write_grid(path, data)
    print(f"  Created: {path.name} (4x4, 2 NoData)")


def gen_dem_all_nodata() -> None:
    """2 x 2 grid where every sample is NoData."""
    path = FIXTURES_DIR / "dem_all_nodata.asc"
    write_grid(path, np.full((2, 2), NODATA))
    print(f"  Created: {path.name} (2x2, all NoData)")


# =============================================================================
# Header variants (written as text - GDAL always emits the canonical header)
# =============================================================================
def gen_dem_header_reordered() -> None:
    path = FIXTURES_DIR / "dem_header_reordered.asc"
    write_text(
        path,
        "CELLSIZE 0.000833333333\n"
        "NRows 2\n"
        "xllcorner 8.0\n"
        "NCOLS 3\n"
        "YllCorner 46.0\n"
        "nodata_value -9999\n"
        "1 2 3\n"
        "4 5 6\n",
    )
    print(f"  Created: {path.name} (3x2, reordered header)")


def gen_dem_xllcenter() -> None:
    path = FIXTURES_DIR / "dem_xllcenter.asc"
    write_text(
        path,
        "ncols 2\n"
        "nrows 2\n"
        "xllcenter 8.000416666667\n"
        "yllcenter 46.000416666667\n"
        "cellsize 0.000833333333\n"
        "10 20\n"
        "30 40\n",
    )
    print(f"  Created: {path.name} (2x2, cell-centre registration)")


# =============================================================================
# Malformed grids
# =============================================================================
def gen_dem_truncated() -> None:
    """3 x 3 header followed by only 7 samples."""
    path = FIXTURES_DIR / "dem_truncated.asc"
    write_text(
        path,
        "ncols 3\n"
        "nrows 3\n"
        "xllcorner 8.0\n"
        "yllcorner 46.0\n"
        "cellsize 0.000833333333\n"
        "NODATA_value -9999\n"
        "1 2 3\n"
        "4 5 6\n"
        "7\n",
    )
    print(f"  Created: {path.name} (3x3 header, 7 samples)")


def gen_dem_missing_cellsize() -> None:
    path = FIXTURES_DIR / "dem_missing_cellsize.asc"
    write_text(
        path,
        "ncols 2\n"
        "nrows 2\n"
        "xllcorner 8.0\n"
        "yllcorner 46.0\n"
        "NODATA_value -9999\n"
        "1 2\n"
        "3 4\n",
    )
    print(f"  Created: {path.name} (no cellsize)")


def gen_empty() -> None:
    path = FIXTURES_DIR / "empty.asc"
    path.write_bytes(b"")
    print(f"  Created: {path.name} (0 bytes)")


# =============================================================================
# Main
# =============================================================================
def main() -> int:
    """Generate all fixtures.

    Returns:
        0 on success, 1 on failure
    """
    print("=" * 60)
    print("Generating ASCII Grid Test Fixtures")
    print("=" * 60)

    try:
        ensure_dir()
    except OSError as e:
        print(f"ERROR: Cannot create fixtures directory: {e}")
        return 1
    print()

    print("Valid grids")
    gen_dem_4x3_known_values()
    gen_dem_5x5_ramp()
    gen_dem_flat()
    gen_dem_with_nodata()
    gen_dem_all_nodata()

    print("\nHeader variants")
    gen_dem_header_reordered()
    gen_dem_xllcenter()

    print("\nMalformed grids")
    gen_dem_truncated()
    gen_dem_missing_cellsize()
    gen_empty()

    # Verify generated fixtures match expected list exactly
    found_set = {
        f.name for f in FIXTURES_DIR.iterdir() if f.is_file() and f.suffix == ".asc"
    }
    expected_set = set(EXPECTED_FIXTURES)

    if found_set != expected_set:
        print("ERROR: Fixture filenames do not match expected list!")
        if expected_set - found_set:
            print(f"  Missing: {sorted(expected_set - found_set)}")
        if found_set - expected_set:
            print(f"  Extra: {sorted(found_set - expected_set)}")
        print("\nUpdate shared/fixtures_expected.py to match generated fixtures.")
        return 1

    print(f"\nAll {EXPECTED_FIXTURE_COUNT} fixtures verified successfully.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
