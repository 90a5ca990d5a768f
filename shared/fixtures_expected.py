"""Single source of truth for expected ASCII grid test fixtures.

This module defines the list of expected fixture filenames used by both:
- scripts/gen_fixtures.py (generation verification)
- tests/gis/test_fixtures_sanity.py (existence verification)

Location: shared/ (not tests/); scripts must not import from tests.

When adding/removing fixtures, update ONLY this list.
"""

from __future__ import annotations

# Sorted alphabetically for deterministic comparison.
EXPECTED_FIXTURES: list[str] = sorted(
    [
        "dem_4x3_known_values.asc",  # Non-square grid with known samples
        "dem_5x5_ramp.asc",  # Square west-to-east ramp (identity resampling)
        "dem_all_nodata.asc",  # Every sample is NoData
        "dem_flat.asc",  # Degenerate (flat) elevation range
        "dem_header_reordered.asc",  # Mixed-case keys in non-canonical order
        "dem_missing_cellsize.asc",  # Header without cellsize
        "dem_truncated.asc",  # Fewer samples than nrows * ncols
        "dem_with_nodata.asc",  # A few NoData voids
        "dem_xllcenter.asc",  # Cell-centre registration
        "empty.asc",  # Zero-byte file
    ]
)

# Count derived from list for verification
EXPECTED_FIXTURE_COUNT: int = len(EXPECTED_FIXTURES)
