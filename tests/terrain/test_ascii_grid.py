"""Tests for the ASCII grid parser.

Grids are built in memory with make_ascii_grid() so these tests stay pure
domain tests; file-based fixtures are covered in tests/gis/.
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from domain.terrain.ascii_grid import (
    fill_nodata,
    parse_ascii_grid,
    parse_header,
    tokenize,
)
from domain.terrain.errors import AllNoDataError, MalformedGridError, TerrainError
from domain.terrain.value_objects import HeightModel
from tests.conftest import make_ascii_grid

KNOWN_VALUES = [
    [100.0, 110.0, 120.0, 130.0],
    [200.0, 210.0, 220.0, 230.0],
    [300.0, 310.0, 320.0, 330.0],
]


# ===========================================================================
# Happy path
# ===========================================================================
def test_parse_known_values_row_major():
    grid = parse_ascii_grid(make_ascii_grid(KNOWN_VALUES), HeightModel.SRTMGL3)

    assert grid.data.shape == (3, 4)
    assert grid.nrows == 3
    assert grid.ncols == 4
    np.testing.assert_array_equal(grid.data, np.array(KNOWN_VALUES))
    assert grid.data.dtype == np.float64


def test_parse_metadata_fields():
    text = make_ascii_grid(KNOWN_VALUES, xllcorner=7.5, yllcorner=46.25, cellsize=0.001)

    grid = parse_ascii_grid(text, HeightModel.SRTMGL1)

    assert grid.metadata.xllcorner == 7.5
    assert grid.metadata.yllcorner == 46.25
    assert grid.metadata.cellsize == 0.001
    assert grid.metadata.nodata_value == -9999.0
    assert grid.metadata.corner_is_center is False


def test_named_header_matches_fixed_positions():
    """Canonical headers put values at tokens 1, 3, ..., 11 and data at 12."""
    tokens = tokenize(make_ascii_grid(KNOWN_VALUES))

    metadata, start = parse_header(tokens)

    assert start == 12
    assert metadata.ncols == int(tokens[1])
    assert metadata.nrows == int(tokens[3])
    assert metadata.xllcorner == float(tokens[5])
    assert metadata.yllcorner == float(tokens[7])
    assert metadata.cellsize == float(tokens[9])
    assert metadata.nodata_value == float(tokens[11])


def test_parse_accepts_token_sequence():
    tokens = tokenize(make_ascii_grid(KNOWN_VALUES))

    grid = parse_ascii_grid(tokens, HeightModel.SRTMGL3)

    assert grid.data[2, 3] == 330.0


def test_parse_tolerates_whitespace_variation():
    text = (
        "ncols\t2\r\nnrows   2\r\n  xllcorner 8.0\r\nyllcorner\t46.0\r\n"
        "cellsize 0.001\r\n\r\n10\t20\r\n   30 40   \r\n"
    )

    grid = parse_ascii_grid(text, HeightModel.SRTMGL3)

    np.testing.assert_array_equal(grid.data, [[10.0, 20.0], [30.0, 40.0]])


def test_parse_header_order_and_case_insensitive():
    text = (
        "CELLSIZE 0.001\nNRows 2\nxllcorner 8.0\nNCOLS 3\nYllCorner 46.0\n"
        "nodata_value -32768\n1 2 3\n4 5 6\n"
    )

    grid = parse_ascii_grid(text, HeightModel.SRTMGL3)

    assert grid.data.shape == (2, 3)
    assert grid.metadata.nodata_value == -32768.0
    np.testing.assert_array_equal(grid.data[1], [4.0, 5.0, 6.0])


def test_parse_without_nodata_uses_default():
    grid = parse_ascii_grid(make_ascii_grid([[1, 2], [3, 4]], nodata_value=None), HeightModel.SRTMGL3)

    assert grid.metadata.nodata_value == -9999.0


def test_parse_cell_center_registration():
    text = (
        "ncols 2\nnrows 2\nxllcenter 8.0005\nyllcenter 46.0005\ncellsize 0.001\n"
        "1 2\n3 4\n"
    )

    grid = parse_ascii_grid(text, HeightModel.SRTMGL3)

    assert grid.metadata.corner_is_center is True
    assert grid.metadata.xllcorner == 8.0005


def test_parse_integer_header_written_as_float():
    text = make_ascii_grid([[1, 2], [3, 4]]).replace("ncols        2", "ncols 2.0")

    grid = parse_ascii_grid(text, HeightModel.SRTMGL3)

    assert grid.ncols == 2


# ===========================================================================
# Derived values
# ===========================================================================
@pytest.mark.parametrize(
    "height_model, cell_size", [(HeightModel.SRTMGL3, 90), (HeightModel.SRTMGL1, 30)]
)
def test_cell_size_follows_height_model(height_model: HeightModel, cell_size: int):
    grid = parse_ascii_grid(make_ascii_grid(KNOWN_VALUES), height_model)

    assert grid.cell_size_m == cell_size
    assert grid.physical_size_m == 3 * cell_size


@pytest.mark.parametrize(
    "shape, expected", [((3, 4), 0.75), ((4, 4), 1.0), ((4, 2), 2.0)]
)
def test_aspect_scaling_factor(shape: tuple[int, int], expected: float):
    grid = parse_ascii_grid(make_ascii_grid(np.ones(shape)), HeightModel.SRTMGL3)

    assert grid.aspect_scaling_factor == pytest.approx(expected)


def test_raw_grid_data_is_read_only():
    grid = parse_ascii_grid(make_ascii_grid(KNOWN_VALUES), HeightModel.SRTMGL3)

    with pytest.raises(ValueError):
        grid.data[0, 0] = 0.0


# ===========================================================================
# Malformed grids
# ===========================================================================
def test_truncated_samples_raise():
    text = make_ascii_grid(KNOWN_VALUES)
    truncated = text.rsplit(" ", 1)[0]  # Drop the final sample

    with pytest.raises(MalformedGridError, match="Truncated grid"):
        parse_ascii_grid(truncated, HeightModel.SRTMGL3)


def test_trailing_samples_raise():
    text = make_ascii_grid(KNOWN_VALUES) + "999\n"

    with pytest.raises(MalformedGridError, match="Trailing data"):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


def test_header_only_raises():
    text = make_ascii_grid(KNOWN_VALUES).split("\n")[:6]

    with pytest.raises(MalformedGridError):
        parse_ascii_grid("\n".join(text), HeightModel.SRTMGL3)


@pytest.mark.parametrize("text", ["", "   \n\t  "])
def test_empty_input_raises(text: str):
    with pytest.raises(MalformedGridError, match="Empty grid"):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


@pytest.mark.parametrize("missing", ["ncols", "nrows", "cellsize"])
def test_missing_required_field_raises(missing: str):
    lines = [
        line
        for line in make_ascii_grid([[1, 2], [3, 4]]).split("\n")
        if not line.startswith(missing)
    ]

    with pytest.raises(MalformedGridError):
        parse_ascii_grid("\n".join(lines), HeightModel.SRTMGL3)


def test_missing_corner_raises():
    text = "ncols 1\nnrows 1\nyllcorner 46.0\ncellsize 0.001\n5\n"

    with pytest.raises(MalformedGridError, match="xllcorner/xllcenter"):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


def test_duplicate_field_raises():
    text = "ncols 1\nncols 1\nnrows 1\nxllcorner 8\nyllcorner 46\ncellsize 0.001\n5\n"

    with pytest.raises(MalformedGridError, match="Duplicate"):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


def test_mixed_corner_and_center_raises():
    text = "ncols 1\nnrows 1\nxllcorner 8\nyllcenter 46\ncellsize 0.001\n5\n"

    with pytest.raises(MalformedGridError, match="Mixed"):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


@pytest.mark.parametrize(
    "field, value",
    [("ncols", "0"), ("nrows", "-3"), ("cellsize", "0"), ("cellsize", "-0.5")],
)
def test_non_positive_dimensions_raise(field: str, value: str):
    fields = {"ncols": "1", "nrows": "1", "cellsize": "0.001"}
    fields[field] = value
    text = (
        f"ncols {fields['ncols']}\nnrows {fields['nrows']}\nxllcorner 8\n"
        f"yllcorner 46\ncellsize {fields['cellsize']}\n5\n"
    )

    with pytest.raises(MalformedGridError, match="positive"):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


@pytest.mark.parametrize("bad", ["abc", "3.5"])
def test_unparseable_or_fractional_ncols_raises(bad: str):
    text = f"ncols {bad}\nnrows 1\nxllcorner 8\nyllcorner 46\ncellsize 0.001\n5\n"

    with pytest.raises(MalformedGridError, match="ncols"):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


def test_non_numeric_sample_raises():
    text = make_ascii_grid([[1, 2], [3, 4]]).replace("4.0", "x4")

    with pytest.raises(MalformedGridError, match="Non-numeric"):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


def test_non_finite_sample_raises():
    text = make_ascii_grid([[1, 2], [3, 4]]).replace("4.0", "nan")

    with pytest.raises(MalformedGridError, match="finite"):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


def test_malformed_grid_is_terrain_error():
    assert issubclass(MalformedGridError, TerrainError)
    assert issubclass(AllNoDataError, MalformedGridError)


# ===========================================================================
# NoData
# ===========================================================================
def test_nodata_filled_with_minimum_valid_elevation():
    text = make_ascii_grid([[500, -9999], [520, 530]])

    grid = parse_ascii_grid(text, HeightModel.SRTMGL3)

    assert grid.nodata_count == 1
    np.testing.assert_array_equal(grid.data, [[500.0, 500.0], [520.0, 530.0]])


def test_all_nodata_raises():
    text = make_ascii_grid([[-9999, -9999], [-9999, -9999]])

    with pytest.raises(AllNoDataError):
        parse_ascii_grid(text, HeightModel.SRTMGL3)


def test_high_nodata_share_logs_warning(caplog: pytest.LogCaptureFixture):
    data = np.full((4, 4), -9999.0)
    data[0, 0] = 1200.0
    data[3, 3] = 1300.0

    with caplog.at_level(logging.WARNING, logger="domain.terrain.ascii_grid"):
        grid = parse_ascii_grid(make_ascii_grid(data), HeightModel.SRTMGL3)

    assert grid.nodata_count == 14
    assert "NoData" in caplog.text


def test_float32_rounded_nodata_sentinel_is_filled():
    text = (
        "ncols 2\nnrows 2\nxllcorner 8.0\nyllcorner 46.0\ncellsize 0.001\n"
        "NODATA_value -3.4028234663852886e+38\n"
        "1200.5 -3.4028235e+38\n"
        "1210.0 1220.0\n"
    )

    grid = parse_ascii_grid(text, HeightModel.SRTMGL3)

    assert grid.nodata_count == 1
    np.testing.assert_array_equal(grid.data, [[1200.5, 1200.5], [1210.0, 1220.0]])


def test_fill_nodata_leaves_nearby_valid_elevations():
    data = np.array([[-9998.9, -9999.0], [12.0, -9999.1]])

    filled, count = fill_nodata(data, -9999.0)

    assert count == 1
    np.testing.assert_array_equal(filled, [[-9998.9, -9999.1], [12.0, -9999.1]])


def test_fill_nodata_without_voids_returns_input():
    data = np.array([[1.0, 2.0], [3.0, 4.0]])

    filled, count = fill_nodata(data, -9999.0)

    assert count == 0
    assert filled is data
