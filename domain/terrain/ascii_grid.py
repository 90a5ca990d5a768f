"""Terrain Bounded Context - ASCII Grid Parser.

Turns an Esri ASCII grid (AAIGrid) into a RawGrid Value Object.

Wire format:
    ncols         <int>
    nrows         <int>
    xllcorner     <float>      (or xllcenter)
    yllcorner     <float>      (or yllcenter)
    cellsize      <float>
    NODATA_value  <float>      (optional, defaults to -9999)
    <nrows * ncols whitespace-delimited samples, row-major,
     north-to-south, west-to-east>

The header is read as named key/value pairs, so field order, key case and
whitespace layout do not matter. For the canonical header this yields the
same values as reading tokens 1, 3, 5, 7, 9 and 11 with samples from
token 12 on.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from domain.terrain.errors import AllNoDataError, MalformedGridError
from domain.terrain.value_objects import DemMetadata, HeightModel, RawGrid

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Header Keys
# ---------------------------------------------------------------------------
DEFAULT_NODATA_VALUE = -9999.0
HIGH_NODATA_PCT = 80.0  # Log a warning above this share of NoData samples
NODATA_RTOL = 1e-7  # About one float32 ulp

_REQUIRED_KEYS = ("ncols", "nrows", "cellsize")
_X_KEYS = ("xllcorner", "xllcenter")
_Y_KEYS = ("yllcorner", "yllcenter")
_OPTIONAL_KEYS = ("nodata_value",)
_KNOWN_KEYS = frozenset(_REQUIRED_KEYS + _X_KEYS + _Y_KEYS + _OPTIONAL_KEYS)


def tokenize(text: str) -> list[str]:
    """Split grid text on any whitespace (spaces, tabs, CR/LF)."""
    return text.split()


def _is_header_key(token: str) -> bool:
    return token.lower() in _KNOWN_KEYS


def _parse_int(key: str, value: str) -> int:
    try:
        number = float(value)
    except ValueError as e:
        raise MalformedGridError(f"Header field {key!r} is not numeric: {value!r}") from e
    if not number.is_integer():
        raise MalformedGridError(f"Header field {key!r} must be an integer: {value!r}")
    return int(number)


def _parse_float(key: str, value: str) -> float:
    try:
        number = float(value)
    except ValueError as e:
        raise MalformedGridError(f"Header field {key!r} is not numeric: {value!r}") from e
    if not np.isfinite(number):
        raise MalformedGridError(f"Header field {key!r} must be finite: {value!r}")
    return number


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------
def parse_header(tokens: Sequence[str]) -> tuple[DemMetadata, int]:
    """Parse the key/value header at the start of tokens.

    Args:
        tokens: Whitespace-split grid text

    Returns:
        Tuple of (metadata, index of the first sample token)

    Raises:
        MalformedGridError: missing, duplicated or unparseable fields, or
            ncols/nrows/cellsize not strictly positive
    """
    fields: dict[str, str] = {}
    index = 0
    while index < len(tokens) and _is_header_key(tokens[index]):
        key = tokens[index].lower()
        if index + 1 >= len(tokens):
            raise MalformedGridError(f"Header field {key!r} has no value")
        if key in fields:
            raise MalformedGridError(f"Duplicate header field {key!r}")
        fields[key] = tokens[index + 1]
        index += 2

    for key in _REQUIRED_KEYS:
        if key not in fields:
            raise MalformedGridError(f"Missing header field {key!r}")

    x_keys = [k for k in _X_KEYS if k in fields]
    y_keys = [k for k in _Y_KEYS if k in fields]
    if len(x_keys) != 1:
        raise MalformedGridError("Header must define exactly one of xllcorner/xllcenter")
    if len(y_keys) != 1:
        raise MalformedGridError("Header must define exactly one of yllcorner/yllcenter")
    if (x_keys[0] == "xllcenter") != (y_keys[0] == "yllcenter"):
        raise MalformedGridError("Mixed corner/center registration in header")

    ncols = _parse_int("ncols", fields["ncols"])
    nrows = _parse_int("nrows", fields["nrows"])
    cellsize = _parse_float("cellsize", fields["cellsize"])
    if ncols <= 0 or nrows <= 0:
        raise MalformedGridError(
            f"Grid dimensions must be positive: ncols={ncols}, nrows={nrows}"
        )
    if cellsize <= 0:
        raise MalformedGridError(f"cellsize must be positive: {cellsize}")

    nodata = (
        _parse_float("nodata_value", fields["nodata_value"])
        if "nodata_value" in fields
        else DEFAULT_NODATA_VALUE
    )

    metadata = DemMetadata(
        ncols=ncols,
        nrows=nrows,
        xllcorner=_parse_float(x_keys[0], fields[x_keys[0]]),
        yllcorner=_parse_float(y_keys[0], fields[y_keys[0]]),
        cellsize=cellsize,
        nodata_value=nodata,
        corner_is_center=x_keys[0] == "xllcenter",
    )
    return metadata, index


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------
def parse_samples(tokens: Sequence[str], metadata: DemMetadata) -> np.ndarray:
    """Read exactly nrows * ncols sample tokens into a 2D float64 array.

    Raises:
        MalformedGridError: token count differs from nrows * ncols, or a
            token is not a finite number
    """
    expected = metadata.sample_count
    if len(tokens) < expected:
        raise MalformedGridError(
            f"Truncated grid: expected {expected} samples, got {len(tokens)}"
        )
    if len(tokens) > expected:
        raise MalformedGridError(
            f"Trailing data: expected {expected} samples, got {len(tokens)}"
        )
    try:
        values = np.asarray(tokens, dtype=np.float64)
    except ValueError as e:
        raise MalformedGridError(f"Non-numeric elevation sample: {e}") from e
    if not np.isfinite(values).all():
        raise MalformedGridError("Elevation samples must be finite")
    return values.reshape(metadata.nrows, metadata.ncols)


def fill_nodata(data: np.ndarray, nodata_value: float) -> tuple[np.ndarray, int]:
    """Replace NoData samples with the lowest valid elevation.

    Samples match the header value at single precision, so a sentinel
    written with float32 rounding (``-3.4028235e+38`` against a header of
    ``-3.4028234663852886e+38``) is still recognised.

    Returns:
        Tuple of (filled copy, or data itself when nothing was filled,
        number of NoData samples)

    Raises:
        AllNoDataError: every sample is NoData
    """
    mask = np.isclose(data, nodata_value, rtol=NODATA_RTOL, atol=0.0)
    count = int(mask.sum())
    if count == 0:
        return data, 0
    if count == data.size:
        raise AllNoDataError("Grid contains 100% NoData samples - unusable")
    filled = np.where(mask, data[~mask].min(), data)
    return filled, count


def parse_ascii_grid(
    source: str | Sequence[str], height_model: HeightModel
) -> RawGrid:
    """Parse an ASCII grid into a RawGrid.

    Args:
        source: Grid text, or its already-split tokens
        height_model: DEM product the grid was fetched from; determines
            the nominal cell size in metres

    Returns:
        RawGrid with nrows x ncols float64 samples

    Raises:
        MalformedGridError: empty input, bad header, or sample count mismatch
        AllNoDataError: every sample is NoData

    Example:
        >>> grid = parse_ascii_grid(text, HeightModel.SRTMGL3)
        >>> grid.data.shape == (grid.nrows, grid.ncols)
        True
    """
    tokens = tokenize(source) if isinstance(source, str) else list(source)
    if not tokens:
        raise MalformedGridError("Empty grid")

    metadata, start = parse_header(tokens)
    data = parse_samples(tokens[start:], metadata)
    data, nodata_count = fill_nodata(data, metadata.nodata_value)

    if nodata_count:
        nodata_pct = 100.0 * nodata_count / data.size
        if nodata_pct > HIGH_NODATA_PCT:
            logger.warning("ASCII grid: %.1f%% NoData samples detected", nodata_pct)
        else:
            logger.debug("ASCII grid: filled %d NoData samples", nodata_count)

    grid = RawGrid(
        data=data,
        metadata=metadata,
        height_model=height_model,
        nodata_count=nodata_count,
    )
    logger.debug(
        "ASCII grid: parsed %dx%d samples (%s, %d m cells)",
        metadata.ncols,
        metadata.nrows,
        height_model.value,
        grid.cell_size_m,
    )
    return grid
