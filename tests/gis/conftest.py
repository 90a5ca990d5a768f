"""Pytest configuration for infrastructure (file and HTTP adapter) tests.

This conftest is for tests/gis/ directory only.

Note on rasterio:
- rasterio is a test-only dependency (``pip install -e .[test]``)
- test_fixtures_sanity.py uses it to cross-check the domain parser against
  GDAL's AAIGrid driver and skips those checks when it is missing
"""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path

import pytest

logger = logging.getLogger(__name__)

__all__ = ["get_fixtures_dir", "has_real_rasterio"]


def get_fixtures_dir() -> Path:
    """Return path to the ASCII grid fixtures directory."""
    return Path(__file__).parent.parent / "fixtures"


def has_real_rasterio() -> bool:
    """Return True if rasterio (with its GDAL bindings) is importable."""
    if importlib.util.find_spec("rasterio") is None:
        logger.debug("has_real_rasterio(): rasterio not installed")
        return False
    try:
        import rasterio

        return hasattr(rasterio, "__gdal_version__")
    except ImportError as e:
        logger.debug("has_real_rasterio() check failed: %s", e)
        return False


@pytest.fixture
def grid_dir(tmp_path: Path) -> Path:
    """Empty cache directory for AsciiGridFileAdapter tests."""
    directory = tmp_path / "dem-cache"
    directory.mkdir()
    return directory
