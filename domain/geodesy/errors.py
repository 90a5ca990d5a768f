"""Geodesy Bounded Context - Error Hierarchy.

The transform functions never raise for out-of-range coordinates; these
errors are only raised by explicit caller-side checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domain.geodesy.value_objects import GeoPoint
    from domain.terrain.value_objects import BoundingBox


class GeodesyError(Exception):
    """Base error for geodesy operations."""


class OutOfRangeGeodeticInput(GeodesyError):
    """Latitude or longitude outside the WGS84 range.

    Attributes:
        point: The offending GeoPoint
    """

    def __init__(self, point: "GeoPoint") -> None:
        self.point = point
        super().__init__(
            f"Point ({point.latitude:.6f}, {point.longitude:.6f}) outside WGS84 "
            "range [lat: -90 to 90, lon: -180 to 180]"
        )


class OutOfReachError(GeodesyError):
    """GPS fix is not inside the bounding box of the selected site."""

    def __init__(self, point: "GeoPoint", bounds: "BoundingBox") -> None:
        self.point = point
        self.bounds = bounds
        super().__init__(
            f"Point ({point.latitude:.6f}, {point.longitude:.6f}) not in reach of "
            f"[lat: {bounds.south:.6f} to {bounds.north:.6f}, "
            f"lon: {bounds.west:.6f} to {bounds.east:.6f}]"
        )
