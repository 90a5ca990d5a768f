"""Geodesy Bounded Context - Scene Placement.

Places GPS fixes relative to a site's reference point in a y-up scene frame
(x = east, y = up, z = north), and answers whether a fix is on site.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from domain.geodesy.errors import OutOfReachError
from domain.geodesy.services import equirectangular_offset, geodetic_to_enu
from domain.geodesy.value_objects import GeoPoint
from domain.terrain.value_objects import BoundingBox

logger = logging.getLogger(__name__)

PlacementMethod = Literal["equirectangular", "enu"]


class ScenePosition(BaseModel):
    """Position in the local scene frame in metres."""

    x: float  # east
    y: float  # up
    z: float  # north
    name: str | None = None

    model_config = ConfigDict(frozen=True)


def place_in_scene(
    reference: GeoPoint,
    target: GeoPoint,
    method: PlacementMethod = "equirectangular",
) -> ScenePosition:
    """Scene position of target relative to reference.

    ``"equirectangular"`` is the cheap small-area approximation and leaves
    y at 0 (height comes from the terrain); ``"enu"`` uses the full
    ellipsoidal transform and fills y with the up component.
    """
    if method == "equirectangular":
        offset = equirectangular_offset(reference, target)
        return ScenePosition(x=offset.east_m, y=0.0, z=offset.north_m, name=target.name)
    if method == "enu":
        enu = geodetic_to_enu(reference, target)
        return ScenePosition(x=enu.east, y=enu.up, z=enu.north, name=target.name)
    raise ValueError(f"Unknown placement method: {method!r}")


def place_points_of_interest(
    reference: GeoPoint,
    points: Iterable[GeoPoint],
    method: PlacementMethod = "equirectangular",
) -> list[ScenePosition]:
    """Place labelled points (summits, huts, ...) around the reference."""
    positions = [place_in_scene(reference, point, method) for point in points]
    logger.debug("Placed %d points of interest", len(positions))
    return positions


def is_in_reach(point: GeoPoint, bounds: BoundingBox) -> bool:
    """True if the GPS fix lies inside the site extent (inclusive)."""
    return bounds.contains(point)


def require_in_reach(point: GeoPoint, bounds: BoundingBox) -> GeoPoint:
    """Return point if it is on site, else raise OutOfReachError."""
    if not is_in_reach(point, bounds):
        raise OutOfReachError(point, bounds)
    return point


class Site(BaseModel):
    """A named site: scene reference point, extent and nominal elevation.

    Invariants:
        center lies inside bounds
    """

    name: str
    center: GeoPoint
    bounds: BoundingBox
    elevation_m: float | None = None  # Nominal elevation of the site

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_center(self) -> "Site":
        if not self.bounds.contains(self.center):
            raise ValueError(f"Site centre of {self.name!r} lies outside its bounds")
        return self

    def is_in_reach(self, point: GeoPoint) -> bool:
        return is_in_reach(point, self.bounds)

    def place(
        self, point: GeoPoint, method: PlacementMethod = "equirectangular"
    ) -> ScenePosition:
        """Check that point is on site, then place it relative to the centre.

        Raises:
            OutOfReachError: point lies outside the site bounds
        """
        require_in_reach(point, self.bounds)
        return place_in_scene(self.center, point, method)

    def place_points_of_interest(
        self, points: Iterable[GeoPoint], method: PlacementMethod = "equirectangular"
    ) -> list[ScenePosition]:
        """Place labelled points around the centre; off-site points are allowed."""
        return place_points_of_interest(self.center, points, method)
