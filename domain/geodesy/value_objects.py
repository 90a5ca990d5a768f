"""Geodesy Bounded Context - Value Objects.

Immutable coordinate types exchanged with the geodetic transforms.
All validation occurs at construction time via Pydantic.

GeoPoint does not enforce the WGS84 latitude/longitude range; range checks
are the caller's job (see ``domain.geodesy.services.validate_wgs84_range``).
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, model_validator


# ---------------------------------------------------------------------------
# GeoPoint
# ---------------------------------------------------------------------------
class GeoPoint(BaseModel):
    """Geographic coordinate on the WGS84 ellipsoid (Value Object).

    Invariants:
        latitude, longitude and altitude are finite

    Pydantic frozen models compare by value, so two fixes with the same
    coordinates and name are equal.
    """

    latitude: float  # degrees, positive north
    longitude: float  # degrees, positive east
    altitude: float = 0.0  # metres above the ellipsoid
    name: str | None = None  # Optional label (summit, site centre, ...)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_finite(self) -> "GeoPoint":
        for field in ("latitude", "longitude", "altitude"):
            value = getattr(self, field)
            if not math.isfinite(value):
                raise ValueError(f"{field} must be finite, got {value}")
        return self

    def is_wgs84_range(self) -> bool:
        """Return True if latitude/longitude lie inside the WGS84 range."""
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0


# ---------------------------------------------------------------------------
# Cartesian vectors
# ---------------------------------------------------------------------------
class EcefVector(BaseModel):
    """Earth-Centered, Earth-Fixed position in metres."""

    x: float
    y: float
    z: float

    model_config = ConfigDict(frozen=True)

    def distance_to(self, other: "EcefVector") -> float:
        """Straight-line (chord) distance to another ECEF position in metres."""
        return math.sqrt(
            (self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2
        )


class EnuVector(BaseModel):
    """East-North-Up offset from a reference point in metres."""

    east: float
    north: float
    up: float

    model_config = ConfigDict(frozen=True)

    def horizontal_distance(self) -> float:
        """Length of the offset projected on the local tangent plane."""
        return math.hypot(self.east, self.north)


class PlanarOffset(BaseModel):
    """Small-area (east, north) offset from the equirectangular approximation."""

    east_m: float
    north_m: float

    model_config = ConfigDict(frozen=True)


class ForwardVector(BaseModel):
    """Unit vector in the local horizontal plane (y is always 0)."""

    x: float
    y: float = 0.0
    z: float

    model_config = ConfigDict(frozen=True)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)
