"""Geodesy Bounded Context - Domain Services.

Stateless WGS84 math used to place GPS fixes into a local scene frame.
NO I/O operations and no shared state: every function takes its inputs as
parameters and returns a new Value Object.

Numeric contract:
    - Angles are given in degrees and converted to radians internally.
    - Linear outputs are in metres, double precision.
    - Out-of-range latitude/longitude is NOT rejected here; results stay
      finite but may be meaningless (notably near the poles for the
      equirectangular approximation). Use validate_wgs84_range() at the call
      site when input comes from an untrusted source.
"""

from __future__ import annotations

import math

from pyproj import Geod

from domain.geodesy.errors import OutOfRangeGeodeticInput
from domain.geodesy.value_objects import (
    EcefVector,
    EnuVector,
    ForwardVector,
    GeoPoint,
    PlanarOffset,
)

# ---------------------------------------------------------------------------
# WGS84 Ellipsoid Constants
# ---------------------------------------------------------------------------
WGS84_A = 6378137.0  # Semi-major axis (m)
WGS84_F = 1.0 / 298.257223563  # Flattening
WGS84_E2 = WGS84_F * (2.0 - WGS84_F)  # First eccentricity squared
WGS84_B = WGS84_A * (1.0 - WGS84_F)  # Semi-minor axis (m)

# Same ellipsoid, used for reference geodesic distances
_geod = Geod(ellps="WGS84")


# ---------------------------------------------------------------------------
# Caller-side validation
# ---------------------------------------------------------------------------
def validate_wgs84_range(point: GeoPoint) -> GeoPoint:
    """Return point unchanged, or raise if it lies outside the WGS84 range.

    None of the transforms in this module call this; it is offered to the
    orchestration layer that reads raw sensor or configuration input.

    Raises:
        OutOfRangeGeodeticInput: latitude not in [-90, 90] or longitude not in
            [-180, 180]
    """
    if not point.is_wgs84_range():
        raise OutOfRangeGeodeticInput(point)
    return point


# ---------------------------------------------------------------------------
# WGS84 -> ECEF
# ---------------------------------------------------------------------------
def prime_vertical_radius(latitude_rad: float) -> float:
    """Radius of curvature in the prime vertical, N(phi), in metres."""
    sin_lat = math.sin(latitude_rad)
    return WGS84_A / math.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)


def wgs84_to_ecef(point: GeoPoint) -> EcefVector:
    """Convert a geodetic position to Earth-Centered, Earth-Fixed coordinates.

    Args:
        point: Geodetic latitude/longitude in degrees, altitude in metres
            above the ellipsoid

    Returns:
        ECEF position in metres
    """
    lat = math.radians(point.latitude)
    lon = math.radians(point.longitude)
    alt = point.altitude

    n = prime_vertical_radius(lat)
    cos_lat = math.cos(lat)

    x = (n + alt) * cos_lat * math.cos(lon)
    y = (n + alt) * cos_lat * math.sin(lon)
    z = ((1.0 - WGS84_E2) * n + alt) * math.sin(lat)

    return EcefVector(x=x, y=y, z=z)


# ---------------------------------------------------------------------------
# ECEF -> ENU
# ---------------------------------------------------------------------------
def ecef_to_enu(reference: GeoPoint, target: EcefVector) -> EnuVector:
    """Express an ECEF position as an East-North-Up offset from reference.

    The delta to the reference's own ECEF position is rotated into the local
    tangent plane at the reference latitude/longitude. If target is the ECEF
    position of reference itself, the result is (0, 0, 0) up to rounding.

    Args:
        reference: Origin of the local tangent plane
        target: ECEF position to express in the local frame

    Returns:
        EnuVector in metres
    """
    lat = math.radians(reference.latitude)
    lon = math.radians(reference.longitude)
    origin = wgs84_to_ecef(reference)

    dx = target.x - origin.x
    dy = target.y - origin.y
    dz = target.z - origin.z

    sin_lat, cos_lat = math.sin(lat), math.cos(lat)
    sin_lon, cos_lon = math.sin(lon), math.cos(lon)

    east = -sin_lon * dx + cos_lon * dy
    north = -sin_lat * cos_lon * dx - sin_lat * sin_lon * dy + cos_lat * dz
    up = cos_lat * cos_lon * dx + cos_lat * sin_lon * dy + sin_lat * dz

    return EnuVector(east=east, north=north, up=up)


def geodetic_to_enu(reference: GeoPoint, target: GeoPoint) -> EnuVector:
    """ENU offset of target from reference, both given as GeoPoints."""
    return ecef_to_enu(reference, wgs84_to_ecef(target))


# ---------------------------------------------------------------------------
# Equirectangular approximation
# ---------------------------------------------------------------------------
def equirectangular_offset(reference: GeoPoint, target: GeoPoint) -> PlanarOffset:
    """Approximate (east, north) offset of target from reference in metres.

    Small-area projection on a sphere of radius WGS84_A. Within tens of
    kilometres it agrees with the ENU projection to well under one percent
    of the distance (sphere vs ellipsoid radius). Altitude is ignored.

    Example:
        >>> ref = GeoPoint(latitude=46.5, longitude=8.0)
        >>> offset = equirectangular_offset(ref, GeoPoint(latitude=46.51, longitude=8.0))
        >>> round(offset.north_m)
        1113
    """
    d_lat = math.radians(target.latitude - reference.latitude)
    d_lon = math.radians(target.longitude - reference.longitude)

    north = WGS84_A * d_lat
    east = WGS84_A * d_lon * math.cos(math.radians(reference.latitude))

    return PlanarOffset(east_m=east, north_m=north)


# ---------------------------------------------------------------------------
# Headings
# ---------------------------------------------------------------------------
def heading_to_forward_vector(heading_degrees: float) -> ForwardVector:
    """Unit forward vector for a compass heading.

    Heading is measured clockwise from the +z axis (north), so 0 deg gives
    (0, 0, 1) and 90 deg gives (1, 0, 0).
    """
    h = math.radians(heading_degrees)
    return ForwardVector(x=math.sin(h), y=0.0, z=math.cos(h))


# ---------------------------------------------------------------------------
# Distance and bearing between fixes
# ---------------------------------------------------------------------------
def haversine_distance(start: GeoPoint, end: GeoPoint) -> float:
    """Great-circle distance in metres on a sphere of radius WGS84_A."""
    lat1 = math.radians(start.latitude)
    lat2 = math.radians(end.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(end.longitude - start.longitude)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push the term a few ulps above 1 for antipodal fixes
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return WGS84_A * c


def initial_bearing(start: GeoPoint, end: GeoPoint) -> float:
    """Initial great-circle bearing from start to end, in degrees [0, 360)."""
    lat1 = math.radians(start.latitude)
    lat2 = math.radians(end.latitude)
    d_lon = math.radians(end.longitude - start.longitude)

    y = math.sin(d_lon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(
        d_lon
    )
    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360.0) % 360.0


def geodesic_distance(start: GeoPoint, end: GeoPoint) -> float:
    """Calculate geodesic distance between two points in metres.

    Uses the WGS84 ellipsoid (pyproj.Geod) for millimetre-level precision;
    altitude is ignored.
    """
    _, _, distance = _geod.inv(
        start.longitude, start.latitude, end.longitude, end.latitude
    )
    return float(abs(distance))
