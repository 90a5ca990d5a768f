"""Geodesy Bounded Context.

Responsible for placing real-world GPS fixes into a local scene frame:
- Value Objects: GeoPoint, EcefVector, EnuVector, PlanarOffset, ForwardVector
- Services: WGS84 -> ECEF -> ENU, equirectangular offsets, headings
- Placement: scene positions, points of interest, on-site reach checks, Site
"""
