"""
Spatial utilities.

Coordinate range checks and great-circle distances on a spherical Earth.
"""

from __future__ import annotations

import math

from core.constants import EARTH_RADIUS_KM


class GeometryService:
    """Authoritative geometry operations for the engine."""

    EARTH_RADIUS_KM = EARTH_RADIUS_KM

    @staticmethod
    def is_valid_coordinate(latitude: float, longitude: float) -> bool:
        """Return True when the point lies inside the WGS84 lat/lon ranges."""
        return abs(latitude) <= 90 and abs(longitude) <= 180

    @staticmethod
    def is_null_island(latitude: float, longitude: float) -> bool:
        """(0, 0) is what most receivers report before they have a fix."""
        return latitude == 0 and longitude == 0

    @staticmethod
    def haversine_distance(
        lat1: float,
        lon1: float,
        lat2: float,
        lon2: float,
        unit: str = "km",
    ) -> float:
        """Calculate the great-circle distance using the Haversine formula."""
        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        dphi = math.radians(lat2 - lat1)
        dlmb = math.radians(lon2 - lon1)
        a = (
            math.sin(dphi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
        )
        distance_km = (
            2 * GeometryService.EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))
        )
        if unit == "km":
            return distance_km
        if unit == "meters":
            return distance_km * 1000.0
        if unit == "miles":
            return distance_km / 1.609344
        msg = "Invalid unit. Use 'km', 'meters', or 'miles'."
        raise ValueError(msg)
