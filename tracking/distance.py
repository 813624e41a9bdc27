"""Incremental great-circle distance integration."""

from __future__ import annotations

from core.spatial import GeometryService
from tracking.models import LocationSample


def distance_km(a: LocationSample, b: LocationSample) -> float:
    """Haversine distance between two samples on a 6371 km sphere."""
    return GeometryService.haversine_distance(
        a.latitude,
        a.longitude,
        b.latitude,
        b.longitude,
    )


class DistanceAccumulator:
    """Sums segment lengths between consecutive valid samples.

    The total never decreases: segment lengths are non-negative.
    """

    def __init__(self) -> None:
        self.total_distance_km = 0.0
        self.segments = 0

    def accumulate(self, prev: LocationSample, curr: LocationSample) -> float:
        segment_km = distance_km(prev, curr)
        self.total_distance_km += segment_km
        self.segments += 1
        return segment_km
