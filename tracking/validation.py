"""
Sample Validation Module.

Rejects physically implausible fixes before they reach statistics, distance
integration or the delivery buffer. Rejections are expected sensor noise:
they are logged at debug level and never raised.
"""

from __future__ import annotations

import logging
import math
from enum import Enum

from core.spatial import GeometryService
from tracking.models import LocationSample, TrackerSettings

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    """Why a sample was discarded."""

    LOW_ACCURACY = "low_accuracy"
    NULL_ISLAND = "null_island"
    OUT_OF_RANGE = "out_of_range"
    EXCESSIVE_SPEED = "excessive_speed"
    IMPOSSIBLE_JUMP = "impossible_jump"


class SampleValidator:
    """
    Plausibility filter for location samples.

    Stateless: the last known position is supplied by the caller.
    """

    def __init__(self, settings: TrackerSettings | None = None) -> None:
        settings = settings or TrackerSettings()
        self.max_accuracy_meters = settings.max_accuracy_meters
        self.max_speed_mph = settings.max_speed_mph
        self.max_jump_distance_km = settings.max_jump_distance_km

    def rejection_reason(
        self,
        sample: LocationSample,
        last_known_position: LocationSample | None = None,
    ) -> RejectionReason | None:
        """Return the first failed check, or None for a valid sample."""
        if (
            not math.isfinite(sample.accuracy_meters)
            or sample.accuracy_meters > self.max_accuracy_meters
        ):
            return RejectionReason.LOW_ACCURACY
        if GeometryService.is_null_island(sample.latitude, sample.longitude):
            return RejectionReason.NULL_ISLAND
        if not GeometryService.is_valid_coordinate(sample.latitude, sample.longitude):
            return RejectionReason.OUT_OF_RANGE
        if sample.speed_mph is not None and (
            not math.isfinite(sample.speed_mph) or sample.speed_mph > self.max_speed_mph
        ):
            return RejectionReason.EXCESSIVE_SPEED

        if last_known_position is not None:
            jump_km = GeometryService.haversine_distance(
                last_known_position.latitude,
                last_known_position.longitude,
                sample.latitude,
                sample.longitude,
            )
            if jump_km > self.max_jump_distance_km:
                return RejectionReason.IMPOSSIBLE_JUMP

        return None

    def validate(
        self,
        sample: LocationSample,
        last_known_position: LocationSample | None = None,
    ) -> bool:
        reason = self.rejection_reason(sample, last_known_position)
        if reason is None:
            return True
        logger.debug(
            "Rejected sample (%s): lat=%s lon=%s accuracy=%sm speed=%s",
            reason.value,
            sample.latitude,
            sample.longitude,
            sample.accuracy_meters,
            sample.speed_mph,
        )
        return False
