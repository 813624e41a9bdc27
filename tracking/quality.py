"""
Rolling quality statistics.

Keeps a running count and incremental mean of accuracy over valid samples,
the top observed speed, and classifies both single readings and the
aggregate signal.
"""

from __future__ import annotations

from datetime import datetime

from core.constants import (
    ACCURACY_EXCELLENT_METERS,
    ACCURACY_FAIR_METERS,
    ACCURACY_GOOD_METERS,
    SIGNAL_EXCELLENT_METERS,
    SIGNAL_FAIR_METERS,
    SIGNAL_GOOD_METERS,
)
from tracking.models import (
    AccuracyRating,
    LocationSample,
    SignalQuality,
    SignalStrength,
    TrackerStatistics,
)


def _classify(value: float, excellent: float, good: float, fair: float) -> SignalQuality:
    if value <= excellent:
        return SignalQuality.EXCELLENT
    if value <= good:
        return SignalQuality.GOOD
    if value <= fair:
        return SignalQuality.FAIR
    return SignalQuality.POOR


def rate_accuracy(accuracy_meters: float) -> AccuracyRating:
    """Rate a single reading: <=5 excellent, <=15 good, <=50 fair."""
    return _classify(
        accuracy_meters,
        ACCURACY_EXCELLENT_METERS,
        ACCURACY_GOOD_METERS,
        ACCURACY_FAIR_METERS,
    )


def classify_signal(mean_accuracy_meters: float) -> SignalStrength:
    """Rate the running mean: <=10 excellent, <=25 good, <=50 fair."""
    return _classify(
        mean_accuracy_meters,
        SIGNAL_EXCELLENT_METERS,
        SIGNAL_GOOD_METERS,
        SIGNAL_FAIR_METERS,
    )


class QualityEstimator:
    """Running statistics for one tracking session."""

    def __init__(self, session_start: datetime) -> None:
        self.session_start = session_start
        self.total_points = 0
        self.average_accuracy_meters = 0.0
        self.top_speed_mph = 0.0
        self.last_rating: AccuracyRating | None = None

    @property
    def signal_strength(self) -> SignalStrength:
        # Matches the initial state shown before any sample arrives.
        if self.total_points == 0:
            return SignalQuality.FAIR
        return classify_signal(self.average_accuracy_meters)

    def observe(self, sample: LocationSample) -> AccuracyRating:
        """Fold a valid sample into the statistics and return its rating."""
        self.total_points += 1
        self.average_accuracy_meters += (
            sample.accuracy_meters - self.average_accuracy_meters
        ) / self.total_points
        self.top_speed_mph = max(self.top_speed_mph, sample.speed_mph or 0.0)
        self.last_rating = rate_accuracy(sample.accuracy_meters)
        return self.last_rating

    def snapshot(self, total_distance_km: float, now: datetime) -> TrackerStatistics:
        return TrackerStatistics(
            total_points=self.total_points,
            average_accuracy_meters=self.average_accuracy_meters,
            top_speed_mph=self.top_speed_mph,
            total_distance_km=total_distance_km,
            tracking_duration_sec=max(
                0.0, (now - self.session_start).total_seconds()
            ),
            signal_strength=self.signal_strength,
        )
