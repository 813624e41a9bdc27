"""
Location Telemetry Package.

Acquires positional fixes from an injected sensing capability, calibrates
an initial fix, filters implausible readings, keeps rolling quality
statistics and delivers validated samples to the ride ingestion endpoint.

Usage:
    from tracking import RideLocationIngestClient, TrackerStateMachine

    tracker = TrackerStateMachine(capability, RideLocationIngestClient())
    await tracker.start(ride_id)
    ...
    stats = await tracker.stop()
"""

from tracking.calibration import CalibrationController
from tracking.capability import LocationSensingCapability, PositionSubscription
from tracking.distance import DistanceAccumulator, distance_km
from tracking.models import (
    AccuracyRating,
    LocationSample,
    LocationUpdate,
    PermissionState,
    RawPosition,
    SensingOptions,
    SignalQuality,
    SignalStrength,
    TrackerNotice,
    TrackerSettings,
    TrackerStatistics,
)
from tracking.quality import QualityEstimator, classify_signal, rate_accuracy
from tracking.services.delivery_buffer import DeliveryBuffer
from tracking.services.ingestion import RideLocationIngestClient
from tracking.services.tracker import TrackerCallbacks, TrackerStateMachine
from tracking.state import TrackerLifecycle, TrackerState
from tracking.validation import RejectionReason, SampleValidator

__all__ = [
    "AccuracyRating",
    "CalibrationController",
    "DeliveryBuffer",
    "DistanceAccumulator",
    "LocationSample",
    "LocationSensingCapability",
    "LocationUpdate",
    "PermissionState",
    "PositionSubscription",
    "QualityEstimator",
    "RawPosition",
    "RejectionReason",
    "RideLocationIngestClient",
    "SampleValidator",
    "SensingOptions",
    "SignalQuality",
    "SignalStrength",
    "TrackerCallbacks",
    "TrackerLifecycle",
    "TrackerNotice",
    "TrackerSettings",
    "TrackerState",
    "TrackerStateMachine",
    "TrackerStatistics",
    "classify_signal",
    "distance_km",
    "rate_accuracy",
]
