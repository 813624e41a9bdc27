"""Pydantic models for location samples, statistics and engine settings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator
from pydantic.alias_generators import to_camel

from core.constants import (
    ASSUMED_SAMPLE_INTERVAL_SECONDS,
    CALIBRATION_MAX_ATTEMPTS,
    CALIBRATION_RETRY_DELAYS_SECONDS,
    CALIBRATION_SETTLE_DELAY_SECONDS,
    CALIBRATION_TARGET_ACCURACY_METERS,
    FLUSH_BATCH_SIZE,
    FLUSH_CHECK_INTERVAL_SECONDS,
    FLUSH_MAX_AGE_MS,
    HIGH_ACCURACY_MAX_AGE_MS,
    HIGH_ACCURACY_TIMEOUT_MS,
    LOCATION_HISTORY_SIZE,
    MAX_ACCURACY_METERS,
    MAX_JUMP_SPEED_MPH,
    MAX_SPEED_MPH,
    MPH_TO_KMH,
    MPS_TO_MPH,
    STANDARD_MAX_AGE_MS,
    STANDARD_TIMEOUT_MS,
    WATCH_RETRY_DELAY_SECONDS,
)
from date_utils import ensure_utc


class SignalQuality(str, Enum):
    """Ordered quality level, best first."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @property
    def rank(self) -> int:
        """0 for excellent up to 3 for poor."""
        return _QUALITY_RANKS[self]

    @property
    def percent(self) -> int:
        """Gauge value shown next to the signal indicator."""
        return _QUALITY_PERCENT[self]


_QUALITY_RANKS = {
    SignalQuality.EXCELLENT: 0,
    SignalQuality.GOOD: 1,
    SignalQuality.FAIR: 2,
    SignalQuality.POOR: 3,
}
_QUALITY_PERCENT = {
    SignalQuality.EXCELLENT: 90,
    SignalQuality.GOOD: 70,
    SignalQuality.FAIR: 50,
    SignalQuality.POOR: 25,
}

# Per-sample and aggregate classifications share one scale.
AccuracyRating = SignalQuality
SignalStrength = SignalQuality


class PermissionState(str, Enum):
    """Location permission as reported by the platform."""

    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


class SensingOptions(BaseModel):
    """Parameters passed to the sensing capability for a fix or a watch."""

    high_accuracy: bool
    timeout_ms: PositiveInt
    max_age_ms: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


HIGH_ACCURACY_OPTIONS = SensingOptions(
    high_accuracy=True,
    timeout_ms=HIGH_ACCURACY_TIMEOUT_MS,
    max_age_ms=HIGH_ACCURACY_MAX_AGE_MS,
)
STANDARD_OPTIONS = SensingOptions(
    high_accuracy=False,
    timeout_ms=STANDARD_TIMEOUT_MS,
    max_age_ms=STANDARD_MAX_AGE_MS,
)


class LocationSample(BaseModel):
    """A single positional fix in engine units.

    Field aliases are the JSON keys the ingestion endpoint expects.
    """

    latitude: float
    longitude: float
    accuracy_meters: float = Field(alias="accuracy")
    heading_degrees: float | None = Field(default=None, alias="heading")
    speed_mph: float | None = Field(default=None, alias="speed")
    timestamp: datetime
    battery_percent: int | None = Field(default=None, alias="batteryLevel")
    sensing_enabled: bool = Field(default=True, alias="isLocationServicesEnabled")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def to_payload(self) -> dict[str, Any]:
        """Serialize with wire keys, omitting absent optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RawPosition(BaseModel):
    """A fix as produced by the platform; speed is in metres per second."""

    latitude: float
    longitude: float
    accuracy: float
    heading: float | None = None
    speed: float | None = None
    timestamp: datetime | None = None

    model_config = ConfigDict(frozen=True)

    def to_sample(
        self,
        received_at: datetime,
        battery_percent: int | None = None,
    ) -> LocationSample:
        speed_mph = self.speed * MPS_TO_MPH if self.speed is not None else None
        return LocationSample(
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy_meters=self.accuracy,
            heading_degrees=self.heading,
            speed_mph=speed_mph,
            timestamp=self.timestamp or received_at,
            battery_percent=battery_percent,
            sensing_enabled=True,
        )


class TrackerStatistics(BaseModel):
    """Rolling quality statistics for one tracking session."""

    total_points: int = 0
    average_accuracy_meters: float = 0.0
    top_speed_mph: float = 0.0
    total_distance_km: float = 0.0
    tracking_duration_sec: float = 0.0
    signal_strength: SignalQuality = SignalQuality.FAIR

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class LocationUpdate(LocationSample):
    """A valid sample enriched with its rating and the session statistics."""

    accuracy_rating: SignalQuality = Field(alias="accuracyRating")
    statistics: TrackerStatistics


@dataclass(frozen=True)
class TrackerNotice:
    """Informational status update for the surrounding application."""

    level: Literal["info", "warning", "error"]
    message: str
    code: str | None = None


class TrackerSettings(BaseModel):
    """Engine tunables. Defaults mirror core.constants."""

    max_accuracy_meters: float = MAX_ACCURACY_METERS
    max_speed_mph: float = MAX_SPEED_MPH
    max_jump_speed_mph: float = MAX_JUMP_SPEED_MPH
    assumed_sample_interval_seconds: float = ASSUMED_SAMPLE_INTERVAL_SECONDS

    calibration_max_attempts: PositiveInt = CALIBRATION_MAX_ATTEMPTS
    calibration_target_accuracy_meters: float = CALIBRATION_TARGET_ACCURACY_METERS
    calibration_settle_delay_seconds: float = CALIBRATION_SETTLE_DELAY_SECONDS
    calibration_retry_delays_seconds: tuple[float, ...] = (
        CALIBRATION_RETRY_DELAYS_SECONDS
    )

    watch_retry_delay_seconds: float = WATCH_RETRY_DELAY_SECONDS
    history_size: PositiveInt = LOCATION_HISTORY_SIZE

    flush_batch_size: PositiveInt = FLUSH_BATCH_SIZE
    flush_max_age_ms: float = FLUSH_MAX_AGE_MS
    flush_check_interval_seconds: float | None = FLUSH_CHECK_INTERVAL_SECONDS

    high_accuracy_options: SensingOptions = HIGH_ACCURACY_OPTIONS
    standard_options: SensingOptions = STANDARD_OPTIONS

    model_config = ConfigDict(frozen=True)

    @field_validator("calibration_retry_delays_seconds")
    @classmethod
    def _at_least_one_delay(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if not value:
            msg = "calibration_retry_delays_seconds needs at least one delay"
            raise ValueError(msg)
        return value

    @property
    def max_jump_distance_km(self) -> float:
        """Furthest a sample may move from the last one in one interval."""
        return (
            self.max_jump_speed_mph
            * MPH_TO_KMH
            * self.assumed_sample_interval_seconds
            / 3600
        )
