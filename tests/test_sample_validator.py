import math

import pytest

from tracking.models import TrackerSettings
from tracking.quality import QualityEstimator
from tracking.validation import RejectionReason, SampleValidator
from sensing_fakes import T0, sample


@pytest.fixture
def validator() -> SampleValidator:
    return SampleValidator()


def test_accepts_plausible_sample(validator: SampleValidator) -> None:
    assert validator.validate(sample(40.7128, -74.0060, 8.0, speed_mph=35.0))


@pytest.mark.parametrize("accuracy", [100.01, 150.0, 5000.0])
def test_rejects_low_accuracy(validator: SampleValidator, accuracy: float) -> None:
    assert not validator.validate(sample(accuracy=accuracy))
    assert validator.rejection_reason(sample(accuracy=accuracy)) is RejectionReason.LOW_ACCURACY


def test_accuracy_of_exactly_100_is_accepted(validator: SampleValidator) -> None:
    assert validator.validate(sample(accuracy=100.0))


def test_rejects_null_island_regardless_of_other_fields(validator: SampleValidator) -> None:
    perfect = sample(0.0, 0.0, accuracy=1.0, speed_mph=0.0)
    assert not validator.validate(perfect)
    assert validator.rejection_reason(perfect) is RejectionReason.NULL_ISLAND


def test_equator_and_prime_meridian_alone_are_fine(validator: SampleValidator) -> None:
    assert validator.validate(sample(0.0, 12.5))
    assert validator.validate(sample(12.5, 0.0))


@pytest.mark.parametrize(
    ("latitude", "longitude"),
    [(90.5, 10.0), (-91.0, 10.0), (45.0, 180.5), (45.0, -181.0)],
)
def test_rejects_out_of_range_coordinates(
    validator: SampleValidator, latitude: float, longitude: float
) -> None:
    reading = sample(latitude, longitude)
    assert validator.rejection_reason(reading) is RejectionReason.OUT_OF_RANGE


def test_rejects_speed_over_200_mph(validator: SampleValidator) -> None:
    reading = sample(speed_mph=250.0)
    assert not validator.validate(reading)
    assert validator.rejection_reason(reading) is RejectionReason.EXCESSIVE_SPEED


def test_missing_speed_is_not_checked(validator: SampleValidator) -> None:
    assert validator.validate(sample(speed_mph=None))
    assert validator.validate(sample(speed_mph=200.0))


def test_rejects_one_kilometre_jump_in_one_interval(validator: SampleValidator) -> None:
    first = sample(40.7128, -74.0060)
    second = sample(40.7218, -74.0060)
    assert validator.validate(first)
    assert not validator.validate(second, last_known_position=first)
    assert (
        validator.rejection_reason(second, last_known_position=first)
        is RejectionReason.IMPOSSIBLE_JUMP
    )


def test_accepts_short_move_from_last_position(validator: SampleValidator) -> None:
    first = sample(40.7128, -74.0060)
    nearby = sample(40.7138, -74.0060)
    assert validator.validate(nearby, last_known_position=first)


def test_jump_limit_follows_100_mph_over_five_seconds() -> None:
    settings = TrackerSettings()
    assert settings.max_jump_distance_km == pytest.approx(0.2235, abs=1e-4)


def test_thresholds_come_from_settings() -> None:
    strict = SampleValidator(TrackerSettings(max_accuracy_meters=20.0))
    assert not strict.validate(sample(accuracy=25.0))


@pytest.mark.parametrize("accuracy", [math.nan, math.inf])
def test_rejects_non_finite_accuracy(validator: SampleValidator, accuracy: float) -> None:
    reading = sample(accuracy=accuracy)
    assert validator.rejection_reason(reading) is RejectionReason.LOW_ACCURACY

    # Only validated samples reach the running mean, which stays finite.
    estimator = QualityEstimator(T0)
    for candidate in (reading, sample(accuracy=8.0)):
        if validator.validate(candidate):
            estimator.observe(candidate)
    assert estimator.average_accuracy_meters == 8.0


@pytest.mark.parametrize("value", [math.nan, math.inf])
def test_rejects_non_finite_speed_and_coordinates(validator: SampleValidator, value: float) -> None:
    assert validator.rejection_reason(sample(speed_mph=value)) is RejectionReason.EXCESSIVE_SPEED
    assert validator.rejection_reason(sample(value, -74.0)) is RejectionReason.OUT_OF_RANGE
