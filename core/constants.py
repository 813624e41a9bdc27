"""Global constants for the core package.

This module contains shared constants used across the telemetry engine.
"""

from typing import Final

# HTTP Client Constants
HTTP_CONNECTION_LIMIT: Final[int] = 4
HTTP_TIMEOUT_CONNECT: Final[float] = 10.0
HTTP_TIMEOUT_TOTAL: Final[float] = 30.0

# Geodesy
EARTH_RADIUS_KM: Final[float] = 6371.0
MPH_TO_KMH: Final[float] = 1.609
MPS_TO_MPH: Final[float] = 2.237

# Sample plausibility
MAX_ACCURACY_METERS: Final[float] = 100.0
MAX_SPEED_MPH: Final[float] = 200.0
MAX_JUMP_SPEED_MPH: Final[float] = 100.0
ASSUMED_SAMPLE_INTERVAL_SECONDS: Final[float] = 5.0

# Per-sample accuracy rating thresholds (meters, inclusive upper bounds)
ACCURACY_EXCELLENT_METERS: Final[float] = 5.0
ACCURACY_GOOD_METERS: Final[float] = 15.0
ACCURACY_FAIR_METERS: Final[float] = 50.0

# Aggregate signal strength thresholds on mean accuracy (meters)
SIGNAL_EXCELLENT_METERS: Final[float] = 10.0
SIGNAL_GOOD_METERS: Final[float] = 25.0
SIGNAL_FAIR_METERS: Final[float] = 50.0

# Calibration
CALIBRATION_MAX_ATTEMPTS: Final[int] = 5
CALIBRATION_TARGET_ACCURACY_METERS: Final[float] = 20.0
CALIBRATION_SETTLE_DELAY_SECONDS: Final[float] = 1.0
CALIBRATION_RETRY_DELAYS_SECONDS: Final[tuple[float, ...]] = (1.0, 2.0)

# Sensing presets
HIGH_ACCURACY_TIMEOUT_MS: Final[int] = 15_000
HIGH_ACCURACY_MAX_AGE_MS: Final[int] = 1_000
STANDARD_TIMEOUT_MS: Final[int] = 10_000
STANDARD_MAX_AGE_MS: Final[int] = 5_000

# Tracking
WATCH_RETRY_DELAY_SECONDS: Final[float] = 5.0
LOCATION_HISTORY_SIZE: Final[int] = 100

# Delivery buffer
FLUSH_BATCH_SIZE: Final[int] = 3
FLUSH_MAX_AGE_MS: Final[int] = 30_000
FLUSH_CHECK_INTERVAL_SECONDS: Final[float] = 5.0
