"""Centralized configuration for environment variables and external APIs.

This module is the single source of truth for configuration used across the
engine. Import constants from here rather than calling os.getenv directly
in multiple places. Engine tunables (thresholds, delays, batch policy) are
not environment driven; see tracking.models.TrackerSettings.
"""

from __future__ import annotations

import os
from typing import Final

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()


# --- Backend ingestion ---
API_BASE_URL: Final[str] = os.getenv(
    "RIDE_TELEMETRY_API_BASE_URL",
    "http://localhost:5000/api",
).rstrip("/")
HTTP_TIMEOUT_SECONDS: Final[float] = float(
    os.getenv("RIDE_TELEMETRY_HTTP_TIMEOUT", "30"),
)

# --- Logging ---
LOG_LEVEL: Final[str] = os.getenv("RIDE_TELEMETRY_LOG_LEVEL", "INFO").upper()


__all__ = [
    "API_BASE_URL",
    "HTTP_TIMEOUT_SECONDS",
    "LOG_LEVEL",
]
