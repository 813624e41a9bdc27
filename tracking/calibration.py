"""
Calibration Module.

Before continuous tracking begins, a handful of high-accuracy fixes are
requested and the tightest one becomes the session baseline. Calibration
stops early once a reading is within the target accuracy.

All attempts, successful or not, draw from one budget of
``calibration_max_attempts``. Transient sensing errors are retried with the
escalating delays in ``calibration_retry_delays_seconds``; a permission
error ends calibration immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception_type,
    wait_chain,
    wait_fixed,
)

from core.exceptions import (
    CalibrationFailedError,
    SensingTimeoutError,
    TransientSensingError,
)
from date_utils import get_current_utc_time
from tracking.capability import LocationSensingCapability
from tracking.models import LocationSample, RawPosition, TrackerSettings

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class CalibrationController:
    """Multi-attempt initial fix refinement."""

    def __init__(
        self,
        capability: LocationSensingCapability,
        settings: TrackerSettings | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = get_current_utc_time,
    ) -> None:
        self._capability = capability
        self._settings = settings or TrackerSettings()
        self._sleep = sleep
        self._clock = clock
        self.max_attempts = self._settings.calibration_max_attempts
        self.attempts = 0
        self.failures = 0
        self.readings: list[LocationSample] = []

    def _budget_exhausted(self, retry_state: RetryCallState) -> bool:
        return self.attempts >= self.max_attempts

    async def _request_fix(self) -> RawPosition:
        options = self._settings.high_accuracy_options
        self.attempts += 1
        try:
            return await asyncio.wait_for(
                self._capability.get_current_position(options),
                timeout=options.timeout_ms / 1000,
            )
        except TimeoutError as e:
            self.failures += 1
            msg = f"No fix within {options.timeout_ms} ms"
            raise SensingTimeoutError(msg) from e
        except TransientSensingError:
            self.failures += 1
            raise

    async def _acquire_reading(self) -> LocationSample:
        retrying = AsyncRetrying(
            stop=self._budget_exhausted,
            wait=wait_chain(
                *(wait_fixed(d) for d in self._settings.calibration_retry_delays_seconds)
            ),
            retry=retry_if_exception_type(TransientSensingError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                position = await self._request_fix()
        return position.to_sample(
            received_at=self._clock(),
            battery_percent=self._capability.battery_percent(),
        )

    async def calibrate(self) -> LocationSample:
        """
        Run calibration and return the most accurate reading.

        Raises:
            CalibrationFailedError: every attempt failed.
            PermissionDeniedError: the platform refused access.
        """
        self.attempts = 0
        self.failures = 0
        self.readings = []
        target = self._settings.calibration_target_accuracy_meters

        while True:
            try:
                reading = await self._acquire_reading()
            except TransientSensingError as e:
                if not self.readings:
                    msg = f"Calibration failed after {self.attempts} attempts"
                    raise CalibrationFailedError(
                        msg,
                        {"attempts": self.attempts, "failures": self.failures},
                    ) from e
                logger.warning(
                    "Calibration budget spent on errors; using %d collected readings",
                    len(self.readings),
                )
                break

            self.readings.append(reading)
            if self.attempts >= self.max_attempts or reading.accuracy_meters <= target:
                break
            await self._sleep(self._settings.calibration_settle_delay_seconds)

        best = min(self.readings, key=lambda r: r.accuracy_meters)
        logger.info(
            "GPS calibrated after %d attempts. Best accuracy: %sm",
            self.attempts,
            best.accuracy_meters,
        )
        return best
