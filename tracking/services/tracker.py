"""
Location tracker lifecycle orchestration.

A TrackerStateMachine drives one tracking session at a time:

- ``start(ride_id)`` checks permission, calibrates, then subscribes to
  continuous updates.
- Every fix from the subscription is validated; valid samples update the
  quality statistics and the distance total, are queued for delivery, and
  are handed to ``on_location_update``.
- Transient sensing errors restart the subscription after a fixed delay.
  Permission loss and calibration exhaustion end the session in ERROR.
- ``stop()`` cancels the subscription and timers and force-flushes the
  delivery buffer.

Events from one subscription are consumed by a single task, so no two
samples of a session are processed concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from core.exceptions import (
    CalibrationFailedError,
    InvalidTransitionError,
    PermissionDeniedError,
    ProviderUnavailableError,
    SensingError,
    SensingTimeoutError,
    TelemetryError,
)
from date_utils import get_current_utc_time
from tracking.calibration import CalibrationController
from tracking.capability import LocationSensingCapability, PositionSubscription
from tracking.distance import DistanceAccumulator
from tracking.models import (
    AccuracyRating,
    LocationSample,
    LocationUpdate,
    PermissionState,
    RawPosition,
    SensingOptions,
    SignalQuality,
    TrackerNotice,
    TrackerSettings,
    TrackerStatistics,
)
from tracking.quality import QualityEstimator
from tracking.services.delivery_buffer import BatchSender, DeliveryBuffer
from tracking.state import TrackerLifecycle, TrackerState
from tracking.validation import SampleValidator

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class _WatchOutcome(Enum):
    RESUBSCRIBE = "resubscribe"
    RETRY = "retry"
    STOP = "stop"


@dataclass
class TrackerCallbacks:
    """Hooks exposed to the surrounding application. All are optional."""

    on_location_update: Callable[[LocationUpdate], None] | None = None
    on_tracking_status_change: Callable[[bool], None] | None = None
    on_notice: Callable[[TrackerNotice], None] | None = None


@dataclass
class TrackingSession:
    """Mutable state owned by one tracking session."""

    ride_id: str
    started_at: datetime
    buffer: DeliveryBuffer
    quality: QualityEstimator
    distance: DistanceAccumulator
    history: deque[LocationSample]
    baseline: LocationSample | None = None
    last_known_position: LocationSample | None = None
    last_update_at: datetime | None = None
    low_power: bool = False
    watch_retries: int = 0
    rejected_samples: int = 0

    @property
    def accuracy_rating(self) -> AccuracyRating | None:
        return self.quality.last_rating

    def statistics(self, now: datetime) -> TrackerStatistics:
        return self.quality.snapshot(self.distance.total_distance_km, now)


class TrackerStateMachine:
    """Owns the tracking lifecycle and mediates with the sensing capability."""

    def __init__(
        self,
        capability: LocationSensingCapability,
        sender: BatchSender,
        *,
        callbacks: TrackerCallbacks | None = None,
        settings: TrackerSettings | None = None,
        clock: Callable[[], datetime] = get_current_utc_time,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._capability = capability
        self._sender = sender
        self.callbacks = callbacks or TrackerCallbacks()
        self.settings = settings or TrackerSettings()
        self._clock = clock
        self._sleep = sleep

        self.lifecycle = TrackerLifecycle()
        self.validator = SampleValidator(self.settings)
        self.permission = PermissionState.PROMPT
        self.ride_id: str | None = None
        self.session: TrackingSession | None = None
        self.error: TelemetryError | None = None

        self._calibration_task: asyncio.Task[LocationSample] | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self._flush_timer_task: asyncio.Task[None] | None = None
        self._subscription: PositionSubscription | None = None
        self._unsubscribe_permission: Callable[[], None] | None = None
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def state(self) -> TrackerState:
        return self.lifecycle.state

    @property
    def is_tracking(self) -> bool:
        return self.state is TrackerState.TRACKING

    @property
    def statistics(self) -> TrackerStatistics | None:
        if self.session is None:
            return None
        return self.session.statistics(self._clock())

    @property
    def current_location(self) -> LocationSample | None:
        if self.session is None:
            return None
        return self.session.last_known_position

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, ride_id: str | int) -> TrackerState:
        """
        Activate tracking for a ride.

        Returns the state the session settled in: TRACKING on success,
        ERROR when calibration failed, STOPPED when stopped meanwhile.

        Raises:
            PermissionDeniedError: location permission is denied.
            InvalidTransitionError: a session is already active.
        """
        if self.lifecycle.is_active():
            msg = f"Tracker already {self.state.value} for ride {self.ride_id}"
            raise InvalidTransitionError(msg, {"ride_id": self.ride_id})

        self.permission = await self._capability.query_permission()
        if self.permission is PermissionState.DENIED:
            self._notify("error", "Location permission denied", PermissionDeniedError.code)
            msg = "Location permission denied"
            raise PermissionDeniedError(msg, {"ride_id": str(ride_id)})

        self.ride_id = str(ride_id)
        self.session = None
        self.error = None
        self._transition(TrackerState.CALIBRATING)
        self._unsubscribe_permission = self._capability.on_permission_change(
            self._handle_permission_change,
        )

        controller = CalibrationController(
            self._capability,
            self.settings,
            sleep=self._sleep,
            clock=self._clock,
        )
        self._calibration_task = asyncio.create_task(
            controller.calibrate(),
            name=f"calibrate-ride-{self.ride_id}",
        )
        try:
            baseline = await self._calibration_task
        except asyncio.CancelledError:
            if self.state in (TrackerState.STOPPED, TrackerState.ERROR):
                return self.state
            # The caller cancelled start() itself.
            self._transition(TrackerState.STOPPED)
            self._release_permission_listener()
            raise
        except (CalibrationFailedError, PermissionDeniedError) as e:
            logger.error("Error initializing GPS tracking for ride %s: %s", self.ride_id, e)
            await self._fail(e)
            return self.state
        finally:
            self._calibration_task = None

        if self.state is not TrackerState.CALIBRATING:
            return self.state

        self._begin_tracking(baseline)
        return self.state

    async def stop(self) -> TrackerStatistics | None:
        """
        Deactivate tracking and discard the session.

        Returns the final statistics, or None if nothing was being tracked.
        """
        if not self.lifecycle.is_active():
            logger.debug("stop() ignored in state %s", self.state.value)
            return None

        session = self.session
        self._transition(TrackerState.STOPPED)
        await self._teardown()
        self.session = None

        if session is None:
            return None
        return session.statistics(self._clock())

    def get_status(self) -> dict[str, Any]:
        """Snapshot of the tracker for diagnostics and status endpoints."""
        status = self.lifecycle.get_status()
        session = self.session
        stats = self.statistics
        status.update(
            {
                "ride_id": self.ride_id,
                "permission": self.permission.value,
                "statistics": stats.model_dump(mode="json", by_alias=True)
                if stats
                else None,
                "accuracy_rating": session.accuracy_rating.value
                if session and session.accuracy_rating
                else None,
                "queued_samples": len(session.buffer) if session else 0,
                "low_power": session.low_power if session else False,
                "last_update": session.last_update_at if session else None,
                "error": self.error.message if self.error else None,
            },
        )
        return status

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, new_state: TrackerState, error: str | None = None) -> None:
        previous = self.lifecycle.set_state(new_state, error)
        logger.info(
            "Ride %s tracker %s -> %s",
            self.ride_id,
            previous.value,
            new_state.value,
        )
        was_tracking = previous is TrackerState.TRACKING
        now_tracking = new_state is TrackerState.TRACKING
        if was_tracking != now_tracking:
            self._emit_status(now_tracking)

    def _begin_tracking(self, baseline: LocationSample) -> None:
        now = self._clock()
        self.session = TrackingSession(
            ride_id=self.ride_id,
            started_at=now,
            buffer=DeliveryBuffer(
                self.ride_id,
                self._sender,
                self.settings,
                clock=self._clock,
            ),
            quality=QualityEstimator(now),
            distance=DistanceAccumulator(),
            history=deque(maxlen=self.settings.history_size),
            baseline=baseline,
            last_known_position=baseline,
        )
        self._transition(TrackerState.TRACKING)
        self._notify("info", "High-precision location tracking started")

        session = self.session
        self._watch_task = asyncio.create_task(
            self._watch_loop(session),
            name=f"watch-ride-{self.ride_id}",
        )
        interval = self.settings.flush_check_interval_seconds
        if interval:
            self._flush_timer_task = asyncio.create_task(
                self._flush_timer(session, interval),
                name=f"flush-timer-ride-{self.ride_id}",
            )

    def _watch_options(self, session: TrackingSession) -> SensingOptions:
        if session.low_power:
            return self.settings.standard_options
        return self.settings.high_accuracy_options

    async def _watch_loop(self, session: TrackingSession) -> None:
        while self.state is TrackerState.TRACKING:
            subscription = self._capability.watch_position(self._watch_options(session))
            self._subscription = subscription
            try:
                outcome = await self._consume(session, subscription)
            finally:
                if self._subscription is subscription:
                    self._subscription = None
                    self._capability.clear_watch(subscription)

            if outcome is _WatchOutcome.STOP:
                return
            if outcome is _WatchOutcome.RETRY:
                session.watch_retries += 1
                await self._sleep(self.settings.watch_retry_delay_seconds)

    async def _consume(
        self,
        session: TrackingSession,
        subscription: PositionSubscription,
    ) -> _WatchOutcome:
        async for event in subscription:
            if self.state is not TrackerState.TRACKING:
                return _WatchOutcome.STOP
            if isinstance(event, SensingError):
                return await self._handle_watch_error(event)
            if self._handle_position(session, event):
                logger.info(
                    "Signal poor for ride %s; switching to low-power sensing",
                    session.ride_id,
                )
                return _WatchOutcome.RESUBSCRIBE

        if self.state is not TrackerState.TRACKING:
            return _WatchOutcome.STOP
        logger.warning("Location subscription for ride %s ended", session.ride_id)
        self._notify("warning", "GPS signal unavailable", ProviderUnavailableError.code)
        return _WatchOutcome.RETRY

    async def _handle_watch_error(self, error: SensingError) -> _WatchOutcome:
        logger.error("GPS error for ride %s: %s", self.ride_id, error)
        if isinstance(error, PermissionDeniedError):
            self.permission = PermissionState.DENIED
            await self._fail(error)
            return _WatchOutcome.STOP

        if isinstance(error, SensingTimeoutError):
            message = "GPS timeout - retrying"
        elif isinstance(error, ProviderUnavailableError):
            message = "GPS signal unavailable"
        else:
            message = "GPS error occurred"
        self._notify("warning", message, error.code)
        return _WatchOutcome.RETRY

    def _handle_position(self, session: TrackingSession, position: RawPosition) -> bool:
        """Process one fix. Returns True when sensing should degrade."""
        now = self._clock()
        sample = position.to_sample(
            received_at=now,
            battery_percent=self._capability.battery_percent(),
        )
        if not self.validator.validate(sample, session.last_known_position):
            session.rejected_samples += 1
            return False

        rating = session.quality.observe(sample)
        if session.last_known_position is not None:
            session.distance.accumulate(session.last_known_position, sample)
        session.buffer.append(sample)
        session.last_known_position = sample
        session.history.append(sample)
        session.last_update_at = now

        stats = session.statistics(now)
        self._emit_location(
            LocationUpdate(
                **sample.model_dump(),
                accuracy_rating=rating,
                statistics=stats,
            ),
        )

        if not session.low_power and stats.signal_strength is SignalQuality.POOR:
            session.low_power = True
            return True
        return False

    async def _flush_timer(self, session: TrackingSession, interval: float) -> None:
        while self.state is TrackerState.TRACKING:
            await self._sleep(interval)
            session.buffer.maybe_flush()

    def _handle_permission_change(self, state: PermissionState) -> None:
        logger.info("Location permission changed to %s", state.value)
        self.permission = state
        if state is PermissionState.DENIED and self.lifecycle.is_active():
            task = asyncio.create_task(
                self._fail(PermissionDeniedError("Location permission revoked")),
            )
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _fail(self, error: TelemetryError) -> None:
        if not self.lifecycle.is_active():
            return
        self.error = error
        self._transition(TrackerState.ERROR, error=error.message)
        self._notify("error", error.message, getattr(error, "code", None))
        await self._teardown()

    def _release_permission_listener(self) -> None:
        if self._unsubscribe_permission is not None:
            self._unsubscribe_permission()
            self._unsubscribe_permission = None

    async def _teardown(self) -> None:
        current = asyncio.current_task()
        tasks = [
            task
            for task in (
                self._calibration_task,
                self._watch_task,
                self._flush_timer_task,
            )
            if task is not None and task is not current and not task.done()
        ]
        self._watch_task = None
        self._flush_timer_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._subscription is not None:
            subscription = self._subscription
            self._subscription = None
            self._capability.clear_watch(subscription)

        self._release_permission_listener()

        session = self.session
        if session is None:
            return
        # A failed in-flight batch is requeued before the final flush.
        await session.buffer.wait_in_flight()
        if len(session.buffer) and not await session.buffer.force_flush():
            logger.warning(
                "Final flush failed; %d samples for ride %s were not delivered",
                len(session.buffer),
                session.ride_id,
            )

    def _notify(self, level: str, message: str, code: str | None = None) -> None:
        callback = self.callbacks.on_notice
        if callback is None:
            return
        try:
            callback(TrackerNotice(level=level, message=message, code=code))
        except Exception:
            logger.exception("on_notice callback failed")

    def _emit_status(self, is_tracking: bool) -> None:
        callback = self.callbacks.on_tracking_status_change
        if callback is None:
            return
        try:
            callback(is_tracking)
        except Exception:
            logger.exception("on_tracking_status_change callback failed")

    def _emit_location(self, update: LocationUpdate) -> None:
        callback = self.callbacks.on_location_update
        if callback is None:
            return
        try:
            callback(update)
        except Exception:
            logger.exception("on_location_update callback failed")
