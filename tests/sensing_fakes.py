from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

from core.exceptions import DeliveryFailureError, ProviderUnavailableError
from tracking.capability import PermissionListener, PositionSubscription
from tracking.models import LocationSample, PermissionState, RawPosition, SensingOptions

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def fix(
    latitude: float = 40.7128,
    longitude: float = -74.0060,
    accuracy: float = 5.0,
    *,
    speed: float | None = None,
    heading: float | None = None,
) -> RawPosition:
    return RawPosition(
        latitude=latitude,
        longitude=longitude,
        accuracy=accuracy,
        speed=speed,
        heading=heading,
    )


def sample(
    latitude: float = 40.7128,
    longitude: float = -74.0060,
    accuracy: float = 5.0,
    *,
    speed_mph: float | None = None,
    timestamp: datetime = T0,
) -> LocationSample:
    return LocationSample(
        latitude=latitude,
        longitude=longitude,
        accuracy_meters=accuracy,
        speed_mph=speed_mph,
        timestamp=timestamp,
    )


async def settle(rounds: int = 50) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeSensingCapability:
    def __init__(
        self,
        fixes: Sequence[RawPosition | Exception] | None = None,
        *,
        permission: PermissionState = PermissionState.GRANTED,
        battery: int | None = None,
    ) -> None:
        self.fixes = list(fixes or [])
        self.fix_requests: list[SensingOptions] = []
        self.subscriptions: list[PositionSubscription] = []
        self.cleared: list[PositionSubscription] = []
        self.permission = permission
        self.battery = battery
        self.listeners: list[PermissionListener] = []

    @property
    def latest(self) -> PositionSubscription:
        return self.subscriptions[-1]

    async def get_current_position(self, options: SensingOptions) -> RawPosition:
        self.fix_requests.append(options)
        if not self.fixes:
            msg = "no scripted fix"
            raise ProviderUnavailableError(msg)
        item = self.fixes.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def watch_position(self, options: SensingOptions) -> PositionSubscription:
        subscription = PositionSubscription(options)
        self.subscriptions.append(subscription)
        return subscription

    def clear_watch(self, subscription: PositionSubscription) -> None:
        self.cleared.append(subscription)
        subscription.cancel()

    async def query_permission(self) -> PermissionState:
        return self.permission

    def on_permission_change(self, listener: PermissionListener) -> Callable[[], None]:
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    def revoke(self) -> None:
        self.permission = PermissionState.DENIED
        for listener in list(self.listeners):
            listener(PermissionState.DENIED)

    def battery_percent(self) -> int | None:
        return self.battery


class RecordingSender:
    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.attempts: list[list[LocationSample]] = []
        self.batches: list[list[LocationSample]] = []

    async def send_batch(self, ride_id: str, samples: Sequence[LocationSample]) -> None:
        self.attempts.append(list(samples))
        if self.failures:
            self.failures -= 1
            msg = "backend unavailable"
            raise DeliveryFailureError(msg, {"ride_id": ride_id})
        self.batches.append(list(samples))

    @property
    def delivered(self) -> list[LocationSample]:
        return [s for batch in self.batches for s in batch]
