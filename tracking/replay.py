"""
Replay of recorded tracks through the sensing interface.

A recorded track is a JSON array of fixes::

    [{"latitude": 31.5472, "longitude": -97.1161, "accuracy": 8,
      "heading": 90, "speed": 12.5, "timestamp": "2026-01-01T12:00:00Z"}]

``speed`` is in metres per second, as platforms report it. Calibration
requests consume fixes from the head of the track; a watch replays the
rest at a fixed interval.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ProviderUnavailableError, ValidationError
from date_utils import parse_timestamp
from tracking.capability import PermissionListener, PositionSubscription
from tracking.models import PermissionState, RawPosition, SensingOptions

logger = logging.getLogger(__name__)


def parse_track(records: Sequence[dict[str, Any]]) -> list[RawPosition]:
    """Build positions from decoded JSON records."""
    positions: list[RawPosition] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            msg = f"Track entry {index} is not an object"
            raise ValidationError(msg, {"index": index})
        data = dict(record)
        if "timestamp" in data:
            data["timestamp"] = parse_timestamp(data["timestamp"])
        try:
            positions.append(RawPosition(**data))
        except PydanticValidationError as e:
            msg = f"Invalid track entry {index}: {e}"
            raise ValidationError(msg, {"index": index}) from e
    return positions


def load_track(path: str | Path) -> list[RawPosition]:
    """Read a recorded track file."""
    try:
        records = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        msg = f"Track file {path} is not valid JSON: {e}"
        raise ValidationError(msg, {"path": str(path)}) from e
    if not isinstance(records, list):
        msg = f"Track file {path} must contain a JSON array"
        raise ValidationError(msg, {"path": str(path)})
    return parse_track(records)


class ReplayLocationCapability:
    """Sensing capability backed by a recorded list of fixes."""

    def __init__(
        self,
        positions: Sequence[RawPosition],
        *,
        interval_seconds: float = 1.0,
        restamp: bool = True,
        permission: PermissionState = PermissionState.GRANTED,
        battery_percent: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if restamp:
            positions = [p.model_copy(update={"timestamp": None}) for p in positions]
        self._positions = list(positions)
        self._cursor = 0
        self.interval_seconds = interval_seconds
        self._permission = permission
        self._battery_percent = battery_percent
        self._sleep = sleep
        self._listeners: list[PermissionListener] = []
        self._producers: dict[PositionSubscription, asyncio.Task[None]] = {}
        self.finished = asyncio.Event()

    @property
    def remaining(self) -> int:
        return len(self._positions) - self._cursor

    def _next_position(self) -> RawPosition | None:
        if self._cursor >= len(self._positions):
            self.finished.set()
            return None
        position = self._positions[self._cursor]
        self._cursor += 1
        if self._cursor >= len(self._positions):
            self.finished.set()
        return position

    async def get_current_position(self, options: SensingOptions) -> RawPosition:
        position = self._next_position()
        if position is None:
            msg = "Recorded track exhausted"
            raise ProviderUnavailableError(msg)
        return position

    def watch_position(self, options: SensingOptions) -> PositionSubscription:
        subscription = PositionSubscription(options)
        self._producers[subscription] = asyncio.create_task(
            self._produce(subscription),
            name="replay-watch",
        )
        return subscription

    async def _produce(self, subscription: PositionSubscription) -> None:
        while not subscription.cancelled:
            position = self._next_position()
            if position is None:
                logger.info("Replay finished")
                return
            subscription.push(position)
            await self._sleep(self.interval_seconds)

    def clear_watch(self, subscription: PositionSubscription) -> None:
        subscription.cancel()
        producer = self._producers.pop(subscription, None)
        if producer is not None and not producer.done():
            producer.cancel()

    async def query_permission(self) -> PermissionState:
        return self._permission

    def on_permission_change(self, listener: PermissionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_permission(self, state: PermissionState) -> None:
        """Simulate the user changing the permission in system settings."""
        self._permission = state
        for listener in list(self._listeners):
            listener(state)

    def battery_percent(self) -> int | None:
        return self._battery_percent
